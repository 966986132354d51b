"""Render file helpers: saving result binaries and fetching finished movies.

Network I/O is isolated here to keep the CLI/test flows clean and mockable.
"""
from __future__ import annotations

import logging
import os
import urllib.request
from typing import Optional

from .errors import AssetDownloadError


logger = logging.getLogger(__name__)


def save_binary(binary, output_dir: str, file_name: Optional[str] = None) -> str:
    """Write a result's ``binary`` into ``output_dir`` and return the path."""
    os.makedirs(output_dir, exist_ok=True)
    output_path = os.path.join(output_dir, file_name or binary.file_name)
    with open(output_path, "wb") as f:
        f.write(binary.data)
    logger.debug("Saved %s (%d bytes)", output_path, binary.size)
    return output_path


def download_file(url: str, output_path: str, timeout: int = 60) -> str:
    """Download a finished render from ``url`` into ``output_path``.

    Returns the ``output_path`` on success. Raises AssetDownloadError on failure.
    """
    logger.info("Downloading render file: %s -> %s", url, output_path)

    try:
        request = urllib.request.Request(url, headers={"User-Agent": "robolly-generator/0.1"})
        with urllib.request.urlopen(request, timeout=timeout) as response:
            data = response.read()
        directory = os.path.dirname(output_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(output_path, "wb") as f:
            f.write(data)
        logger.debug("Render saved to %s (%d bytes)", output_path, len(data))
        return output_path
    except Exception as e:
        logger.error("Failed to download render from %s: %s", url, e)
        raise AssetDownloadError(str(e)) from e


def file_name_from_url(url: str, default: str = "robolly-movie.mp4") -> str:
    """Last path segment of ``url``, or ``default`` when it has none."""
    from urllib.parse import urlparse

    name = os.path.basename(urlparse(url).path)
    return name or default
