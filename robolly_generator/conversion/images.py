"""Still image conversions backed by Pillow.

Each converter takes the rendered bytes and returns a ConversionResult;
encoder settings mirror the presets offered for rendered images.
"""
from __future__ import annotations

import io
import logging

import numpy as np
from PIL import Image

from ..services.errors import ConversionError
from .results import ConversionResult

logger = logging.getLogger(__name__)


def _open(image_data: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(image_data))
        image.load()
        return image
    except Exception as e:
        raise ConversionError(f"Unable to decode rendered image: {e}") from e


def _encode(image: Image.Image, fmt: str, **options) -> bytes:
    buffer = io.BytesIO()
    try:
        image.save(buffer, format=fmt, **options)
    except Exception as e:
        logger.error("Pillow failed to encode %s: %s", fmt, e)
        raise ConversionError(f"Unable to encode image as {fmt}: {e}") from e
    return buffer.getvalue()


def to_webp(image_data: bytes, extension: str = '') -> ConversionResult:
    """WebP at quality 80."""
    data = _encode(_open(image_data), 'WEBP', quality=80)
    ext = extension or 'webp'
    return ConversionResult(data=data, format=ext, extension=ext, mime_type='image/webp')


def to_avif(image_data: bytes, extension: str = '') -> ConversionResult:
    """AVIF at quality 40."""
    data = _encode(_open(image_data), 'AVIF', quality=40)
    ext = extension or 'avif'
    return ConversionResult(data=data, format=ext, extension=ext, mime_type='image/avif')


def to_tiff(image_data: bytes, extension: str = '') -> ConversionResult:
    """Lossless TIFF with LZW compression."""
    data = _encode(_open(image_data), 'TIFF', compression='tiff_lzw')
    ext = extension or 'tiff'
    return ConversionResult(data=data, format=ext, extension=ext, mime_type='image/tiff')


def _pixel_image(image: Image.Image) -> Image.Image:
    """Expand palette, bilevel, grey-alpha and CMYK images to RGB(A) pixels."""
    if image.mode in ('P', 'PA'):
        has_alpha = image.mode == 'PA' or 'transparency' in image.info
        return image.convert('RGBA' if has_alpha else 'RGB')
    if image.mode == 'LA':
        return image.convert('RGBA')
    if image.mode in ('1', 'CMYK'):
        return image.convert('RGB')
    return image


def to_raw(image_data: bytes, extension: str = '') -> ConversionResult:
    """Headerless pixel buffer; geometry travels in the metadata."""
    pixels = np.asarray(_pixel_image(_open(image_data)))
    height, width = pixels.shape[:2]
    channels = pixels.shape[2] if pixels.ndim == 3 else 1
    ext = extension or 'bin'
    return ConversionResult(
        data=pixels.tobytes(),
        format=ext,
        extension=ext,
        mime_type='application/octet-stream',
        metadata={'width': int(width), 'height': int(height), 'channels': int(channels)},
    )
