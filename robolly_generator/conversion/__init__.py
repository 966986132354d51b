"""Conversion layer facade.

Dispatches a rendered file to the converter registered for the requested
target extension. Callers only see ``convert_image``/``convert_video`` and
the ConversionResult they return.
"""
from __future__ import annotations

from typing import Optional

from ..services.errors import ConversionError
from . import images, videos
from .results import ConversionResult

__all__ = [
    "ConversionResult",
    "IMAGE_TARGETS",
    "VIDEO_TARGETS",
    "convert_image",
    "convert_video",
]

IMAGE_CONVERTERS = {
    '.webp': images.to_webp,
    '.avif': images.to_avif,
    '.tiff': images.to_tiff,
    '.raw': images.to_raw,
}

IMAGE_TARGETS = tuple(IMAGE_CONVERTERS)
VIDEO_TARGETS = ('.av1', '.webp', '.webm', '.gif', '.h264', '.hevc', '.vp9')

# Targets equal to the rendered format need no work
IMAGE_PASSTHROUGH = ('', '.png')
VIDEO_PASSTHROUGH = ('', '.mp4')


def convert_image(image_data: bytes, target: str, extension: str = '') -> Optional[ConversionResult]:
    """Convert a rendered image; ``None`` when ``target`` needs no conversion."""
    if target in IMAGE_PASSTHROUGH:
        return None
    converter = IMAGE_CONVERTERS.get(target)
    if converter is None:
        raise ConversionError(f"Unsupported image conversion target: {target}")
    return converter(image_data, extension)


def convert_video(video_data: bytes, target: str, extension: str = '',
                  probe: bool = True) -> Optional[ConversionResult]:
    """Re-encode a rendered MP4; ``None`` when ``target`` needs no conversion."""
    if target in VIDEO_PASSTHROUGH:
        return None
    if target not in VIDEO_TARGETS:
        raise ConversionError(f"Unsupported video conversion target: {target}")
    return videos.encode(video_data, target, extension, probe=probe)
