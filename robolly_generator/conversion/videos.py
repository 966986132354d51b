"""Local video re-encoding of MP4 renders through the ffmpeg binary.

The binary is the one shipped with imageio-ffmpeg, so no system-wide
install is needed. Every preset downsamples to 10 fps and 320 px wide and
drops the audio track.
"""
from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass
from typing import Dict, List

import imageio_ffmpeg
from moviepy import VideoFileClip

from ..services.errors import ConversionError
from .results import ConversionResult

logger = logging.getLogger(__name__)

SCALE_FILTER = 'fps=10,scale=320:-1:flags=lanczos'


@dataclass(frozen=True)
class VideoPreset:
    """One ffmpeg invocation: codec options, container and labels."""
    label: str
    container: str
    suffix: str
    default_extension: str
    mime_type: str
    options: List[str]


PRESETS: Dict[str, VideoPreset] = {
    '.webp': VideoPreset(
        label='.webp', container='webp', suffix='.webp', default_extension='webp',
        mime_type='image/webp',
        options=['-vf', SCALE_FILTER, '-c:v', 'libwebp', '-q:v', '50', '-lossless', '0',
                 '-preset', 'default', '-loop', '0', '-an', '-vsync', '0'],
    ),
    '.av1': VideoPreset(
        label='.mp4 (AV1)', container='mp4', suffix='.mp4', default_extension='mp4',
        mime_type='video/mp4',
        options=['-vf', SCALE_FILTER, '-c:v', 'libaom-av1', '-crf', '30', '-b:v', '0',
                 '-cpu-used', '4', '-pix_fmt', 'yuv420p', '-an'],
    ),
    '.hevc': VideoPreset(
        label='.mp4 (HEVC/H.265)', container='mp4', suffix='.mp4', default_extension='mp4',
        mime_type='video/mp4',
        options=['-vf', SCALE_FILTER, '-c:v', 'libx265', '-crf', '28', '-preset', 'medium',
                 '-pix_fmt', 'yuv420p', '-an'],
    ),
    '.h264': VideoPreset(
        label='.mp4 (H.264/AVC)', container='mp4', suffix='.mp4', default_extension='mp4',
        mime_type='video/mp4',
        options=['-vf', SCALE_FILTER, '-c:v', 'libx264', '-crf', '23', '-preset', 'medium',
                 '-pix_fmt', 'yuv420p', '-an'],
    ),
    '.vp9': VideoPreset(
        label='.webm (VP9)', container='webm', suffix='.webm', default_extension='webm',
        mime_type='video/webm',
        options=['-vf', SCALE_FILTER, '-c:v', 'libvpx-vp9', '-crf', '30', '-b:v', '1M',
                 '-deadline', 'good', '-pix_fmt', 'yuv420p', '-an'],
    ),
}
# WebM output is the VP9 encode under its container name
PRESETS['.webm'] = PRESETS['.vp9']

GIF_PALETTE_FILTER = f'{SCALE_FILTER},palettegen=stats_mode=full'
GIF_APPLY_FILTER = f'{SCALE_FILTER} [x]; [x][1:v] paletteuse'


def ffmpeg_executable() -> str:
    """Path of the ffmpeg binary bundled with imageio-ffmpeg."""
    try:
        return imageio_ffmpeg.get_ffmpeg_exe()
    except RuntimeError as e:
        raise ConversionError(f"ffmpeg binary not found: {e}") from e


def run_ffmpeg(args: List[str]) -> None:
    """Run ffmpeg with ``args``; failures raise ConversionError."""
    cmd = [ffmpeg_executable(), '-y', '-hide_banner', '-loglevel', 'error', *args]
    logger.debug("Running: %s", ' '.join(cmd))
    try:
        completed = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except OSError as e:
        logger.error("Unable to start ffmpeg: %s", e)
        raise ConversionError(f"Unable to start ffmpeg: {e}") from e
    if completed.returncode != 0:
        tail = (completed.stderr or '').strip().splitlines()[-5:]
        logger.error("ffmpeg exited with %d: %s", completed.returncode, ' | '.join(tail))
        raise ConversionError(f"ffmpeg failed ({completed.returncode}): {' '.join(tail)}")


def probe_video(path: str) -> Dict[str, float]:
    """Duration, fps and frame size of an encoded file.

    Best effort: some outputs (animated WebP) cannot be read back by ffmpeg,
    in which case an empty dict is returned.
    """
    try:
        with VideoFileClip(path, audio=False) as clip:
            width, height = clip.size
            return {
                'duration': float(clip.duration or 0),
                'fps': float(clip.fps or 0),
                'width': int(width),
                'height': int(height),
            }
    except Exception as e:
        logger.warning("Unable to probe %s: %s", os.path.basename(path), e)
        return {}


def _write_input(temp_dir: str, video_data: bytes) -> str:
    input_path = os.path.join(temp_dir, 'input.mp4')
    with open(input_path, 'wb') as f:
        f.write(video_data)
    return input_path


def _read_output(output_path: str) -> bytes:
    with open(output_path, 'rb') as f:
        return f.read()


def to_gif(video_data: bytes, extension: str = '', probe: bool = True) -> ConversionResult:
    """Two-pass GIF: build a palette, then apply it to limit banding."""
    with tempfile.TemporaryDirectory(prefix='robolly-') as temp_dir:
        input_path = _write_input(temp_dir, video_data)
        palette_path = os.path.join(temp_dir, 'palette.png')
        output_path = os.path.join(temp_dir, 'output.gif')

        run_ffmpeg(['-i', input_path, '-vf', GIF_PALETTE_FILTER, palette_path])
        run_ffmpeg(['-i', input_path, '-i', palette_path, '-lavfi', GIF_APPLY_FILTER,
                    '-f', 'gif', output_path])

        data = _read_output(output_path)
        metadata = probe_video(output_path) if probe else {}

    ext = extension or 'gif'
    return ConversionResult(data=data, format='.gif', extension=ext, mime_type='image/gif',
                            metadata=metadata)


def encode(video_data: bytes, target: str, extension: str = '', probe: bool = True) -> ConversionResult:
    """Re-encode ``video_data`` with the preset registered for ``target``."""
    if target == '.gif':
        return to_gif(video_data, extension, probe)
    preset = PRESETS.get(target)
    if preset is None:
        raise ConversionError(f"Unsupported video conversion target: {target}")

    with tempfile.TemporaryDirectory(prefix='robolly-') as temp_dir:
        input_path = _write_input(temp_dir, video_data)
        output_path = os.path.join(temp_dir, 'output' + preset.suffix)
        logger.info("Encoding render as %s", preset.label)
        run_ffmpeg(['-i', input_path, *preset.options, '-f', preset.container, output_path])

        data = _read_output(output_path)
        metadata = probe_video(output_path) if probe else {}

    return ConversionResult(
        data=data,
        format=preset.label,
        extension=extension or preset.default_extension,
        mime_type=preset.mime_type,
        metadata=metadata,
    )
