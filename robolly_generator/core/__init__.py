"""
Core utilities and domain helpers for the Robolly generator.

This package hosts pure, side-effect-free logic (pagination, template
shaping, render links and timings) kept apart from network I/O.
"""

__all__ = [
    "collect_pages",
    "parse_limit",
    "matches_type",
    "template_options",
    "element_options",
    "image_render_url",
    "video_render_url",
    "hidden_image_link",
    "hidden_video_link",
    "calculate_total_duration",
    "poll_delay",
]

from .pagination import collect_pages, parse_limit
from .templates import matches_type, template_options, element_options
from .render_links import image_render_url, video_render_url, hidden_image_link, hidden_video_link
from .durations import calculate_total_duration, poll_delay
