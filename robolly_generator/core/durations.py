"""Timing helpers for asynchronous movie renders."""
from __future__ import annotations

from typing import Any


def calculate_total_duration(data: Any) -> float:
    """Sum the numeric ``duration`` of every entry in ``data['timeline']``.

    Returns 0 for payloads without a timeline list.
    """
    if not isinstance(data, dict):
        return 0
    timeline = data.get('timeline')
    if not isinstance(timeline, list):
        return 0
    total = 0
    for item in timeline:
        if not isinstance(item, dict):
            continue
        duration = item.get('duration')
        if isinstance(duration, (int, float)) and not isinstance(duration, bool):
            total += duration
    return total


def poll_delay(payload: Any, minimum: float = 15, maximum: float = 200) -> float:
    """Seconds to wait between polls of a movie render.

    Twice the timeline length (milliseconds in the payload), clamped to
    ``[minimum, maximum]``.
    """
    estimated = calculate_total_duration(payload) * 2 / 1000
    return min(max(estimated, minimum), maximum)
