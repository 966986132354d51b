"""Render URL builders for image and video templates.

Two flavours exist: direct render URLs carrying the element values in the
query string, and hidden render links (``/rd/``) whose query string is
base64url-encoded so the values are not readable in the link.
"""
from __future__ import annotations

import base64
from typing import Dict, Iterable, List, Tuple, Union
from urllib.parse import quote, urlencode

Elements = Union[Dict[str, str], Iterable[Tuple[str, str]], None]


def normalize_element_value(name: str, value: str) -> str:
    """Color properties always carry a leading ``#``."""
    if '.color' in name and not value.startswith('#'):
        return '#' + value
    return value


def element_params(elements: Elements) -> List[Tuple[str, str]]:
    """Ordered ``(name, value)`` pairs, skipping incomplete entries."""
    if not elements:
        return []
    pairs = elements.items() if isinstance(elements, dict) else elements
    params = []
    for name, value in pairs:
        if not name or value is None or value == '':
            continue
        value = str(value)
        params.append((name, normalize_element_value(name, value)))
    return params


def seconds_to_ms(seconds) -> str:
    """Render durations are expressed in milliseconds on the wire."""
    ms = float(seconds) * 1000
    return str(int(ms)) if ms.is_integer() else str(ms)


def _query(pairs: Iterable[Tuple[str, str]]) -> str:
    return '&'.join(f"{quote(str(k), safe='.')}={quote(str(v), safe='')}" for k, v in pairs)


def image_render_url(base_url: str, template_id: str, image_format: str = '.jpg',
                     scale: str = '1', elements: Elements = None) -> str:
    """Direct image render URL, e.g. ``/templates/<id>/render.jpg?scale=1``."""
    url = f"{base_url.rstrip('/')}/templates/{template_id}/render{image_format}?scale={scale}"
    params = element_params(elements)
    if params:
        url += '&' + _query(params)
    return url


def video_render_url(base_url: str, template_id: str, duration=0, fps=24,
                     elements: Elements = None) -> str:
    """Direct MP4 render URL; ``duration`` is given in seconds."""
    url = f"{base_url.rstrip('/')}/templates/{template_id}/render.mp4"
    params: List[Tuple[str, str]] = []
    if duration:
        params.append(('duration', seconds_to_ms(duration)))
    params.append(('fps', str(fps)))
    params.extend(element_params(elements))
    return url + '?' + _query(params)


def hidden_render_link(base_url: str, query: Iterable[Tuple[str, str]], extension: str) -> str:
    """Encode ``query`` as unpadded base64url under ``/rd/``."""
    encoded = base64.urlsafe_b64encode(urlencode(list(query)).encode('utf-8'))
    token = encoded.decode('ascii').rstrip('=')
    return f"{base_url.rstrip('/')}/rd/{token}{extension}"


def hidden_image_link(base_url: str, template_id: str, image_format: str = '.jpg',
                      scale: str = '1', elements: Elements = None) -> str:
    query = [('template', template_id), ('scale', str(scale))]
    query.extend(element_params(elements))
    return hidden_render_link(base_url, query, image_format)


def hidden_video_link(base_url: str, template_id: str, duration=0, fps=24,
                      elements: Elements = None) -> str:
    query = [('template', template_id), ('fps', str(fps))]
    if duration:
        query.append(('duration', seconds_to_ms(duration)))
    query.extend(element_params(elements))
    return hidden_render_link(base_url, query, '.mp4')
