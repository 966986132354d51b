"""
Robolly operations and their dispatch.

Each operation takes the API client and a flat parameter dict and returns a
list of NodeItem, the JSON (plus optional binary) produced for one input.
"""
from __future__ import annotations

import json
import logging
import mimetypes
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .conversion import ConversionResult, convert_image, convert_video
from .core import durations
from .core.pagination import collect_pages, parse_limit
from .core.render_links import (
    hidden_image_link,
    hidden_video_link,
    image_render_url,
    video_render_url,
)
from .core.templates import (
    check_templates_type,
    element_options,
    is_video_template,
    matches_type,
    template_id_for_operation,
    template_options,
)
from .services.api import RobollyClient
from .services.errors import InvalidResponseError, RobollyError, UnsupportedOperationError

logger = logging.getLogger(__name__)


OPERATIONS = [
    {
        'name': 'Generate Image',
        'value': 'generateImage',
        'description': 'Generate image from a template',
        'action': 'Generate image',
    },
    {
        'name': 'Generate Video',
        'value': 'generateVideo',
        'description': 'Generate video from a template',
        'action': 'Generate video',
    },
    {
        'name': 'Get Renders',
        'value': 'getRenders',
        'description': 'Get all renders in your Robolly account',
        'action': 'Get all renders',
    },
    {
        'name': 'Get Template Elements',
        'value': 'getTemplateElements',
        'description': 'Get all template elements in your Robolly account',
        'action': 'Get all template elements',
    },
    {
        'name': 'Get Templates',
        'value': 'getTemplates',
        'description': 'Get all templates in your Robolly account',
        'action': 'Get all templates',
    },
]

OPERATION_NAMES = tuple(op['value'] for op in OPERATIONS)

IMAGE_FORMATS = ('.png', '.jpg')
IMAGE_SCALES = ('0.5', '1', '2', '3')
VIDEO_FPS = (24, 30, 50, 60)


@dataclass
class BinaryData:
    """A file attached to a result item."""
    data: bytes
    file_name: str
    mime_type: str
    file_extension: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class NodeItem:
    """One output item: a JSON document and an optional file."""
    json: Dict[str, Any]
    binary: Optional[BinaryData] = None


def _settings_section(settings: Optional[Dict[str, Any]], name: str) -> Dict[str, Any]:
    return dict((settings or {}).get(name) or {})


def _binary_from_conversion(result: ConversionResult, stem: str) -> BinaryData:
    ext = result.extension.lstrip('.')
    return BinaryData(
        data=result.data,
        file_name=f'{stem}.{ext}',
        mime_type=result.mime_type,
        file_extension=ext,
    )


# -- listings ------------------------------------------------------------

def handle_get_templates(client: RobollyClient, params: Dict[str, Any],
                         settings: Optional[Dict[str, Any]] = None) -> List[NodeItem]:
    """Every template of the account, optionally restricted by type."""
    templates_type = check_templates_type(params.get('templates_type') or 'all')
    limit = parse_limit(params.get('return_all', True), params.get('limit'))
    pagination = _settings_section(settings, 'pagination')
    page_size = pagination.get('page_size', 100)

    templates = collect_pages(
        lambda cursor: client.list_templates(cursor, page_size),
        'templates',
        limit=limit,
        item_filter=lambda t: matches_type(t, templates_type),
        max_pages=pagination.get('max_pages', 100),
    )
    logger.info("Fetched %d template(s)", len(templates))
    return [NodeItem(json=t) for t in templates]


def handle_get_renders(client: RobollyClient, params: Dict[str, Any],
                       settings: Optional[Dict[str, Any]] = None) -> List[NodeItem]:
    """Every render of the account, newest first as returned by the API."""
    limit = parse_limit(params.get('return_all', True), params.get('limit'))
    pagination = _settings_section(settings, 'pagination')
    page_size = pagination.get('page_size', 100)

    renders = collect_pages(
        lambda cursor: client.list_renders(cursor, page_size),
        'value',
        limit=limit,
        max_pages=pagination.get('max_pages', 100),
    )
    logger.info("Fetched %d render(s)", len(renders))
    return [NodeItem(json=r) for r in renders]


def handle_get_template_elements(client: RobollyClient, params: Dict[str, Any],
                                 settings: Optional[Dict[str, Any]] = None) -> List[NodeItem]:
    """The raw accepted-modifications document of one template."""
    response = client.get_accepted_modifications(params.get('template_id'))
    return [NodeItem(json=response)]


# -- renders -------------------------------------------------------------

def handle_generate_image(client: RobollyClient, params: Dict[str, Any],
                          settings: Optional[Dict[str, Any]] = None) -> List[NodeItem]:
    """Render an image template, optionally converting the result locally."""
    image = _settings_section(settings, 'image')
    template_id = params.get('image_template')
    if not template_id:
        raise ValueError('An image template id is required')
    image_format = params.get('image_format') or image.get('format', '.jpg')
    if image_format not in IMAGE_FORMATS:
        raise ValueError(f'Unsupported image format: {image_format}')
    scale = str(params.get('scale') or image.get('scale', '1'))
    if scale not in IMAGE_SCALES:
        raise ValueError(f'Unsupported image scale: {scale}')
    elements = params.get('elements')
    convert_to = params.get('convert', image.get('convert', '')) or ''
    extension = params.get('extension', image.get('extension', '')) or ''

    if params.get('hidden_link'):
        url = hidden_image_link(client.base_url, template_id, image_format, scale, elements)
    else:
        url = image_render_url(client.base_url, template_id, image_format, scale, elements)

    if params.get('link_only'):
        return [NodeItem(json={'url': url})]

    data = client.request_binary(url)
    ext = image_format.lstrip('.')
    binary = BinaryData(
        data=data,
        file_name=f'robolly-image{image_format}',
        mime_type=mimetypes.types_map.get(image_format, f'image/{ext}'),
        file_extension=ext,
    )
    result = {'success': True, 'url': url, 'format': image_format, 'size': binary.size}

    converted = convert_image(data, convert_to, extension)
    if converted is not None:
        binary = _binary_from_conversion(converted, 'robolly-image')
        result.update({'format': converted.format, 'size': converted.size}, **converted.metadata)

    return [NodeItem(json=result, binary=binary)]


def handle_generate_video(client: RobollyClient, params: Dict[str, Any],
                          settings: Optional[Dict[str, Any]] = None) -> List[NodeItem]:
    """Render a video template, or run an asynchronous movie render."""
    if params.get('movie_generation'):
        return handle_generate_movie(client, params, settings)

    video = _settings_section(settings, 'video')
    template_id = params.get('video_template')
    if not template_id:
        raise ValueError('A video template id is required')
    duration = params.get('duration', video.get('duration', 0)) or 0
    fps = int(params.get('fps') or video.get('fps', 24))
    if fps not in VIDEO_FPS:
        raise ValueError(f'Unsupported frame rate: {fps}')
    elements = params.get('elements')
    convert_to = params.get('convert', video.get('convert', '')) or ''
    extension = params.get('extension', video.get('extension', '')) or ''

    if params.get('hidden_link'):
        url = hidden_video_link(client.base_url, template_id, duration, fps, elements)
    else:
        url = video_render_url(client.base_url, template_id, duration, fps, elements)

    data = client.request_binary(url)
    binary = BinaryData(
        data=data,
        file_name='robolly-video.mp4',
        mime_type='video/mp4',
        file_extension='mp4',
    )
    result = {'success': True, 'url': url, 'format': '.mp4', 'size': binary.size}

    converted = convert_video(data, convert_to, extension, probe=params.get('probe', True))
    if converted is not None:
        binary = _binary_from_conversion(converted, 'robolly-video')
        result.update({'format': converted.format, 'size': converted.size}, **converted.metadata)

    return [NodeItem(json=result, binary=binary)]


def handle_generate_movie(client: RobollyClient, params: Dict[str, Any],
                          settings: Optional[Dict[str, Any]] = None) -> List[NodeItem]:
    """POST a movie payload, then poll its resource until the file is ready."""
    movie = _settings_section(settings, 'movie')
    payload = params.get('payload')
    if payload is None or payload == '':
        raise ValueError('Movie generation needs a JSON payload')
    attempts = int(params.get('attempts') or movie.get('attempts', 5))

    resource_url = client.start_video_render(
        payload,
        retries=movie.get('start_retries', 3),
        delay=movie.get('start_retry_delay', 2),
        timeout=movie.get('start_timeout', 10),
    )
    delay = durations.poll_delay(
        _decode_payload(payload),
        minimum=movie.get('min_poll_delay', 15),
        maximum=movie.get('max_poll_delay', 200),
    )
    video_url = client.poll_render(
        resource_url,
        attempts=attempts,
        delay=delay,
        timeout=movie.get('poll_timeout', 15),
    )
    return [NodeItem(json={'success': True, 'videoUrl': video_url, 'status': 'completed'})]


def _decode_payload(payload):
    if isinstance(payload, str):
        try:
            return json.loads(payload)
        except ValueError:
            return {}
    return payload


HANDLERS = {
    'getTemplates': handle_get_templates,
    'getTemplateElements': handle_get_template_elements,
    'generateImage': handle_generate_image,
    'generateVideo': handle_generate_video,
    'getRenders': handle_get_renders,
}


def execute(client: RobollyClient, operation: str, params: Optional[Dict[str, Any]] = None,
            settings: Optional[Dict[str, Any]] = None) -> List[NodeItem]:
    """Run ``operation`` with ``params`` and return its output items."""
    handler = HANDLERS.get(operation)
    if handler is None:
        raise UnsupportedOperationError(f'Unsupported operation: {operation}')
    logger.info("Executing %s", operation)
    return handler(client, params or {}, settings)


# -- pickers ---------------------------------------------------------------

def template_picker(client: RobollyClient, operation: Optional[str] = None,
                    limit: Optional[int] = None) -> List[Dict[str, str]]:
    """Template choices for interactive selection.

    The video operation only offers video templates. Errors are logged and
    yield an empty list.
    """
    item_filter = is_video_template if operation == 'generateVideo' else None

    def fetch_page(cursor):
        page = client.list_templates(cursor)
        if not isinstance(page, dict) or not isinstance(page.get('templates'), list):
            raise InvalidResponseError('Invalid response format')
        return page

    try:
        templates = collect_pages(
            fetch_page,
            'templates',
            limit=limit,
            item_filter=item_filter,
        )
    except (RobollyError, ValueError) as e:
        logger.error("Error loading templates: %s", e)
        return []
    return template_options(templates)


def element_picker(client: RobollyClient, operation: str, params: Dict[str, Any]) -> List[Dict[str, str]]:
    """Element choices of the template an operation targets.

    Empty on errors or when no template is selected yet.
    """
    template_id = template_id_for_operation(operation, params)
    if not template_id:
        return []
    try:
        response = client.get_accepted_modifications(template_id)
    except (RobollyError, ValueError) as e:
        logger.error("Error loading template elements: %s", e)
        return []
    return element_options(response.get('acceptedModifications') or [])
