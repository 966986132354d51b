"""Robolly REST API client.

All network I/O towards api.robolly.com lives here so the operations and
the CLI stay mockable. Requests go through ``urllib.request``; JSON errors
returned by the API are surfaced through :class:`ApiError`.
"""
from __future__ import annotations

import json
import logging
import time
import urllib.error
import urllib.request
from typing import Any, Callable, Dict, Optional, Union
from urllib.parse import urlencode

from .errors import ApiError, ConfigError, InvalidResponseError, RenderTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = 'https://api.robolly.com'
USER_AGENT = 'robolly-generator/0.1'


def _error_message(error: urllib.error.HTTPError) -> str:
    """Prefer the ``message`` field of a JSON error body."""
    try:
        body = error.read()
    except Exception:
        body = b''
    if body:
        try:
            data = json.loads(body.decode('utf-8'))
            if isinstance(data, dict) and data.get('message'):
                return str(data['message'])
        except ValueError:
            pass
    return f"HTTP {error.code} {error.reason}"


class RobollyClient:
    """Thin wrapper around the Robolly endpoints used by the operations."""

    def __init__(self, api_key: str, base_url: str = DEFAULT_BASE_URL, timeout: float = 30,
                 sleep: Callable[[float], None] = time.sleep):
        if not api_key:
            raise ConfigError('A Robolly API key is required (set ROBOLLY_API_KEY or api_key)')
        self.api_key = api_key
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip('/')
        self.timeout = timeout
        self._sleep = sleep

    # -- low level -----------------------------------------------------

    def build_url(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> str:
        if endpoint.startswith(('http://', 'https://')):
            url = endpoint
        else:
            url = self.base_url + '/' + endpoint.lstrip('/')
        if params:
            query = urlencode({k: v for k, v in params.items() if v is not None})
            if query:
                url += ('&' if '?' in url else '?') + query
        return url

    def request_json(self, method: str, endpoint: str, params: Optional[Dict[str, Any]] = None,
                     body: Any = None, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Send a JSON request and return the decoded response body."""
        url = self.build_url(endpoint, params)
        data = json.dumps(body).encode('utf-8') if body is not None else None
        request = urllib.request.Request(url, data=data, method=method, headers={
            'Authorization': f'Bearer {self.api_key}',
            'Content-Type': 'application/json',
            'Accept': 'application/json',
            'User-Agent': USER_AGENT,
        })
        logger.debug("%s %s", method, url)

        try:
            with urllib.request.urlopen(request, timeout=timeout or self.timeout) as response:
                raw = response.read()
        except urllib.error.HTTPError as e:
            message = _error_message(e)
            logger.error("Robolly request failed: %s %s -> %s", method, url, message)
            raise ApiError(f"Robolly API error: {message}", status=e.code, url=url) from e
        except Exception as e:
            logger.error("Robolly request failed: %s %s -> %s", method, url, e)
            raise ApiError(f"Robolly API error: {e}", url=url) from e

        if not raw:
            return {}
        try:
            return json.loads(raw.decode('utf-8'))
        except ValueError as e:
            raise InvalidResponseError(f"Robolly returned invalid JSON for {url}", url=url) from e

    def request_binary(self, url: str, timeout: Optional[float] = None) -> bytes:
        """GET a render and return its bytes.

        Render endpoints redirect to S3, which rejects a foreign bearer
        token, so the header is attached as unredirected.
        """
        request = urllib.request.Request(url, headers={'User-Agent': USER_AGENT})
        request.add_unredirected_header('Authorization', f'Bearer {self.api_key}')
        logger.info("Downloading render: %s", url)

        try:
            with urllib.request.urlopen(request, timeout=timeout or self.timeout) as response:
                data = response.read()
        except urllib.error.HTTPError as e:
            message = _error_message(e)
            logger.error("Render download failed: %s -> %s", url, message)
            raise ApiError(f"Robolly API error: {message}", status=e.code, url=url) from e
        except Exception as e:
            logger.error("Render download failed: %s -> %s", url, e)
            raise ApiError(f"Robolly API error: {e}", url=url) from e

        logger.debug("Downloaded %d bytes", len(data))
        return data

    # -- listings --------------------------------------------------------

    def list_templates(self, cursor: Optional[str] = None, page_size: int = 100) -> Dict[str, Any]:
        """One page of ``GET /v1/templates``."""
        params = {'limit': str(page_size)}
        if cursor:
            params['paginationCursorNext'] = cursor
        return self.request_json('GET', '/v1/templates', params=params)

    def list_renders(self, cursor: Optional[str] = None, page_size: int = 100) -> Dict[str, Any]:
        """One page of ``GET /v1/renders``; the renders sit under ``value``."""
        params = {'limit': str(page_size)}
        if cursor:
            params['paginationCursorNext'] = cursor
        return self.request_json('GET', '/v1/renders', params=params)

    def get_accepted_modifications(self, template_id: str) -> Dict[str, Any]:
        if not template_id:
            raise ValueError('A template id is required')
        return self.request_json('GET', f'/v1/templates/{template_id}/accepted-modifications')

    # -- asynchronous movie renders ---------------------------------------

    def start_video_render(self, payload: Union[str, Dict[str, Any]], retries: int = 3,
                           delay: float = 2, timeout: float = 10) -> str:
        """POST a movie payload and return the job's ``resourceUrl``."""
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except ValueError as e:
                raise ValueError(f'Movie payload is not valid JSON: {e}') from e

        response = None
        for attempt in range(1, retries + 1):
            try:
                response = self.request_json('POST', '/v1/video/render', body=payload, timeout=timeout)
                break
            except ApiError as e:
                if attempt == retries:
                    raise ApiError(
                        f'Failed to initiate video generation after {retries} attempts: {e}',
                        status=e.status, url=e.url,
                    ) from e
                logger.warning("Video render start attempt %d/%d failed: %s", attempt, retries, e)
                self._sleep(delay)

        resource_url = response.get('resourceUrl') if isinstance(response, dict) else None
        if not resource_url:
            raise InvalidResponseError('Failed to get resource URL from response')
        logger.info("Video render started: %s", resource_url)
        return resource_url

    def poll_render(self, resource_url: str, attempts: int = 5, delay: float = 15,
                    timeout: float = 15) -> str:
        """Poll ``resource_url`` until the render exposes its file URL."""
        for attempt in range(1, attempts + 1):
            try:
                result = self.request_json('GET', resource_url, timeout=timeout)
                values = result.get('value') if isinstance(result, dict) else None
                if isinstance(values, list) and values and isinstance(values[0], dict) \
                        and values[0].get('file'):
                    logger.info("Render completed after %d poll(s)", attempt)
                    return values[0]['file']
                logger.info("Render not ready (poll %d/%d)", attempt, attempts)
            except ApiError as e:
                logger.info("Poll attempt %d failed: %s", attempt, e)

            if attempt < attempts:
                self._sleep(delay)

        raise RenderTimeoutError('Movie generation timed out or failed')
