"""
HTTP Transport

Design Decision: HTTP Client
============================

Options Considered:
1. urllib - No dependency, but no async and awkward streaming
2. aiohttp - Async, but its own request/response model
3. httpx - Async client, streaming bodies, MockTransport for tests

Decision: httpx.AsyncClient
- Streams response bodies without loading them into memory
- Accepts async generators as request bodies (upload progress)
- Request construction is a separate step, so "could not build" and
  "could not send" are distinguishable failures
"""

import logging
from typing import Dict, Optional

import httpx

from .errors import RemoteStatusError, RequestConstructionError, TransportError

logger = logging.getLogger(__name__)

# Header values never written to diagnostics
REDACTED_HEADERS = {'authorization', 'proxy-authorization', 'cookie'}


def create_client(config) -> httpx.AsyncClient:
    """Build the shared client for one session from AdapterConfig."""
    timeout = httpx.Timeout(
        config.http_timeout or None,
        connect=config.connect_timeout or None,
    )
    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=config.follow_redirects,
        verify=config.verify_tls,
    )


def trace_request(request: httpx.Request) -> str:
    """Render a request for diagnostics, with credentials redacted."""
    lines = [f"> {request.method} {request.url}"]
    for name, value in request.headers.items():
        if name.lower() in REDACTED_HEADERS:
            value = '<redacted>'
        lines.append(f"> {name}: {value}")
    return '\n'.join(lines)


class HttpTransport:
    """
    Thin wrapper over httpx that maps failures onto transfer errors.

    - build_request: RequestConstructionError
    - send: TransportError
    - check_status: RemoteStatusError
    """

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    def build_request(self, method: str, url: str,
                      headers: Optional[Dict[str, str]] = None,
                      content=None) -> httpx.Request:
        """Create a request without sending it."""
        try:
            parsed = httpx.URL(url)
            if parsed.scheme not in ('http', 'https') or not parsed.host:
                raise RequestConstructionError(
                    f"{method} {url!r}: not an absolute http(s) URL")
            return self.client.build_request(
                method, parsed, headers=headers or {}, content=content)
        except RequestConstructionError:
            raise
        except (httpx.InvalidURL, ValueError, TypeError) as e:
            raise RequestConstructionError(f"{method} {url!r}: {e}") from e

    async def send(self, request: httpx.Request,
                   follow_redirects: Optional[bool] = None) -> httpx.Response:
        """
        Send a request and return the response with its body unread.

        The caller must close the response (`await response.aclose()`).

        Args:
            request: Request from build_request
            follow_redirects: Override the client setting; streamed request
                bodies can only be sent once, so they must pass False
        """
        kwargs = {}
        if follow_redirects is not None:
            kwargs['follow_redirects'] = follow_redirects
        try:
            return await self.client.send(request, stream=True, **kwargs)
        except (httpx.HTTPError, httpx.StreamError) as e:
            raise TransportError(
                f"{request.method} {request.url}: {e.__class__.__name__}: {e}") from e

    @staticmethod
    def check_status(request: httpx.Request, response: httpx.Response):
        """Raise RemoteStatusError for anything other than a 2xx status."""
        status = response.status_code
        if status > 299:
            raise RemoteStatusError(
                f"Invalid status for {trace_request(request)}: {status}",
                status_code=status,
            )
