"""
HTTP execution service for sending saved requests.

This service turns a fully-resolved ApiRequest into an httpx call and
captures the result as an ApiResponse. Variable resolution and inherited
auth are decided by the caller; the executor only applies what it is given.
"""

import logging
import time

import httpx

from ..schemas.execute import ExecuteError
from ..schemas.request import ApiRequest, ApiResponse, KeyValue, RequestAuth

logger = logging.getLogger(__name__)

# Default timeout in seconds
DEFAULT_TIMEOUT = 30.0


def _enabled(rows: list[KeyValue] | None) -> list[tuple[str, str]]:
    return [(row.key, row.value) for row in rows or [] if row.enabled and row.key]


def build_request_kwargs(request: ApiRequest, auth: RequestAuth | None = None) -> dict:
    """
    Translate an ApiRequest into keyword arguments for ``httpx.AsyncClient.request``.

    Args:
        request: The resolved request
        auth: Effective auth; defaults to the request's own auth block

    Returns:
        Keyword arguments (method, url, headers, params and body fields)
    """
    auth = auth or request.auth
    headers = dict(_enabled(request.headers))
    params = _enabled(request.params)

    kwargs: dict = {"method": request.method, "url": request.url}

    body = request.body
    if body.type == "json" and body.raw:
        kwargs["content"] = body.raw
        if not any(name.lower() == "content-type" for name in headers):
            headers["Content-Type"] = "application/json"
    elif body.type in ("raw", "binary") and body.raw:
        kwargs["content"] = body.raw
    elif body.type == "x-www-form-urlencoded":
        kwargs["data"] = dict(_enabled(body.urlencoded))
    elif body.type == "form-data":
        # (None, value) tuples force a multipart body without file parts
        kwargs["files"] = [(key, (None, value)) for key, value in _enabled(body.form_data)]

    if auth.type == "basic" and auth.basic is not None:
        kwargs["auth"] = httpx.BasicAuth(auth.basic.username, auth.basic.password)
    elif auth.type == "bearer" and auth.bearer is not None and auth.bearer.token:
        headers["Authorization"] = f"Bearer {auth.bearer.token}"
    elif auth.type == "api-key" and auth.api_key is not None and auth.api_key.key:
        if auth.api_key.add_to == "query":
            params.append((auth.api_key.key, auth.api_key.value))
        else:
            headers[auth.api_key.key] = auth.api_key.value

    kwargs["headers"] = headers
    if params:
        kwargs["params"] = params
    return kwargs


async def execute_request(
    request: ApiRequest,
    auth: RequestAuth | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ApiResponse | ExecuteError:
    """
    Execute an HTTP request and return the response.

    Args:
        request: The request to execute, with variables already substituted
        auth: Effective auth (for requests inheriting from a folder/collection)
        timeout: Request timeout in seconds
        transport: Optional httpx transport (used by tests)

    Returns:
        ApiResponse on success, ExecuteError on failure
    """
    try:
        kwargs = build_request_kwargs(request, auth)
        start_time = time.perf_counter()

        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.request(**kwargs)

        end_time = time.perf_counter()

        return ApiResponse(
            status=response.status_code,
            status_text=response.reason_phrase or "",
            headers=dict(response.headers),
            body=response.text,
            time=round((end_time - start_time) * 1000, 2),
            size=len(response.content),
        )

    except httpx.TimeoutException:
        return ExecuteError(
            error="Request timed out",
            error_type="timeout",
            details=f"Request exceeded {timeout} seconds timeout"
        )
    except httpx.ConnectError as e:
        return ExecuteError(
            error="Failed to connect to server",
            error_type="network_error",
            details=str(e)
        )
    except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
        return ExecuteError(
            error="Invalid URL",
            error_type="invalid_url",
            details=str(e)
        )
    except httpx.HTTPError as e:
        return ExecuteError(
            error="HTTP error occurred",
            error_type="network_error",
            details=str(e)
        )
    except Exception as e:
        logger.exception("Unexpected error executing %s %s", request.method, request.url)
        return ExecuteError(
            error="An unexpected error occurred",
            error_type="unknown",
            details=str(e)
        )
