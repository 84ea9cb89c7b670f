import logging
from typing import Any, Dict, List, Optional

import httpx

from catalog_admin.core.config import settings
from catalog_admin.core.exceptions import (
    CategoryConflictError,
    CategoryGatewayError,
    CategoryValidationError,
    GatewayTransportError,
    InvalidEndpointError,
    StaleTreeError,
)

log = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "An error occurred."


def _check_endpoint(endpoint: str) -> None:
    """Only strict relative paths may be requested against the base URL."""
    if (
        not isinstance(endpoint, str)
        or not endpoint.startswith("/")
        or endpoint.startswith("//")
        or "://" in endpoint
        or "\\" in endpoint
        or ".." in endpoint
    ):
        raise InvalidEndpointError(f"Invalid endpoint: {endpoint!r}")


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def extract_field_errors(body: Any) -> Dict[str, str]:
    """
    Reads validator output of the form {"errors": [{"path": "name", "msg": "..."}]}.
    Older servers send "param" instead of "path".
    """
    if not isinstance(body, dict):
        return {}
    errors: List[Any] = body.get("errors") or []
    field_errors: Dict[str, str] = {}
    for item in errors:
        if not isinstance(item, dict):
            continue
        field = item.get("path") or item.get("param") or "non_field"
        field_errors.setdefault(str(field), str(item.get("msg", DEFAULT_ERROR_MESSAGE)))
    return field_errors


def error_from_response(response: httpx.Response) -> CategoryGatewayError:
    body = _response_body(response)
    message = DEFAULT_ERROR_MESSAGE
    if isinstance(body, dict) and body.get("error"):
        message = str(body["error"])
    status_code = response.status_code

    if status_code in (400, 422):
        field_errors = extract_field_errors(body)
        if field_errors and message == DEFAULT_ERROR_MESSAGE:
            message = next(iter(field_errors.values()))
        return CategoryValidationError(message, status_code, field_errors)
    if status_code == 412:
        return StaleTreeError(message, status_code)
    if status_code in (404, 409):
        return CategoryConflictError(message, status_code)
    return CategoryGatewayError(message, status_code)


class AsyncAPIClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.ADMIN_API_URL).rstrip("/")
        self.token = token if token is not None else settings.ADMIN_API_TOKEN
        self.timeout = timeout if timeout is not None else settings.ADMIN_API_TIMEOUT_SEC
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Returns the shared client, creating it on first use."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    def _get_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def make_request(
        self,
        endpoint: str,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        **kwargs,
    ) -> httpx.Response:
        """
        Sends an authorized request and returns the response on 2xx.
        Raises GatewayTransportError when the server can't be reached and a
        CategoryGatewayError subclass for any non-2xx reply.
        """
        _check_endpoint(endpoint)
        client = await self._get_client()
        request_headers = self._get_headers()
        if headers:
            request_headers.update(headers)

        try:
            response = await client.request(
                method=method, url=endpoint, headers=request_headers, **kwargs
            )
            response.raise_for_status()
            return response

        except httpx.HTTPStatusError as e:
            error = error_from_response(e.response)
            log.warning(
                "Admin API %s %s failed [%s]: %s",
                method,
                endpoint,
                e.response.status_code,
                error.message,
            )
            raise error from e
        except httpx.RequestError as e:
            log.warning("Admin API %s %s unreachable: %s", method, endpoint, e)
            raise GatewayTransportError(f"Network error: {e}") from e

    async def close(self):
        """Closes the underlying client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
