import logging
from typing import Any, Dict, Optional

import httpx

from benedict_cafe.errors import ApiError

logger = logging.getLogger(__name__)


def normalize_base_url(url: str) -> str:
    """Add https:// to a host given without a scheme; keep relative paths."""
    url = (url or "").strip()
    if url and not url.startswith(("http://", "https://", "/")):
        logger.warning("API_BASE_URL missing protocol, adding https://")
        url = f"https://{url}"
    return url.rstrip("/")


def join_url(base_url: str, endpoint: str = "") -> str:
    endpoint = endpoint if endpoint.startswith("/") else f"/{endpoint}"
    return f"{base_url.rstrip('/')}{endpoint}"


def error_message(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict):
        return body.get("error") or body.get("message") or default
    return default


class ApiClient:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = normalize_base_url(base_url)
        self.token = token
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    def url(self, endpoint: str) -> str:
        return join_url(self.base_url, endpoint)

    def _headers(self, token: Optional[str] = None) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        token = token or self.token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Any] = None,
        token: Optional[str] = None,
        default_error: str = "Request failed",
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            ApiError: on a transport failure, a non-2xx status, or a body
                that is not JSON.
        """
        url = self.url(endpoint)
        try:
            response = await self.client.request(
                method,
                url,
                params=params,
                data=data,
                files=files,
                headers=self._headers(token),
            )
        except httpx.HTTPError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise ApiError(f"Connection error: {e}") from e

        if not response.is_success:
            message = error_message(response, default_error)
            logger.error(f"{method} {url} returned {response.status_code}: {message}")
            raise ApiError(message, status=response.status_code)

        if not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"Invalid JSON from {endpoint}", status=response.status_code) from e

    async def get(self, endpoint: str, **kwargs) -> Any:
        return await self.request("GET", endpoint, **kwargs)

    async def post(self, endpoint: str, **kwargs) -> Any:
        return await self.request("POST", endpoint, **kwargs)

    async def put(self, endpoint: str, **kwargs) -> Any:
        return await self.request("PUT", endpoint, **kwargs)

    async def delete(self, endpoint: str, **kwargs) -> Any:
        return await self.request("DELETE", endpoint, **kwargs)

    async def close(self):
        await self.client.aclose()
