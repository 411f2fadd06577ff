"""REST client for resource endpoints.

Thin httpx wrapper implementing the list/create/update/delete contract
the resource caches consume. Every request carries the session cookies
and JSON content negotiation; failures surface as RequestError subclasses.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Union

import httpx

from erpsync.api_errors import DecodeError, NetworkError, RequestFailedError
from erpsync.logging_config import LogContext, PerformanceTimer, generate_request_id
from erpsync.settings import get_settings

logger = logging.getLogger(__name__)

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class ResourceClient:
    """Async REST client for ``<base_url><endpoint>`` resources.

    Example:
        async with ResourceClient("http://localhost:5000/api") as client:
            contacts = await client.list("/crm/contacts", {"page": 1})
            created = await client.create("/crm/contacts", {"name": "Ada"})
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        cookies: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        slow_threshold_ms: Optional[float] = None,
    ):
        settings = get_settings()
        if cookies is None and settings.session_cookie:
            cookies = {settings.session_cookie_name: settings.session_cookie}

        self._base_url = (base_url or settings.api_base_url).rstrip("/")
        self._slow_threshold_ms = slow_threshold_ms or settings.slow_request_ms
        self._http = httpx.AsyncClient(
            base_url=self._base_url,
            headers=JSON_HEADERS,
            cookies=dict(cookies or {}),
            timeout=timeout or settings.request_timeout,
            transport=transport,
        )
        self._request_count = 0

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def request_count(self) -> int:
        return self._request_count

    @staticmethod
    def item_path(endpoint: str, item_id: Union[str, int]) -> str:
        return f"{endpoint.rstrip('/')}/{item_id}"

    async def request(
        self,
        method: str,
        endpoint: str,
        data: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Issue one request and return the decoded JSON body.

        An empty success body decodes to None.

        Raises:
            RequestFailedError: non-2xx response.
            NetworkError: no response (connection refused, timeout, ...).
            DecodeError: success response that is not JSON.
        """
        url = f"{self._base_url}{endpoint}"
        self._request_count += 1

        with LogContext(request_id=generate_request_id(), endpoint=endpoint):
            try:
                with PerformanceTimer(f"{method} {endpoint}", threshold_ms=self._slow_threshold_ms, logger_name=__name__):
                    response = await self._http.request(
                        method,
                        endpoint,
                        json=data,
                        params=_clean_params(params),
                    )
            except httpx.HTTPError as exc:
                logger.warning("%s %s failed: %s", method, endpoint, exc)
                raise NetworkError(str(exc) or type(exc).__name__, method=method, url=url) from exc

            if not response.is_success:
                logger.warning(
                    "%s %s returned status %d",
                    method,
                    endpoint,
                    response.status_code,
                    extra={"status_code": response.status_code, "method": method, "url": url},
                )
                raise RequestFailedError(response.status_code, method=method, url=url, body=response.text)

            if not response.content:
                return None
            try:
                return response.json()
            except ValueError as exc:
                raise DecodeError(method=method, url=url) from exc

    async def list(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET the collection; the raw body shape is left to the caller."""
        return await self.request("GET", endpoint, params=params)

    async def create(self, endpoint: str, body: Mapping[str, Any]) -> Any:
        return await self.request("POST", endpoint, data=dict(body))

    async def update(self, endpoint: str, item_id: Union[str, int], body: Mapping[str, Any]) -> Any:
        result = await self.request("PUT", self.item_path(endpoint, item_id), data=dict(body))
        return {} if result is None else result

    async def delete(self, endpoint: str, item_id: Union[str, int]) -> bool:
        await self.request("DELETE", self.item_path(endpoint, item_id))
        return True

    async def close(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "ResourceClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def _clean_params(params: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Drop None values; httpx would otherwise send them as empty strings."""
    if not params:
        return None
    return {k: v for k, v in params.items() if v is not None}
