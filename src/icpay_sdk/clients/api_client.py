"""
IcpayApiClient - HTTP client for the ICPay payment API
"""

import logging
from typing import Any

import httpx

from icpay_sdk.exceptions import ApiError, NetworkError

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> tuple[str, Any]:
    try:
        data = response.json()
    except ValueError:
        data = response.text
    message = None
    if isinstance(data, dict):
        message = data.get("message") or data.get("error")
    if isinstance(message, list):
        message = "; ".join(str(m) for m in message)
    return str(message or f"HTTP {response.status_code}"), data


class IcpayApiClient:
    """
    Thin JSON client bound to one set of credentials.

    HTTP error statuses become ApiError, transport failures become NetworkError.
    """

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize API client.

        Args:
            base_url: ICPay API base URL
            headers: HTTP headers sent with every request (e.g., Authorization)
            timeout: Request timeout in seconds
            http_client: Pre-configured client; used as-is and not closed by close()
        """
        self._base_url = base_url.rstrip("/")
        self._headers = headers or {}
        self._timeout = timeout
        self._http_client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=self._headers,
                timeout=self._timeout,
            )
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client"""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        Raises:
            ApiError: If the API answers with an error status
            NetworkError: If the request could not be completed
        """
        client = await self._get_client()
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        logger.debug(f"{method} {path} params={params}")
        try:
            response = await client.request(
                method,
                f"{self._base_url}{path}",
                params=params or None,
                json=json,
                headers=self._headers if not self._owns_client else None,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            message, data = _error_message(e.response)
            logger.warning(f"{method} {path} failed with {e.response.status_code}: {message}")
            raise ApiError(message, status_code=e.response.status_code, data=data) from e
        except httpx.RequestError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise NetworkError(f"Request to {path} failed: {e}") from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(
                f"Invalid JSON from {path}", status_code=response.status_code, data=response.text
            ) from e

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Any = None) -> Any:
        return await self.request("POST", path, json=json)
