"""Identity service REST client.

Thin async wrapper around the relyingparty endpoints used for migration:

- POST identitytoolkit/v3/relyingparty/downloadAccount - one page of accounts
- POST identitytoolkit/v3/relyingparty/uploadAccount - one batch of accounts

Authentication is a bearer token obtained outside this tool. The client does
not retry: timeouts surface as ``TransientNetworkError`` and the exporter
decides whether to try the page again.
"""

import asyncio
from typing import Any

import httpx
import structlog
from pydantic import ValidationError as PydanticValidationError

from ..config import ServiceConfig
from ..models.wire import ErrorResponse
from ..observability.metrics import get_global_collector
from ..utils.exceptions import ServiceError, TransientNetworkError

logger = structlog.get_logger(__name__)


class IdentityToolkitClient:
    """
    Identity service client.

    Features:
    - Bearer token authentication
    - Timeouts mapped to TransientNetworkError
    - Error envelopes parsed into readable messages
    - Connection pooling via httpx.AsyncClient
    """

    def __init__(self, config: ServiceConfig) -> None:
        """
        Initialize client.

        Args:
            config: Service configuration with origin, token and timeouts
        """
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self._client: httpx.AsyncClient | None = None  # Lazy-loaded
        self.collector = get_global_collector()

    async def __aenter__(self) -> "IdentityToolkitClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get HTTP client, creating it on first use."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=self.config.verify_ssl,
                timeout=self.config.timeout,
            )
        return self._client

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.access_token:
            headers["Authorization"] = f"Bearer {self.config.access_token}"
        return headers

    async def request(
        self,
        method: str,
        endpoint: str,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """
        Make an authenticated request to the identity service.

        Args:
            method: HTTP method
            endpoint: Endpoint path relative to the API origin
            json: JSON body

        Returns:
            Parsed JSON response, or None for an empty body

        Raises:
            TransientNetworkError: If the request timed out
            ServiceError: For connection failures and non-2xx responses
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        logger.debug("Sending request", method=method, endpoint=endpoint)

        start_time = asyncio.get_running_loop().time()
        try:
            response = await self.client.request(method, url, json=json, headers=self._headers())
        except httpx.TimeoutException as e:
            self.collector.count_request(endpoint, "timeout")
            logger.warning("Request timed out", endpoint=endpoint, error=str(e))
            raise TransientNetworkError(f"Request to {endpoint} timed out: {e}") from e
        except httpx.HTTPError as e:
            self.collector.count_request(endpoint, "error")
            raise ServiceError(f"HTTP request failed: {e}") from e

        duration = (asyncio.get_running_loop().time() - start_time) * 1000
        self.collector.record_latency(endpoint, duration)

        if response.is_error:
            self.collector.count_request(endpoint, "error")
            message = self._error_message(response)
            logger.error(
                "Request failed", endpoint=endpoint, status=response.status_code, error=message
            )
            raise ServiceError(
                f"API Error {response.status_code}: {message}", status_code=response.status_code
            )

        self.collector.count_request(endpoint, "ok")
        if not response.content:
            return None
        return response.json()

    async def post(self, endpoint: str, json: dict[str, Any]) -> Any:
        """Helper for POST requests."""
        return await self.request("POST", endpoint, json=json)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        message = response.text
        try:
            data = response.json()
        except ValueError:
            return message
        if isinstance(data, dict):
            try:
                message = ErrorResponse.model_validate(data).get_full_message()
            except PydanticValidationError:
                pass
        return message
