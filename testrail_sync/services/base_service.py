"""
Base Service Class
Provides common HTTP client management for API services.
"""

import httpx
import logging
from typing import Any, Dict, Optional
from abc import ABC


class BaseAPIService(ABC):
    """
    Abstract base class for API services.
    Owns one pooled async HTTP client per service instance.
    """

    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        base_url: str,
        headers: Dict[str, str],
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize base service.

        Args:
            base_url: API base URL
            headers: Default headers for requests
            timeout: Request timeout in seconds
            transport: Optional transport, e.g. httpx.MockTransport in tests
        """
        self.base_url = base_url.rstrip('/')
        self.headers = headers
        self.timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT
        self.logger = logging.getLogger(self.__class__.__name__)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def get_client(self) -> httpx.AsyncClient:
        """
        Get or create HTTP client (reusable connection pool).

        Returns:
            Configured async HTTP client
        """
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=self.headers,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close HTTP client and cleanup resources."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def send_once(
        self,
        method: str,
        url: str,
        json_data: Optional[Any] = None,
    ) -> httpx.Response:
        """
        Issue a single request without any retry handling.

        POST requests without ``json_data`` carry an empty body.
        """
        client = await self.get_client()
        self._log_request(method, url)
        try:
            if method == "GET":
                response = await client.get(url)
            elif method == "POST":
                if json_data is None:
                    response = await client.post(url, content=b"")
                else:
                    response = await client.post(url, json=json_data)
            else:
                raise ValueError(f"Unsupported HTTP method: {method}")
        except httpx.TransportError as e:
            self._log_error(e, f"{method} {url} failed")
            raise
        self._log_response(response)
        return response

    def _log_request(self, method: str, url: str):
        """Log outgoing request."""
        self.logger.debug(f"{method} {url}")

    def _log_response(self, response: httpx.Response):
        """Log response."""
        self.logger.debug(
            f"Response [{response.status_code}] from {response.url}"
        )

    def _log_error(self, error: Exception, context: str):
        """Log error with context."""
        self.logger.error(f"{context}: {str(error)}")
