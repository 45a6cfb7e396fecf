"""
HTTP client utilities for polytrans.
Provides an async HTTP client with proxy support, connection pooling and
cancellation-aware requests.
"""

from typing import Any, Dict, Optional
from urllib.parse import urlparse

import httpx
from httpx import AsyncClient, Limits, Timeout
import structlog

from ..cancellation import CancellationToken, run_cancellable
from ..exceptions import RequestTimeoutError

logger = structlog.get_logger(__name__)

USER_AGENT = "polytrans/0.1.0"


class HTTPClient:
    """
    Async HTTP client shared by all providers.

    Every call is a single attempt: retrying is the router's job, so there is
    no transport-level retry here.
    """

    def __init__(
        self,
        proxy_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize HTTP client.

        Args:
            proxy_url: Optional outbound proxy
            timeout: Default request timeout in seconds
            transport: Custom transport (tests pass ``httpx.MockTransport``)
        """
        self.timeout = timeout
        self.proxy_url = self._configure_proxy(proxy_url)
        self.client = self._create_client(transport)

    def _configure_proxy(self, proxy_url: Optional[str]) -> Optional[str]:
        if not proxy_url:
            return None

        parsed = urlparse(proxy_url)
        if not parsed.scheme or not parsed.hostname:
            logger.warning("Ignoring malformed proxy URL", scheme=parsed.scheme)
            return None

        logger.info(f"Proxy configured: {parsed.scheme}://{parsed.hostname}:{parsed.port}")
        return proxy_url

    def _create_client(self, transport: Optional[httpx.AsyncBaseTransport]) -> AsyncClient:
        """Create HTTP client with configured settings."""
        client_kwargs: Dict[str, Any] = {}
        if transport is not None:
            client_kwargs["transport"] = transport
        elif self.proxy_url:
            client_kwargs["proxy"] = self.proxy_url

        client = AsyncClient(
            **client_kwargs,
            timeout=Timeout(
                connect=5.0,
                read=self.timeout,
                write=self.timeout,
                pool=5.0,
            ),
            limits=Limits(
                max_connections=100,
                max_keepalive_connections=20,
                keepalive_expiry=30.0,
            ),
            follow_redirects=True,
        )

        client.headers.update({
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        })

        return client

    async def post(
        self,
        url: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> httpx.Response:
        """
        Make one POST request raced against ``timeout`` and ``cancel_token``.

        Args:
            url: Absolute URL
            json: JSON body
            headers: Per-request headers, merged over the client defaults
            params: Query parameters (not logged, they may carry credentials)
            timeout: Seconds before RequestTimeoutError; defaults to the client timeout
            cancel_token: Caller's cancellation token

        Returns:
            The HTTP response, whatever its status code

        Raises:
            RequestAbortedError: The token fired before the response arrived
            RequestTimeoutError: The timeout fired first
            httpx.TransportError: Network failure
        """
        timeout = self.timeout if timeout is None else timeout

        logger.debug("HTTP request", method="POST", url=url, timeout=timeout)

        try:
            response = await run_cancellable(
                self.client.post(
                    url,
                    json=json,
                    headers=headers,
                    params=params,
                    timeout=timeout,
                ),
                cancel_token,
                timeout,
            )
        except httpx.TimeoutException:
            raise RequestTimeoutError(timeout)

        logger.debug(
            "HTTP request completed",
            method="POST",
            url=url,
            status_code=response.status_code,
        )
        return response

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self.client:
            await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.aclose()


def create_http_client(config: Any, transport: Optional[httpx.AsyncBaseTransport] = None) -> HTTPClient:
    """
    Create an HTTP client from application configuration.

    Args:
        config: Application configuration
        transport: Optional custom transport

    Returns:
        HTTPClient instance
    """
    return HTTPClient(
        proxy_url=getattr(config, "proxy_url", None),
        timeout=getattr(config, "analysis_timeout", 60.0),
        transport=transport,
    )
