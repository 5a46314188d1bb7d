"""Transport - The single seam through which requests reach the network.

The executor only knows the Transport protocol: one coroutine taking a
ResolvedRequest and returning a TransportResponse, or raising on failure.
HttpxTransport is the default implementation; hosts and tests can pass any
object with a matching send() coroutine.
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx

from apihive.models import ResolvedRequest, Settings, TransportResponse


class TransportError(Exception):
    """Raised when a request fails (connection error, timeout, etc.)."""


class Transport(Protocol):
    async def send(self, request: ResolvedRequest) -> TransportResponse:
        ...


class HttpxTransport:
    """Sends requests with a shared httpx.AsyncClient.

    Usage:
        async with HttpxTransport(settings) as transport:
            response = await transport.send(resolved)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            settings: Timeout, redirect and TLS settings. Defaults apply if None.
            transport: Optional httpx transport, e.g. httpx.MockTransport in tests.
        """
        self._settings = settings or Settings()
        self._client = httpx.AsyncClient(**self._build_client_kwargs(self._settings, transport))

    @staticmethod
    def _build_client_kwargs(
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "timeout": settings.timeout,
            "follow_redirects": settings.follow_redirects,
            "verify": settings.verify_ssl,
        }
        if transport is not None:
            kwargs["transport"] = transport
        return kwargs

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()

    async def send(self, request: ResolvedRequest) -> TransportResponse:
        """Perform one HTTP exchange.

        Raises:
            TransportError: If the request could not be completed.
        """
        content = request.body.encode("utf-8") if request.body else None

        try:
            response = await self._client.request(
                method=request.method,
                url=request.url,
                headers=request.headers or None,
                content=content,
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"Request timed out: {e}") from e
        except httpx.ConnectError as e:
            raise TransportError(f"Connection error: {e}") from e
        except httpx.RequestError as e:
            raise TransportError(f"Request error: {e}") from e
        except httpx.InvalidURL as e:
            raise TransportError(f"Invalid URL: {e}") from e
        except UnicodeEncodeError as e:
            # Header values and names must be ASCII on the wire
            raise TransportError(
                f"Encoding error: non-ASCII character {e.object[e.start:e.end]!r} "
                f"in request headers. HTTP requires ASCII for these fields."
            ) from e

        return self._convert_response(response)

    @staticmethod
    def _convert_response(response: httpx.Response) -> TransportResponse:
        """Convert an httpx Response to a TransportResponse.

        Repeated headers are joined with ", " under their lowercase name.
        """
        headers: dict[str, str] = {}
        for key, value in response.headers.multi_items():
            key_lower = key.lower()
            if key_lower in headers:
                headers[key_lower] = f"{headers[key_lower]}, {value}"
            else:
                headers[key_lower] = value

        return TransportResponse(
            status=response.status_code,
            status_text=response.reason_phrase,
            headers=headers,
            body_text=response.text,
        )
