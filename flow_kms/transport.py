"""
Transport protocol for Flow REST Access API calls.

Defines the seam where concrete HTTP implementations plug in. The REST
client depends on this protocol, not on httpx directly, so the transport
can be swapped for test fakes without changing parsing logic.

Concrete implementations:
    - HttpxTransport (default, uses httpx.AsyncClient)
    - FakeTransport (tests, returns canned responses)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    import httpx

logger = logging.getLogger(__name__)


@runtime_checkable
class HttpTransport(Protocol):
    """Async transport for JSON GET and POST requests."""

    async def get_json(
        self, url: str, params: dict[str, str] | None = None
    ) -> Any:
        """Send a GET request and return the parsed JSON body.

        Raises:
            Exception: On transport-level failures (connection refused,
                timeout, non-2xx status). Propagated to the caller as-is.
        """
        ...

    async def post_json(self, url: str, payload: dict[str, Any]) -> Any:
        """Send a JSON POST request and return the parsed JSON body.

        Raises:
            Exception: On transport-level failures. Propagated as-is.
        """
        ...


class HttpxTransport:
    """Default transport using httpx.AsyncClient.

    Args:
        timeout: Request timeout in seconds.
        client: Optional long-lived ``httpx.AsyncClient``. When omitted a
            short-lived client is opened per request.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout = timeout
        self._client = client

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        import httpx

        logger.debug("%s %s", method, url)
        if self._client is not None:
            response = await self._client.request(method, url, **kwargs)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.request(method, url, **kwargs)
        response.raise_for_status()
        return response.json()

    async def get_json(
        self, url: str, params: dict[str, str] | None = None
    ) -> Any:
        """Send a GET request via httpx."""
        return await self._request("GET", url, params=params)

    async def post_json(self, url: str, payload: dict[str, Any]) -> Any:
        """Send a JSON POST request via httpx."""
        return await self._request(
            "POST",
            url,
            json=payload,
            headers={"Content-Type": "application/json"},
        )
