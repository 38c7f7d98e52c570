"""Base HTTP client shared by the SpravPortal and amoCRM clients."""

from __future__ import annotations

import httpx

from ..config import Settings


class BaseAPIClient:
    """Base class for the remote service clients.

    Owns one httpx.AsyncClient per remote service, bounded by
    ``HTTP_TIMEOUT_SECONDS``. Every outbound call is made exactly once:
    there is no retry layer. ``transport`` replaces the network in tests.
    """

    def __init__(
        self,
        settings: Settings,
        base_url: str,
        headers: dict[str, str],
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=httpx.Timeout(settings.http_timeout_seconds),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        **kwargs: object,
    ) -> httpx.Response:
        """Send one request and raise httpx.HTTPStatusError on a non-2xx status.

        Subclasses catch httpx errors around this call and re-raise them as
        ClassificationError (SpravPortal) or CRMError (amoCRM).
        """
        response = await self._client.request(method, path, **kwargs)
        response.raise_for_status()
        return response

    async def __aenter__(self) -> BaseAPIClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
