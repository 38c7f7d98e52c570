"""SpravPortal "whocalls" API client for phone reputation lookups."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import Settings
from ..exceptions import ClassificationError
from .base import BaseAPIClient

logger = logging.getLogger(__name__)

# Display options sent with every check
CHECK_PARAMS = {
    "allowOrganizations": True,
    "showPhoneInfo": True,
    "showOrganization": True,
}


class SpravPortalClient(BaseAPIClient):
    """Client for the SpravPortal phone check endpoint.

    The configured URL is the full check endpoint and is used as is; the
    API key travels as the ``apiKey`` query parameter.
    """

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            settings=settings,
            base_url="",
            headers={"Content-Type": "application/json"},
            transport=transport,
        )
        self._url = settings.spravportal_url
        self._api_key = settings.spravportal_api_key

    async def check_phone(self, phone: str) -> dict[str, Any]:
        """Look up one number via POST {url}?apiKey=...

        Returns the first entry of the ``phones`` array, or an empty dict
        when the response has none. Raises ClassificationError on transport
        errors, timeouts and non-2xx responses.
        """
        body = {"phones": [phone], "params": CHECK_PARAMS}

        try:
            response = await self._request(
                "POST", self._url, params={"apiKey": self._api_key}, json=body
            )
            data = response.json()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "SpravPortal API error: HTTP %d %s",
                exc.response.status_code,
                exc.response.text,
            )
            raise ClassificationError(f"SpravPortal API error: {exc}") from exc
        except httpx.HTTPError as exc:
            logger.error("SpravPortal API error: %s", exc)
            raise ClassificationError(f"SpravPortal API error: {exc}") from exc
        except ValueError as exc:
            raise ClassificationError(f"SpravPortal API returned invalid JSON: {exc}") from exc

        phones = data.get("phones") if isinstance(data, dict) else None
        entry = phones[0] if isinstance(phones, list) and phones else {}
        logger.info("SpravPortal response for %s: %s", phone, entry)
        return entry if isinstance(entry, dict) else {}
