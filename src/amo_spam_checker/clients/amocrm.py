"""amoCRM API v4 client for reading and mutating leads."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import Settings
from ..exceptions import CRMError
from ..models import AmoContact, AmoLead, AmoPipeline
from .base import BaseAPIClient

logger = logging.getLogger(__name__)


class AmoCRMClient(BaseAPIClient):
    """Client for the amoCRM leads, notes, contacts and pipelines endpoints.

    Every call is bearer-authenticated. Failures are raised as CRMError
    carrying the HTTP status when there is one.
    """

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            settings=settings,
            base_url=settings.amocrm_domain,
            headers={
                "Authorization": f"Bearer {settings.amocrm_access_token}",
                "Content-Type": "application/json",
            },
            transport=transport,
        )

    async def _call(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._request(method, path, **kwargs)
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.error(
                "amoCRM API error: %s %s -> HTTP %d %s",
                method,
                path,
                status,
                exc.response.text,
            )
            raise CRMError(f"amoCRM API error: HTTP {status}", status_code=status) from exc
        except httpx.HTTPError as exc:
            logger.error("amoCRM API error: %s %s -> %s", method, path, exc)
            raise CRMError(f"amoCRM API error: {exc}") from exc

    async def _get_json(self, path: str, **kwargs: Any) -> Any:
        response = await self._call("GET", path, **kwargs)
        # amoCRM answers 204 No Content for entities that do not exist
        if response.status_code == 204 or not response.content:
            raise CRMError(
                f"amoCRM returned no content for {path}", status_code=response.status_code
            )
        try:
            return response.json()
        except ValueError as exc:
            raise CRMError(f"amoCRM returned invalid JSON for {path}") from exc

    async def get_lead(self, lead_id: int | str, with_contacts: bool = False) -> AmoLead:
        """Fetch a lead via GET /api/v4/leads/{id}, optionally with linked contacts."""
        params = {"with": "contacts"} if with_contacts else None
        data = await self._get_json(f"/api/v4/leads/{lead_id}", params=params)
        return AmoLead.model_validate(data)

    async def get_contact(self, contact_id: int | str) -> AmoContact:
        """Fetch a contact via GET /api/v4/contacts/{id}."""
        data = await self._get_json(f"/api/v4/contacts/{contact_id}")
        return AmoContact.model_validate(data)

    async def update_lead(self, lead_id: int | str, body: dict[str, Any]) -> None:
        """Patch lead fields via PATCH /api/v4/leads/{id}."""
        await self._call("PATCH", f"/api/v4/leads/{lead_id}", json=body)

    async def rename_lead(self, lead_id: int | str, name: str) -> None:
        await self.update_lead(lead_id, {"name": name})

    async def add_tag(self, lead_id: int | str, tag_name: str) -> None:
        await self.update_lead(lead_id, {"_embedded": {"tags": [{"name": tag_name}]}})

    async def move_lead(self, lead_id: int | str, status_id: int, pipeline_id: int) -> None:
        await self.update_lead(lead_id, {"status_id": status_id, "pipeline_id": pipeline_id})

    async def add_note(self, lead_id: int | str, text: str) -> None:
        """Append a common note via POST /api/v4/leads/{id}/notes."""
        body = [{"note_type": "common", "params": {"text": text}}]
        await self._call("POST", f"/api/v4/leads/{lead_id}/notes", json=body)

    async def get_pipelines(self) -> list[AmoPipeline]:
        """List lead pipelines with their statuses via GET /api/v4/leads/pipelines."""
        data = await self._get_json("/api/v4/leads/pipelines")
        pipelines = data.get("_embedded", {}).get("pipelines", [])
        return [AmoPipeline.model_validate(p) for p in pipelines]
