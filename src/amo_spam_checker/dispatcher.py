"""Batch webhook dispatch: fan out lead checks without blocking the response."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from .models import LeadEvent, SpamVerdict
from .orchestrator import SpamCheckService
from .resolver import LeadFieldResolver
from .utils.limiter import TaskLimiter

logger = logging.getLogger(__name__)

# Event collections amoCRM may send under "leads", in lookup order
EVENT_KINDS = ("add", "update", "status")


def collect_lead_entries(payload: Mapping[str, Any]) -> list[Mapping[str, Any]] | None:
    """Return the raw lead entries of a batch webhook body.

    Returns None when the body has no ``leads`` key. The first non-empty
    collection among add/update/status is used; a single mapping entry is
    treated as a one-element batch.
    """
    leads = payload.get("leads")
    if not leads or not isinstance(leads, Mapping):
        return None

    entries: Any = []
    for kind in EVENT_KINDS:
        if leads.get(kind):
            entries = leads[kind]
            break

    if isinstance(entries, Mapping):
        entries = [entries]
    if not isinstance(entries, list):
        return []
    return [e for e in entries if isinstance(e, Mapping)]


class EventDispatcher:
    """Resolves batch entries and submits each check as a background task."""

    def __init__(
        self,
        resolver: LeadFieldResolver,
        service: SpamCheckService,
        limiter: TaskLimiter,
    ) -> None:
        self._resolver = resolver
        self._service = service
        self._limiter = limiter

    def dispatch(self, payload: Mapping[str, Any]) -> int:
        """Submit a background task per entry with a lead id; return the task count.

        Nothing is awaited here: entries whose phone has to be fetched from
        amoCRM do that inside their task. Outcomes are only visible in logs.
        """
        entries = collect_lead_entries(payload)
        if entries is None:
            logger.info("Webhook has no leads data")
            return 0

        submitted = 0
        for entry in entries:
            event = self._resolver.resolve_local(entry)
            if event is None:
                continue

            logger.info("Queueing lead %s (phone: %s)", event.lead_id, event.phone)
            self._limiter.submit(self.process(event), name=f"lead-{event.lead_id}")
            submitted += 1

        return submitted

    async def process(self, event: LeadEvent) -> SpamVerdict | None:
        """Resolve a missing phone, then classify and update the lead."""
        event = await self._resolver.complete(event)
        if not event.phone:
            logger.info("Not enough data: phone=%s, lead_id=%s", event.phone, event.lead_id)
            return None
        return await self._service.check_and_apply(event.lead_id, event.phone)
