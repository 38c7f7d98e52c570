"""Wiring of clients and pipeline components from Settings."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from .classifier import SpamClassifier
from .clients.amocrm import AmoCRMClient
from .clients.spravportal import SpravPortalClient
from .config import Settings
from .dispatcher import EventDispatcher
from .orchestrator import SpamCheckService
from .resolver import LeadFieldResolver
from .utils.limiter import TaskLimiter


@dataclass
class Components:
    """Everything the HTTP layer and the CLI need, built once per process."""

    settings: Settings
    spravportal: SpravPortalClient
    crm: AmoCRMClient
    service: SpamCheckService
    dispatcher: EventDispatcher
    limiter: TaskLimiter

    async def close(self) -> None:
        """Wait for background checks, then close the HTTP clients."""
        await self.limiter.drain()
        await self.spravportal.close()
        await self.crm.close()


def build_components(
    settings: Settings,
    spravportal_transport: httpx.AsyncBaseTransport | None = None,
    amocrm_transport: httpx.AsyncBaseTransport | None = None,
) -> Components:
    """Instantiate clients and pipeline objects for ``settings``.

    The transports are only overridden in tests.
    """
    spravportal = SpravPortalClient(settings, transport=spravportal_transport)
    crm = AmoCRMClient(settings, transport=amocrm_transport)

    classifier = SpamClassifier(settings, spravportal)
    service = SpamCheckService(settings, classifier, crm)
    limiter = TaskLimiter(settings.max_concurrent_tasks)
    dispatcher = EventDispatcher(LeadFieldResolver(crm), service, limiter)

    return Components(
        settings=settings,
        spravportal=spravportal,
        crm=crm,
        service=service,
        dispatcher=dispatcher,
        limiter=limiter,
    )
