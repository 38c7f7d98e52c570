"""Spam check pipeline: classify a lead's phone and mutate the lead.

For a spam verdict the lead goes through a fixed sequence of steps:
1. Rename to "СПАМ: +<phone> (<old name>)" (best effort, never fatal)
2. Attach the spam tag (modes ``tag`` and ``both``)
3. Move to the spam status/pipeline (modes ``status`` and ``both``)
4. Add a note describing the verdict

A clean verdict only gets a "number verified" note.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from .classifier import SpamClassifier
from .clients.amocrm import AmoCRMClient
from .config import Settings
from .exceptions import CRMError
from .models import SpamVerdict
from .notes import format_clean_note, format_spam_note

logger = logging.getLogger(__name__)

SPAM_NAME_PREFIX = "СПАМ"
_MARKED_PREFIXES = (f"{SPAM_NAME_PREFIX}:", f"{SPAM_NAME_PREFIX} :")


def spam_lead_name(phone: str, current_name: str) -> str:
    return f"{SPAM_NAME_PREFIX}: +{phone} ({current_name})"


def is_marked_as_spam(name: str) -> bool:
    return name.startswith(_MARKED_PREFIXES)


class SpamCheckService:
    """Runs classification and applies the resulting lead mutations.

    This is the primary Python API, shared by the HTTP endpoints, the batch
    dispatcher and the CLI.
    """

    def __init__(
        self,
        settings: Settings,
        classifier: SpamClassifier,
        crm: AmoCRMClient,
    ) -> None:
        self._settings = settings
        self._classifier = classifier
        self._crm = crm

    async def classify(self, phone: object) -> SpamVerdict:
        """Classify a number without touching any lead."""
        return await self._classifier.classify(phone)

    async def check_and_apply(self, lead_id: int | str, phone: object) -> SpamVerdict:
        """Classify ``phone`` and update lead ``lead_id`` to match the verdict.

        A ClassificationError aborts before any mutation is made.
        """
        verdict = await self._classifier.classify(phone)
        if verdict.is_spam:
            await self.handle_spam(lead_id, verdict)
        else:
            await self.handle_clean(lead_id, verdict)
        return verdict

    # ── Spam ─────────────────────────────────────────────────────

    async def handle_spam(self, lead_id: int | str, verdict: SpamVerdict) -> None:
        action = self._settings.amocrm_spam_action
        logger.info("Handling spam for lead %s, mode: %s", lead_id, action.value)

        await self.rename_as_spam(lead_id, verdict)

        if action.tags:
            await self.add_spam_tag(lead_id)

        if action.moves_status:
            await self.move_to_spam_status(lead_id)

        await self._crm.add_note(lead_id, format_spam_note(verdict))
        logger.info("Spam note added to lead %s", lead_id)

    async def rename_as_spam(self, lead_id: int | str, verdict: SpamVerdict) -> bool:
        """Prefix the lead name with the spam marker.

        Skips leads whose name already carries the marker. Errors are logged
        and swallowed; returns True when the lead ends up marked.
        """
        try:
            lead = await self._crm.get_lead(lead_id)
            current_name = lead.name or ""

            if is_marked_as_spam(current_name):
                logger.info("Lead %s is already marked as spam", lead_id)
                return True

            new_name = spam_lead_name(verdict.phone, current_name)
            await self._crm.rename_lead(lead_id, new_name)
            logger.info("Lead %s renamed to %r", lead_id, new_name)
            return True

        except (CRMError, ValidationError) as exc:
            logger.error("Failed to rename lead %s: %s", lead_id, exc)
            return False

    async def add_spam_tag(self, lead_id: int | str) -> None:
        tag = self._settings.amocrm_spam_tag_name
        logger.info("Adding tag %r to lead %s", tag, lead_id)
        await self._crm.add_tag(lead_id, tag)

    async def move_to_spam_status(self, lead_id: int | str) -> bool:
        """Move the lead to the configured spam status/pipeline.

        Returns False without calling amoCRM when either id is missing.
        """
        if not self._settings.spam_status_configured:
            logger.info("Spam status/pipeline ids not configured, skipping status change")
            return False

        status_id = self._settings.amocrm_spam_status_id
        pipeline_id = self._settings.amocrm_spam_pipeline_id
        await self._crm.move_lead(lead_id, status_id, pipeline_id)
        logger.info(
            "Lead %s moved to status %d in pipeline %d", lead_id, status_id, pipeline_id
        )
        return True

    # ── Clean ────────────────────────────────────────────────────

    async def handle_clean(self, lead_id: int | str, verdict: SpamVerdict) -> None:
        await self._crm.add_note(lead_id, format_clean_note(verdict))
        logger.info("Clean note added to lead %s", lead_id)
