"""Extract the lead id and phone number from amoCRM webhook entries.

amoCRM (and the automation tools sitting in front of it) deliver lead
events in several shapes. The phone number is looked up by an ordered
chain of extractors, first non-empty result wins:

1. ``custom_fields`` (legacy webhook format), matched by name/code/id
2. ``custom_fields_values`` (API v4 format), matched by field name/code
3. a top-level ``phone`` property
4. ``contacts[0].phone``
5. the lead's first linked contact, fetched from the amoCRM API
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional

from pydantic import ValidationError

from .clients.amocrm import AmoCRMClient
from .exceptions import CRMError
from .models import AmoCustomField, LeadEvent
from .utils.phone import PHONE_FIELD_CODE, PHONE_FIELD_NAME, find_field_value

logger = logging.getLogger(__name__)

Extractor = Callable[[Mapping[str, Any]], Optional[str]]


def _clean(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = str(value).strip()
    return text or None


def from_custom_fields(event: Mapping[str, Any]) -> str | None:
    return _clean(
        find_field_value(
            event.get("custom_fields"),
            {"name": (PHONE_FIELD_NAME,), "code": (PHONE_FIELD_CODE,), "id": ("phone",)},
        )
    )


def from_custom_fields_values(event: Mapping[str, Any]) -> str | None:
    return _clean(
        find_field_value(
            event.get("custom_fields_values"),
            {"field_name": (PHONE_FIELD_NAME,), "field_code": (PHONE_FIELD_CODE,)},
        )
    )


def from_phone_property(event: Mapping[str, Any]) -> str | None:
    return _clean(event.get("phone"))


def from_embedded_contact(event: Mapping[str, Any]) -> str | None:
    contacts = event.get("contacts")
    if not isinstance(contacts, list) or not contacts:
        return None
    first = contacts[0]
    if not isinstance(first, Mapping):
        return None
    return _clean(first.get("phone"))


PHONE_EXTRACTORS: tuple[Extractor, ...] = (
    from_custom_fields,
    from_custom_fields_values,
    from_phone_property,
    from_embedded_contact,
)


def extract_lead_id(event: Mapping[str, Any]) -> int | str | None:
    """Return ``id``, falling back to ``lead_id``."""
    for key in ("id", "lead_id"):
        value = event.get(key)
        if value is None or isinstance(value, (dict, list, bool)):
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
            return int(value) if value.isdigit() else value
        if value:
            return value
    return None


def extract_phone(event: Mapping[str, Any]) -> str | None:
    """Run the local extractors in order and return the first phone found."""
    for extractor in PHONE_EXTRACTORS:
        phone = extractor(event)
        if phone:
            return phone
    return None


def phone_from_fields(fields: list[AmoCustomField] | None) -> str | None:
    """Pick the PHONE field value from an API v4 contact's custom fields."""
    if not fields:
        return None
    raw = [f.model_dump() for f in fields]
    return _clean(
        find_field_value(
            raw,
            {"field_code": (PHONE_FIELD_CODE,), "field_name": (PHONE_FIELD_NAME,)},
        )
    )


class LeadFieldResolver:
    """Turns raw webhook entries into LeadEvents.

    Falls back to the amoCRM API when the entry itself carries no phone.
    """

    def __init__(self, crm: AmoCRMClient) -> None:
        self._crm = crm

    @staticmethod
    def resolve_local(event: Mapping[str, Any]) -> LeadEvent | None:
        """Resolve from the entry alone, without calling amoCRM.

        Returns None when the entry has no lead id.
        """
        lead_id = extract_lead_id(event)
        if lead_id is None:
            logger.info("Lead id not found in webhook entry, skipping")
            return None
        return LeadEvent(lead_id=lead_id, phone=extract_phone(event))

    async def complete(self, event: LeadEvent) -> LeadEvent:
        """Fill in a missing phone from the lead's linked contact."""
        if event.phone:
            return event
        logger.info(
            "No phone in webhook entry for lead %s, fetching it from amoCRM", event.lead_id
        )
        phone = await self.fetch_phone(event.lead_id)
        return event.model_copy(update={"phone": phone})

    async def resolve(self, event: Mapping[str, Any]) -> LeadEvent | None:
        """Return a LeadEvent, or None when the entry has no lead id.

        The returned event's phone stays None when no source yields one.
        """
        lead_event = self.resolve_local(event)
        if lead_event is None:
            return None
        return await self.complete(lead_event)

    async def fetch_phone(self, lead_id: int | str) -> str | None:
        """Read the phone of the lead's first linked contact from amoCRM.

        Returns None when the lead has no contacts, the contact has no phone
        field, or any of the API calls fails.
        """
        try:
            lead = await self._crm.get_lead(lead_id, with_contacts=True)
            contacts = lead.embedded.contacts
            if not contacts:
                return None
            contact = await self._crm.get_contact(contacts[0].id)
        except (CRMError, ValidationError) as exc:
            logger.error("Could not fetch phone for lead %s: %s", lead_id, exc)
            return None
        return phone_from_fields(contact.custom_fields_values)
