"""Spam classification of phone numbers via SpravPortal.

SpravPortal answers in one of two layouts. The label layout carries a
discrete ``action`` (Block/Spam/Allow/Unknown); the score layout carries a
numeric ``spamScore`` that is compared against the configured threshold.
``detect_schema`` picks exactly one of the two per response, and
``build_verdict`` maps either into a SpamVerdict.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from pydantic import TypeAdapter, ValidationError

from .clients.spravportal import SpravPortalClient
from .config import Settings
from .exceptions import ClassificationError
from .models import (
    UNKNOWN_CATEGORY,
    UNKNOWN_CATEGORY_NAME,
    LabelResponse,
    ScoreResponse,
    SpamVerdict,
    SpravPortalResponse,
)
from .utils.phone import normalize_phone

logger = logging.getLogger(__name__)

SPAM_LABELS = frozenset({"block", "spam"})

_response_adapter: TypeAdapter[LabelResponse | ScoreResponse] = TypeAdapter(
    SpravPortalResponse
)


def _has_numeric_score(entry: dict[str, Any]) -> bool:
    value = entry.get("spamScore")
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return False
    try:
        return math.isfinite(float(value))
    except (ValueError, OverflowError):
        return False


def detect_schema(entry: dict[str, Any]) -> LabelResponse | ScoreResponse:
    """Parse a raw SpravPortal phone entry into its schema variant."""
    kind = "score" if _has_numeric_score(entry) else "label"
    return _response_adapter.validate_python({**entry, "kind": kind})


def _organization_name(value: Any) -> str | None:
    if not value:
        return None
    if isinstance(value, dict):
        name = value.get("name") or value.get("title")
        return str(name) if name else None
    return str(value)


def build_verdict(phone: str, entry: dict[str, Any], threshold: int) -> SpamVerdict:
    """Map a raw SpravPortal phone entry into a SpamVerdict."""
    parsed = detect_schema(entry)

    if isinstance(parsed, ScoreResponse):
        score = max(0, min(100, int(parsed.spam_score)))
        is_spam = score >= threshold
        action = parsed.action or ("Spam" if is_spam else "Allow")
    else:
        action = parsed.action or "Unknown"
        is_spam = action.lower() in SPAM_LABELS
        score = 100 if is_spam else 0

    categories = parsed.categories or []
    phone_info = parsed.phone_info

    return SpamVerdict(
        phone=phone,
        is_spam=is_spam,
        action=action,
        spam_score=score,
        category=categories[0] if categories else UNKNOWN_CATEGORY,
        category_name=", ".join(categories) if categories else UNKNOWN_CATEGORY_NAME,
        reviews_count=parsed.reviews_count or 0,
        organization=_organization_name(parsed.organization),
        region=(phone_info.region_translit or phone_info.region) if phone_info else None,
        operator=(phone_info.operator_translit or phone_info.operator) if phone_info else None,
        raw=entry,
    )


class SpamClassifier:
    """Normalizes a phone number and classifies it through SpravPortal."""

    def __init__(self, settings: Settings, client: SpravPortalClient) -> None:
        self._threshold = settings.spam_threshold
        self._client = client

    async def classify(self, raw_phone: object) -> SpamVerdict:
        """Classify one number. Raises ClassificationError if the lookup fails."""
        phone = normalize_phone(raw_phone)
        logger.info("Checking number %s", phone)

        entry = await self._client.check_phone(phone)
        try:
            verdict = build_verdict(phone, entry, self._threshold)
        except ValidationError as exc:
            raise ClassificationError(f"Unexpected SpravPortal response: {exc}") from exc

        if verdict.is_spam:
            logger.warning(
                "Spam detected for %s: action=%s, category=%s",
                phone,
                verdict.action,
                verdict.category_name,
            )
        else:
            logger.info("Number %s is clean: action=%s", phone, verdict.action)
        return verdict
