"""Pydantic models for remote API payloads and internal data transfer."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

UNKNOWN_CATEGORY = "unknown"
UNKNOWN_CATEGORY_NAME = "Неизвестно"


# ── SpravPortal ──────────────────────────────────────────────────
# Descriptive fields are coerced leniently: an odd shape degrades to None
# instead of failing the whole entry.

def _text(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = str(value).strip()
    return text or None


def _category_name(item: Any) -> str | None:
    if isinstance(item, dict):
        return _text(item.get("name") or item.get("title"))
    return _text(item)


class SpravPortalPhoneInfo(BaseModel):
    region: str | None = None
    region_translit: str | None = Field(default=None, alias="regionTranslit")
    operator: str | None = None
    operator_translit: str | None = Field(default=None, alias="operatorTranslit")

    model_config = {"populate_by_name": True, "extra": "allow"}

    @field_validator(
        "region", "region_translit", "operator", "operator_translit", mode="before"
    )
    @classmethod
    def _as_text(cls, value: Any) -> str | None:
        return _text(value)


class _SpravPortalEntry(BaseModel):
    """Fields shared by every known layout of a SpravPortal phone entry."""

    action: str | None = None
    categories: list[str] | None = None
    reviews_count: int | None = Field(default=None, alias="reviewsCount")
    organization: Any = None
    phone_info: SpravPortalPhoneInfo | None = Field(default=None, alias="phoneInfo")

    model_config = {"populate_by_name": True, "extra": "allow"}

    @field_validator("action", mode="before")
    @classmethod
    def _action_text(cls, value: Any) -> str | None:
        return _text(value)

    @field_validator("categories", mode="before")
    @classmethod
    def _category_names(cls, value: Any) -> list[str] | None:
        if isinstance(value, (str, dict)):
            value = [value]
        if not isinstance(value, list):
            return None
        names = [_category_name(item) for item in value]
        return [name for name in names if name] or None

    @field_validator("reviews_count", mode="before")
    @classmethod
    def _count(cls, value: Any) -> int | None:
        if value is None or isinstance(value, bool):
            return None
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return None

    @field_validator("phone_info", mode="wrap")
    @classmethod
    def _phone_info(cls, value: Any, handler: Any) -> SpravPortalPhoneInfo | None:
        try:
            return handler(value)
        except ValidationError:
            return None


class LabelResponse(_SpravPortalEntry):
    """Entry that carries only a discrete action label (Block/Spam/Allow)."""

    kind: Literal["label"] = "label"


class ScoreResponse(_SpravPortalEntry):
    """Entry that carries a numeric spamScore in the 0-100 range."""

    kind: Literal["score"] = "score"
    spam_score: float = Field(alias="spamScore")


SpravPortalResponse = Annotated[
    Union[LabelResponse, ScoreResponse], Field(discriminator="kind")
]


# ── Verdict ──────────────────────────────────────────────────────

class SpamVerdict(BaseModel):
    """Outcome of classifying one phone number."""

    phone: str
    is_spam: bool
    action: str = "Unknown"
    spam_score: int = Field(default=0, ge=0, le=100)
    category: str = UNKNOWN_CATEGORY
    category_name: str = UNKNOWN_CATEGORY_NAME
    reviews_count: int = 0
    organization: str | None = None
    region: str | None = None
    operator: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)


# ── Webhook events ───────────────────────────────────────────────

class LeadEvent(BaseModel):
    """A lead notification reduced to what the pipeline needs."""

    lead_id: int | str
    phone: str | None = None


# ── amoCRM ───────────────────────────────────────────────────────

class AmoFieldValue(BaseModel):
    value: Any = None
    enum_code: str | None = None

    model_config = {"extra": "allow"}


class AmoCustomField(BaseModel):
    """An entry of custom_fields_values on a lead or contact (API v4)."""

    field_id: int | None = None
    field_name: str | None = None
    field_code: str | None = None
    values: list[AmoFieldValue] = Field(default_factory=list)

    model_config = {"extra": "allow"}


class AmoEntityRef(BaseModel):
    id: int

    model_config = {"extra": "allow"}


class AmoLeadEmbedded(BaseModel):
    contacts: list[AmoEntityRef] = Field(default_factory=list)
    tags: list[dict[str, Any]] = Field(default_factory=list)

    model_config = {"extra": "allow"}


class AmoLead(BaseModel):
    """GET /api/v4/leads/{id} response."""

    id: int
    name: str | None = None
    status_id: int | None = None
    pipeline_id: int | None = None
    custom_fields_values: list[AmoCustomField] | None = None
    embedded: AmoLeadEmbedded = Field(default_factory=AmoLeadEmbedded, alias="_embedded")

    model_config = {"populate_by_name": True, "extra": "allow"}


class AmoContact(BaseModel):
    """GET /api/v4/contacts/{id} response."""

    id: int
    name: str | None = None
    custom_fields_values: list[AmoCustomField] | None = None

    model_config = {"extra": "allow"}


class AmoStatus(BaseModel):
    id: int
    name: str

    model_config = {"extra": "allow"}


class AmoPipelineEmbedded(BaseModel):
    statuses: list[AmoStatus] = Field(default_factory=list)

    model_config = {"extra": "allow"}


class AmoPipeline(BaseModel):
    """A pipeline from GET /api/v4/leads/pipelines."""

    id: int
    name: str
    embedded: AmoPipelineEmbedded = Field(
        default_factory=AmoPipelineEmbedded, alias="_embedded"
    )

    model_config = {"populate_by_name": True, "extra": "allow"}
