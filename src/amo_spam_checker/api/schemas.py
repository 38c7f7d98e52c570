"""Pydantic schemas for API requests and responses.

Field aliases keep the camelCase JSON keys existing integrations
(amoCRM digital pipeline, Make.com scenarios) already consume.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class CheckStatus(str, Enum):
    """Outcome reported by the synchronous check endpoint."""

    SPAM = "SPAM"
    CLEAN = "CLEAN"


class CheckSpamRequest(BaseModel):
    """Body of POST /webhook/check-spam."""

    phone: Any = None
    lead_id: Any = None


class CheckSpamResponse(BaseModel):
    success: bool = True
    status: CheckStatus
    phone: str
    spam_score: int = Field(serialization_alias="spamScore")
    category: str | None = None
    message: str
    processing_time: str = Field(serialization_alias="processingTime")


class PhoneCheckResult(BaseModel):
    phone: str
    is_spam: bool = Field(serialization_alias="isSpam")
    spam_score: int = Field(serialization_alias="spamScore")
    category: str
    reviews_count: int = Field(serialization_alias="reviewsCount")
    organization: str | None = None
    region: str | None = None
    operator: str | None = None


class PhoneCheckResponse(BaseModel):
    """Response of GET /test/check."""

    success: bool = True
    result: PhoneCheckResult


class WebhookAck(BaseModel):
    """Immediate acknowledgment of POST /webhook/amocrm."""

    status: str = "ok"
    message: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    success: bool = False
    error: str
    processing_time: str | None = Field(default=None, serialization_alias="processingTime")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    timestamp: str
