"""Application configuration loaded from environment variables and .env file."""

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings


class MutationAction(str, Enum):
    """Which lead mutations are applied when a number is classified as spam."""

    TAG = "tag"
    STATUS = "status"
    BOTH = "both"

    @property
    def tags(self) -> bool:
        return self in (MutationAction.TAG, MutationAction.BOTH)

    @property
    def moves_status(self) -> bool:
        return self in (MutationAction.STATUS, MutationAction.BOTH)


class Settings(BaseSettings):
    """All configuration for the spam checker service.

    Values are loaded from environment variables (SPRAVPORTAL_*, AMOCRM_*,
    SPAM_THRESHOLD, ...) or from a .env file in the project root. The
    instance is frozen: it is built once at startup and handed to every
    component that needs it.
    """

    # SpravPortal
    spravportal_url: str = Field(
        default="https://b2b-api-stage-05.spravportal.ru/whocalls/check",
        description="SpravPortal whocalls check endpoint",
    )
    spravportal_api_key: str = Field(default="", description="SpravPortal API key")

    # amoCRM
    amocrm_domain: str = Field(
        default="https://example.amocrm.ru", description="amoCRM account base URL"
    )
    amocrm_access_token: str = Field(default="", description="amoCRM long-lived bearer token")
    amocrm_spam_status_id: int = Field(
        default=0, description="Target status id for spam leads (0 = not configured)"
    )
    amocrm_spam_pipeline_id: int = Field(
        default=0, description="Target pipeline id for spam leads (0 = not configured)"
    )
    amocrm_spam_tag_name: str = Field(default="спам", description="Tag attached to spam leads")
    amocrm_spam_action: MutationAction = Field(
        default=MutationAction.TAG, description="Spam handling mode: tag, status or both"
    )

    # Classification
    spam_threshold: int = Field(
        default=50, ge=0, le=100, description="spamScore at or above which a number is spam"
    )

    # HTTP
    port: int = Field(default=3000, description="Port for the webhook server")
    http_timeout_seconds: float = Field(
        default=10.0, description="Timeout for every outbound HTTP call"
    )

    # Background processing
    max_concurrent_tasks: int = Field(
        default=10, ge=1, description="Max lead checks running at once for batch webhooks"
    )

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
        "frozen": True,
        "env_ignore_empty": True,
    }

    @property
    def spam_status_configured(self) -> bool:
        return bool(self.amocrm_spam_status_id and self.amocrm_spam_pipeline_id)
