from beanie import Document, Indexed
from pydantic import BaseModel, Field, field_validator
from datetime import datetime, timezone
from typing import List
from auth_starter.constants import MarketingCategory


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _default_categories() -> List[MarketingCategory]:
    return [MarketingCategory.PROMOTIONAL]


class PreferenceFields(BaseModel):
    """Per-user marketing consent."""

    user_id: str
    # Empty until the owner saves their preferences
    email: str = ""
    opted_in: bool = True
    subscribed_categories: List[MarketingCategory] = Field(default_factory=_default_categories)
    opt_out_date: datetime | None = None
    last_email_sent: datetime | None = None

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("opt_out_date", "last_email_sent", "created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class PreferenceAccount(PreferenceFields):
    """Working copy of a preference record."""

    id: str | None = None


class MarketingPreference(Document, PreferenceFields):
    """Stored preference document (collection ``marketing_preferences``)."""

    user_id: Indexed(str, unique=True)

    class Settings:
        name = "marketing_preferences"
