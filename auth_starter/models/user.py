from beanie import Document, Indexed
from pydantic import BaseModel, Field, field_validator
from datetime import datetime, timezone
from auth_starter.constants import Role


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserFields(BaseModel):
    """User data shared by the Mongo document and the in-memory account.

    OTP state lives on the user: one code/expiry pair per purpose plus a
    throttle counter and clock shared by all purposes.
    """

    first_name: str
    last_name: str
    email: str
    phone: str  # canonical international form, e.g. +2348012345678
    password_hash: str
    role: Role = Role.USER
    is_active: bool = True

    is_phone_verified: bool = False
    is_email_verified: bool = False

    phone_verification_otp: str | None = None
    phone_verification_otp_expires: datetime | None = None
    email_verification_otp: str | None = None
    email_verification_otp_expires: datetime | None = None
    reset_password_otp: str | None = None
    reset_password_otp_expires: datetime | None = None

    otp_request_count: int = 0
    last_otp_request_time: datetime | None = None

    # Email reset-link flow
    reset_password_token: str | None = None
    reset_password_expires: datetime | None = None

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator(
        "phone_verification_otp_expires",
        "email_verification_otp_expires",
        "reset_password_otp_expires",
        "last_otp_request_time",
        "reset_password_expires",
        "created_at",
        "updated_at",
    )
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        # Mongo hands datetimes back naive (UTC)
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def display_name(self) -> str:
        return self.first_name


class UserAccount(UserFields):
    """Working copy of a user loaded for one request."""

    id: str | None = None


class User(Document, UserFields):
    """Stored user document (collection ``users``)."""

    email: Indexed(str, unique=True)
    phone: Indexed(str, unique=True)

    class Settings:
        name = "users"
