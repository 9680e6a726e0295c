from enum import Enum


class Role(str, Enum):
    """System roles for RBAC."""
    USER = "user"
    ADMIN = "admin"


class OtpPurpose(str, Enum):
    """What a one-time code proves or authorizes."""
    PHONE_VERIFY = "phone-verify"
    EMAIL_VERIFY = "email-verify"
    PASSWORD_RESET = "password-reset"


class VerificationChannel(str, Enum):
    """Channel names accepted by the send-verification-otp flow."""
    PHONE = "phone"
    MAIL = "mail"


class MarketingCategory(str, Enum):
    """Marketing topics a user can subscribe to."""
    PROMOTIONAL = "promotional"
    NEWSLETTER = "newsletter"
    PRODUCT_UPDATES = "product_updates"
    EVENTS = "events"
