"""
OTP issuance, throttling and validation.

Every user carries one code/expiry pair per purpose and a single throttle
state (``otp_request_count`` + ``last_otp_request_time``) shared by all
purposes, so a reset request and a verification request count against the
same daily quota and the same minimum interval.

Issuance tries delivery first and saves afterwards, and it saves even when
delivery failed: the attempt still consumes quota and the stored code stays
valid. Callers learn about the failed delivery from ``IssuanceOutcome``.
A store failure on that save is reported the same way (``persisted=False``),
since the code may already be on its way to the user.

There is no lock around load -> check -> save. Two concurrent requests for the
same user can both pass the throttle; whichever save lands last holds the
valid code.
"""

from __future__ import annotations

import hmac
import math
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from auth_starter.config import Settings, get_settings
from auth_starter.constants import OtpPurpose
from auth_starter.errors import (
    AlreadyVerifiedError,
    ExpiredOtpError,
    InvalidOtpError,
    OtpDeliveryError,
    OtpPersistenceError,
    OtpThrottleError,
    OtpValidationError,
    StoreError,
    UserNotFoundError,
)
from auth_starter.models import UserAccount
from auth_starter.services.mail_service import MailDeliveryError, MailService
from auth_starter.services.sms_service import SmsService
from auth_starter.services.user_repository import UserRepository
from auth_starter.utils.logger import get_logger

logger = get_logger("otp")


@dataclass(frozen=True)
class PurposeFields:
    digits: int
    code_field: str
    expires_field: str
    # None for purposes that do not verify an identity
    verified_field: str | None = None
    already_verified: str | None = None


PURPOSES: dict[OtpPurpose, PurposeFields] = {
    OtpPurpose.PHONE_VERIFY: PurposeFields(
        digits=4,
        code_field="phone_verification_otp",
        expires_field="phone_verification_otp_expires",
        verified_field="is_phone_verified",
        already_verified="Phone number already verified",
    ),
    OtpPurpose.EMAIL_VERIFY: PurposeFields(
        digits=6,
        code_field="email_verification_otp",
        expires_field="email_verification_otp_expires",
        verified_field="is_email_verified",
        already_verified="Email already verified",
    ),
    OtpPurpose.PASSWORD_RESET: PurposeFields(
        digits=4,
        code_field="reset_password_otp",
        expires_field="reset_password_otp_expires",
    ),
}


def parse_purpose(value: OtpPurpose | str) -> OtpPurpose:
    try:
        return OtpPurpose(value)
    except ValueError:
        raise OtpValidationError("Invalid type") from None


def generate_otp_code(purpose: OtpPurpose | str) -> str:
    """Uniform random code of the purpose's length (never a leading zero)."""
    digits = PURPOSES[parse_purpose(purpose)].digits
    low = 10 ** (digits - 1)
    return str(low + secrets.randbelow(9 * low))


def local_now() -> datetime:
    """Server-local aware time; day boundaries fall on local midnight."""
    return datetime.now().astimezone()


@dataclass(frozen=True)
class OtpPolicy:
    expiry_minutes: int = 10
    daily_limit: int = 3
    min_interval_minutes: int = 5

    @classmethod
    def from_settings(cls, settings: Settings) -> OtpPolicy:
        return cls(
            expiry_minutes=settings.OTP_EXPIRY_MINUTES,
            daily_limit=settings.OTP_DAILY_LIMIT,
            min_interval_minutes=settings.OTP_MIN_INTERVAL_MINUTES,
        )


@dataclass
class IssuanceOutcome:
    """Result of one issuance: whether the code was saved and whether it was sent."""

    purpose: OtpPurpose
    persisted: bool
    delivered: bool
    expires_at: datetime
    request_count: int
    error: str | None = None

    def raise_for_delivery(self, detail: str | None = None) -> None:
        """Raise when the code was not stored or did not reach the user."""
        if not self.persisted:
            raise OtpPersistenceError(
                "Failed to save the OTP. Please request a new one.",
                outcome=self,
            )
        if self.delivered:
            return
        raise OtpDeliveryError(
            detail or "Failed to send the OTP. Please try resending OTP.",
            outcome=self,
        )


class OtpService:
    def __init__(
        self,
        users: UserRepository,
        sms: SmsService,
        mail: MailService,
        policy: OtpPolicy | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.users = users
        self.sms = sms
        self.mail = mail
        self.policy = policy or OtpPolicy.from_settings(get_settings())
        self.clock = clock or local_now

    # ---------------- Throttle ----------------

    def check_throttle(self, user: UserAccount, now: datetime) -> None:
        """Apply the daily quota and the minimum interval.

        Resets ``otp_request_count`` on the working copy when the last request
        was before today; nothing is saved here.
        """
        last = user.last_otp_request_time
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)

        if last is not None and last < today:
            user.otp_request_count = 0

        if user.otp_request_count >= self.policy.daily_limit:
            tomorrow = today + timedelta(days=1)
            raise OtpThrottleError(
                "You have exceeded the maximum number of OTP requests for today. "
                "Please try again tomorrow.",
                retry_after_seconds=math.ceil((tomorrow - now).total_seconds()),
            )

        if last is not None:
            next_allowed = last + timedelta(minutes=self.policy.min_interval_minutes)
            if next_allowed > now:
                wait_seconds = math.ceil((next_allowed - now).total_seconds())
                raise OtpThrottleError(
                    f"Please wait at least {self.policy.min_interval_minutes} minutes "
                    f"before requesting a new OTP. Try again in "
                    f"{math.ceil(wait_seconds / 60)} minute(s).",
                    retry_after_seconds=wait_seconds,
                )

    # ---------------- Issuance ----------------

    async def request_issuance(
        self,
        user: UserAccount | None,
        purpose: OtpPurpose | str,
        target: str,
    ) -> IssuanceOutcome:
        """Issue a fresh code for ``purpose`` and deliver it to ``target``.

        Raises OtpValidationError, UserNotFoundError, AlreadyVerifiedError or
        OtpThrottleError before anything is sent or saved. A failed delivery
        or a StoreError on the final save does not raise; check
        ``outcome.delivered`` and ``outcome.persisted`` or call
        ``outcome.raise_for_delivery()``. DuplicateUserError still propagates.
        """
        purpose = parse_purpose(purpose)
        if user is None:
            raise UserNotFoundError()
        fields = PURPOSES[purpose]
        self._ensure_not_verified(user, fields)

        now = self.clock()
        self.check_throttle(user, now)

        code = generate_otp_code(purpose)
        delivered, error = await self._deliver(purpose, target, code, user.display_name)
        if not delivered:
            logger.warning(
                "Failed to deliver %s OTP to user %s: %s (code saved anyway)",
                purpose.value,
                user.id,
                error,
            )

        expires_at = now + timedelta(minutes=self.policy.expiry_minutes)
        setattr(user, fields.code_field, code)
        setattr(user, fields.expires_field, expires_at)
        user.otp_request_count += 1
        user.last_otp_request_time = now
        try:
            await self.users.save(user)
        except StoreError as e:
            logger.error(
                "Could not save %s OTP for user %s (delivered=%s): %s",
                purpose.value,
                user.id,
                delivered,
                e.detail,
            )
            return IssuanceOutcome(
                purpose=purpose,
                persisted=False,
                delivered=delivered,
                expires_at=expires_at,
                request_count=user.otp_request_count,
                error=e.detail if delivered else error,
            )

        logger.info(
            "Issued %s OTP for user %s (request %d today)",
            purpose.value,
            user.id,
            user.otp_request_count,
        )
        return IssuanceOutcome(
            purpose=purpose,
            persisted=True,
            delivered=delivered,
            expires_at=expires_at,
            request_count=user.otp_request_count,
            error=error,
        )

    async def _deliver(
        self, purpose: OtpPurpose, target: str, code: str, name: str
    ) -> tuple[bool, str | None]:
        if purpose is OtpPurpose.EMAIL_VERIFY:
            try:
                await self.mail.send_verification_otp(target, code, name)
            except MailDeliveryError as e:
                return False, str(e)
            return True, None

        if purpose is OtpPurpose.PHONE_VERIFY:
            result = await self.sms.send_phone_verification_otp(target, code, name)
        else:
            result = await self.sms.send_password_reset_otp(target, code, name)
        return result.success, result.error

    # ---------------- Validation ----------------

    def consume_code(
        self,
        user: UserAccount | None,
        purpose: OtpPurpose | str,
        code: str,
    ) -> UserAccount:
        """Check ``code`` and, on success, mark the working copy verified/consumed.

        Does not save, so a caller can add its own changes to the same write.
        """
        purpose = parse_purpose(purpose)
        if user is None:
            raise UserNotFoundError()
        fields = PURPOSES[purpose]
        self._ensure_not_verified(user, fields)

        stored = getattr(user, fields.code_field)
        if not stored or not hmac.compare_digest(stored.encode(), (code or "").encode()):
            raise InvalidOtpError()

        expires_at = getattr(user, fields.expires_field)
        if expires_at is None or self.clock() >= expires_at:
            raise ExpiredOtpError()

        if fields.verified_field:
            setattr(user, fields.verified_field, True)
        setattr(user, fields.code_field, None)
        setattr(user, fields.expires_field, None)
        return user

    async def validate_code(
        self,
        user: UserAccount | None,
        purpose: OtpPurpose | str,
        code: str,
    ) -> UserAccount:
        self.consume_code(user, purpose, code)
        return await self.users.save(user)

    @staticmethod
    def _ensure_not_verified(user: UserAccount, fields: PurposeFields) -> None:
        if fields.verified_field and getattr(user, fields.verified_field):
            raise AlreadyVerifiedError(fields.already_verified)
