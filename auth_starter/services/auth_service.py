"""
Signup, login, verification and password reset flows.

Each flow resolves the user (by id, phone or email), then hands the OTP work
to ``OtpService``. Phone numbers are canonicalized before every lookup.
"""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass
from datetime import timedelta

from auth_starter.constants import OtpPurpose, VerificationChannel
from auth_starter.errors import (
    AppError,
    DuplicateUserError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    InvalidOtpError,
    OtpDeliveryError,
    OtpPersistenceError,
    OtpValidationError,
    UserNotFoundError,
    ValidationError,
)
from auth_starter.models import UserAccount
from auth_starter.security import create_access_token, hash_password, verify_password
from auth_starter.services.mail_service import MailDeliveryError, MailService
from auth_starter.services.otp_service import IssuanceOutcome, OtpService
from auth_starter.services.sms_service import SmsService
from auth_starter.services.user_repository import UserRepository
from auth_starter.utils.logger import get_logger

logger = get_logger("auth")

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

# channel -> (purpose, user field holding the address)
CHANNELS = {
    VerificationChannel.PHONE: (OtpPurpose.PHONE_VERIFY, "phone"),
    VerificationChannel.MAIL: (OtpPurpose.EMAIL_VERIFY, "email"),
}

DELIVERY_FAILED = {
    OtpPurpose.PHONE_VERIFY: "Failed to send verification SMS. Please try resending OTP.",
    OtpPurpose.EMAIL_VERIFY: "Failed to send verification mail. Please try resending OTP.",
    OtpPurpose.PASSWORD_RESET: "Failed to send password reset SMS. Please try again.",
}


@dataclass
class SignUpResult:
    user: UserAccount
    message: str
    mail_error: bool = False


@dataclass
class LoginResult:
    user: UserAccount
    access_token: str
    message: str


class AuthService:
    def __init__(
        self,
        users: UserRepository,
        otp: OtpService,
        sms: SmsService,
        mail: MailService,
    ):
        self.users = users
        self.otp = otp
        self.sms = sms
        self.mail = mail

    # ---------------- Input checks ----------------

    def _check_phone(self, phone: str) -> str:
        result = self.sms.validate_phone_number(phone)
        if not result.is_valid:
            raise ValidationError(result.error or "Invalid phone number")
        return result.formatted_number

    @staticmethod
    def _check_email(email: str) -> str:
        email = (email or "").strip()
        if not EMAIL_RE.match(email):
            raise ValidationError("Invalid email format")
        return email

    @staticmethod
    def _clean_password(password: str) -> str:
        # Stored hashes and login attempts both use the trimmed value
        return (password or "").strip()

    @staticmethod
    def _parse_channel(channel: VerificationChannel | str) -> VerificationChannel:
        try:
            return VerificationChannel(channel)
        except ValueError:
            raise OtpValidationError("Invalid type") from None

    # ---------------- Signup / login ----------------

    async def sign_up(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        phone: str,
        password: str,
    ) -> SignUpResult:
        """Create an unverified user and mail an email-verification code.

        A failed mail does not undo the signup; the result carries
        ``mail_error=True`` and the user can ask for a resend.
        """
        formatted_phone = self._check_phone(phone)
        email = self._check_email(email)
        password = self._clean_password(password)
        if not password:
            raise ValidationError("Password is required")

        if await self.users.find_by_phone(formatted_phone):
            raise DuplicateUserError("phone")
        if await self.users.find_by_email(email):
            raise DuplicateUserError("email")

        user = await self.users.save(
            UserAccount(
                first_name=first_name,
                last_name=last_name,
                email=email,
                phone=formatted_phone,
                password_hash=hash_password(password),
            )
        )
        logger.info("User %s signed up", user.id)

        try:
            await self.generate_verification_otp(user.id, VerificationChannel.MAIL)
        except (OtpDeliveryError, OtpPersistenceError):
            return SignUpResult(
                user=user,
                message=(
                    "User created successfully, but failed to send verification mail. "
                    "Please use the resend OTP feature."
                ),
                mail_error=True,
            )
        return SignUpResult(
            user=user,
            message=(
                "User created successfully. "
                "Please verify your email with the OTP sent to your email."
            ),
        )

    async def log_in(self, *, email: str, password: str) -> LoginResult:
        email = (email or "").strip()
        password = self._clean_password(password)
        if not email or not password:
            raise ValidationError("Email and password are required")
        email = self._check_email(email)

        user = await self.users.find_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()
        if not user.is_email_verified:
            raise EmailNotVerifiedError()

        token = create_access_token(
            {
                "sub": user.id,
                "role": user.role.value,
                "phone": user.phone,
                "email": user.email,
            }
        )
        return LoginResult(
            user=user,
            access_token=token,
            message=f"{user.first_name} {user.last_name} is logged in successfully",
        )

    # ---------------- Verification ----------------

    async def generate_verification_otp(
        self, user_id: str, channel: VerificationChannel | str
    ) -> IssuanceOutcome:
        channel = self._parse_channel(channel)
        purpose, address_field = CHANNELS[channel]

        user = await self.users.find_by_id(user_id)
        target = getattr(user, address_field) if user is not None else ""
        outcome = await self.otp.request_issuance(user, purpose, target)
        outcome.raise_for_delivery(DELIVERY_FAILED[purpose])
        return outcome

    async def verify_phone(self, phone: str, code: str) -> UserAccount:
        if not phone or not code:
            raise OtpValidationError("Phone number and OTP are required")
        user = await self.users.find_by_phone(self._check_phone(phone))
        return await self.otp.validate_code(user, OtpPurpose.PHONE_VERIFY, code)

    async def verify_email_otp(self, email: str, code: str) -> UserAccount:
        if not email or not code:
            raise OtpValidationError("Email and OTP are required")
        user = await self.users.find_by_email(email.strip())
        return await self.otp.validate_code(user, OtpPurpose.EMAIL_VERIFY, code)

    async def resend_verification_otp(self, email: str) -> IssuanceOutcome:
        if not email:
            raise OtpValidationError("Email is required")
        user = await self.users.find_by_email(self._check_email(email))
        if user is None:
            raise UserNotFoundError()
        return await self.generate_verification_otp(user.id, VerificationChannel.MAIL)

    # ---------------- Password reset (OTP over SMS) ----------------

    async def generate_password_reset_otp(self, phone: str) -> IssuanceOutcome:
        if not phone:
            raise OtpValidationError("No phone number provided")
        formatted = self._check_phone(phone)
        user = await self.users.find_by_phone(formatted)
        if user is None:
            raise UserNotFoundError("User with this phone number does not exist")

        outcome = await self.otp.request_issuance(user, OtpPurpose.PASSWORD_RESET, formatted)
        outcome.raise_for_delivery(DELIVERY_FAILED[OtpPurpose.PASSWORD_RESET])
        return outcome

    async def reset_password_with_otp(
        self, phone: str, code: str, new_password: str
    ) -> UserAccount:
        new_password = self._clean_password(new_password)
        if not phone or not code or not new_password:
            raise OtpValidationError("Phone number, OTP, and new password are required")
        user = await self.users.find_by_phone(self._check_phone(phone))
        if user is None:
            raise UserNotFoundError("User with this phone number does not exist")

        self.otp.consume_code(user, OtpPurpose.PASSWORD_RESET, code)
        user.password_hash = hash_password(new_password)
        user = await self.users.save(user)
        logger.info("Password reset with OTP for user %s", user.id)
        return user

    # ---------------- Password reset (emailed link) ----------------

    async def generate_reset_token(self, email: str) -> None:
        if not email:
            raise ValidationError("No email provided")
        user = await self.users.find_by_email(email.strip())
        if user is None:
            raise UserNotFoundError("User with this email does not exist")

        token = secrets.token_hex(20)
        user.reset_password_token = token
        user.reset_password_expires = self.otp.clock() + timedelta(
            minutes=self.otp.policy.expiry_minutes
        )
        await self.users.save(user)

        try:
            await self.mail.send_reset_token(user.email, token, user.display_name)
        except MailDeliveryError as e:
            raise AppError(
                "Failed to send password reset email. Please try again.",
                status_code=502,
            ) from e

    async def reset_password(self, token: str, new_password: str) -> UserAccount:
        new_password = self._clean_password(new_password)
        if not token or not new_password:
            raise ValidationError("Token or password not provided")
        user = await self.users.find_by_reset_token(token)
        if (
            user is None
            or user.reset_password_expires is None
            or user.reset_password_expires <= self.otp.clock()
        ):
            raise InvalidOtpError("Invalid or expired reset token")

        user.password_hash = hash_password(new_password)
        user.reset_password_token = None
        user.reset_password_expires = None
        user = await self.users.save(user)
        logger.info("Password reset with emailed token for user %s", user.id)
        return user
