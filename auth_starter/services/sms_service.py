"""
SMS delivery via Termii.

With SMS_PROVIDER=dummy (the default) nothing leaves the process: the message
is logged so the code can be copied from the console or app.log.
Send methods never raise for transport problems; they report them in
``SmsResult`` and let the caller decide.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import httpx

from auth_starter.config import Settings, get_settings
from auth_starter.utils.logger import get_logger
from auth_starter.utils.phone import PhoneNormalizer, PhoneValidation

logger = get_logger("sms")


@dataclass
class SmsResult:
    success: bool
    message_id: str | None = None
    error: str | None = None


@dataclass
class BulkSmsResult:
    total_sent: int = 0
    successful: list[str] = field(default_factory=list)
    failed: list[dict[str, str]] = field(default_factory=list)


class SmsService:
    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings or get_settings()
        self.phones = PhoneNormalizer(
            self.settings.SMS_COUNTRY_CODE, self.settings.SMS_PHONE_REGEX
        )
        self._client = client
        if self.settings.SMS_PROVIDER == "termii" and not self.settings.TERMII_API_KEY:
            logger.warning("Termii API key not configured. SMS functionality will be disabled.")

    def is_configured(self) -> bool:
        if self.settings.SMS_PROVIDER == "dummy":
            return True
        return bool(self.settings.TERMII_API_KEY)

    def validate_phone_number(self, phone: str) -> PhoneValidation:
        return self.phones.validate(phone)

    async def send_sms(self, to: str, message: str) -> SmsResult:
        phone = self.phones.normalize(to)

        if self.settings.SMS_PROVIDER == "dummy":
            logger.info("[SMS] %s => %s", phone, message)
            return SmsResult(success=True)

        if not self.settings.TERMII_API_KEY:
            logger.error("Termii API key not configured. Cannot send SMS.")
            return SmsResult(success=False, error="SMS service not configured")

        payload = {
            "to": phone,
            "from": self.settings.TERMII_SENDER_ID,
            "sms": message,
            "type": "plain",
            "channel": "generic",
            "api_key": self.settings.TERMII_API_KEY,
        }
        logger.info("Sending SMS via Termii to %s: %s...", phone, message[:50])

        try:
            data = await self._post(payload)
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Failed to send SMS to %s: %s", phone, e)
            return SmsResult(success=False, error=str(e))

        if data.get("code") != "ok":
            error = data.get("message") or "Failed to send SMS via Termii"
            logger.error("Failed to send SMS to %s: %s", phone, error)
            return SmsResult(success=False, error=error)

        message_id = data.get("message_id")
        logger.info("SMS sent successfully to %s. Message ID: %s", phone, message_id)
        return SmsResult(success=True, message_id=message_id)

    async def _post(self, payload: dict) -> dict:
        if self._client is not None:
            resp = await self._client.post(self.settings.TERMII_BASE_URL, json=payload)
        else:
            async with httpx.AsyncClient(timeout=self.settings.SMS_TIMEOUT_SECONDS) as client:
                resp = await client.post(self.settings.TERMII_BASE_URL, json=payload)
        if resp.status_code >= 400:
            try:
                detail = resp.json().get("message")
            except ValueError:
                detail = None
            raise httpx.HTTPStatusError(
                f"Termii error {resp.status_code}: {detail or resp.text}",
                request=resp.request,
                response=resp,
            )
        return resp.json()

    async def send_bulk_sms(self, recipients: list[str], message: str) -> BulkSmsResult:
        results = BulkSmsResult()
        for phone in recipients:
            result = await self.send_sms(phone, message)
            if result.success:
                results.successful.append(phone)
                results.total_sent += 1
            else:
                results.failed.append({"phone_number": phone, "error": result.error or ""})
        logger.info(
            "Bulk SMS completed: %d successful, %d failed",
            results.total_sent,
            len(results.failed),
        )
        return results

    async def send_phone_verification_otp(self, phone: str, code: str, first_name: str) -> SmsResult:
        message = (
            f"Hello {first_name}, your {self.settings.APP_NAME} phone verification code is: "
            f"{code}. Valid for {self.settings.OTP_EXPIRY_MINUTES} minutes. "
            "Do not share this OTP with anyone."
        )
        return await self.send_sms(phone, message)

    async def send_password_reset_otp(self, phone: str, code: str, first_name: str) -> SmsResult:
        message = (
            f"Hello {first_name}, your {self.settings.APP_NAME} password reset code is: "
            f"{code}. Valid for {self.settings.OTP_EXPIRY_MINUTES} minutes. "
            "Do not share this OTP with anyone."
        )
        return await self.send_sms(phone, message)
