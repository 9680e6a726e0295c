"""
Email service: sends OTP and reset-link emails via SMTP.

In development (no SMTP configured), emails are logged instead of sent
so the code is visible without a mail server.
"""

from __future__ import annotations

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import aiosmtplib

from auth_starter.config import Settings, get_settings
from auth_starter.utils.logger import get_logger

logger = get_logger("mail")


class MailDeliveryError(RuntimeError):
    pass


class MailService:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    async def send(self, to_email: str, subject: str, html_body: str, plain: str) -> None:
        """Send (or log) one email. Raises MailDeliveryError on SMTP failure."""
        if not self.settings.smtp_enabled:
            logger.info(
                "[DEV] Would send email to %s:\n  Subject: %s\n  %s",
                to_email,
                subject,
                plain,
            )
            return

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.settings.SMTP_FROM_EMAIL
        msg["To"] = to_email
        msg.attach(MIMEText(plain, "plain"))
        msg.attach(MIMEText(html_body, "html"))

        try:
            await aiosmtplib.send(
                msg,
                hostname=self.settings.SMTP_HOST,
                port=self.settings.SMTP_PORT,
                username=self.settings.SMTP_USERNAME,
                password=self.settings.SMTP_PASSWORD,
                start_tls=self.settings.SMTP_USE_TLS,
                timeout=self.settings.SMTP_TIMEOUT_SECONDS,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.exception("Failed to send email to %s", to_email)
            raise MailDeliveryError(str(e)) from e
        logger.info("Email sent to %s (%s)", to_email, subject)

    async def send_verification_otp(self, email: str, code: str, first_name: str) -> None:
        app_name = self.settings.APP_NAME
        minutes = self.settings.OTP_EXPIRY_MINUTES
        html_body = f"""
        <h1>Hello {first_name},</h1>
        <p>Thank you for registering with {app_name}. Please use the following OTP to verify your email address:</p>
        <h2 style="background-color: #f2f2f2; padding: 10px; text-align: center; font-size: 24px; letter-spacing: 5px;">{code}</h2>
        <p>This OTP will expire in {minutes} minutes.</p>
        <p>If you did not create an account with us, please ignore this email.</p>
        """
        plain = f"Your {app_name} email verification code is {code}. It expires in {minutes} minutes."
        await self.send(email, "Email Verification", html_body, plain)

    async def send_reset_token(self, email: str, token: str, first_name: str) -> None:
        reset_url = f"{self.settings.FRONTEND_URL.rstrip('/')}/reset-password/{token}"
        html_body = f"""
        <h1>Hello {first_name},</h1>
        <p>You requested a password reset. Please click the link below to reset your password:</p>
        <a href="{reset_url}">Reset Password</a>
        <p>If you did not request this, please ignore this email.</p>
        <p>This link will expire in {self.settings.OTP_EXPIRY_MINUTES} minutes.</p>
        """
        plain = f"Reset your password: {reset_url}"
        await self.send(email, "Password Reset", html_body, plain)
