"""Tests for delivery-then-persist: failed sends still store the code."""

import pytest

from auth_starter.constants import OtpPurpose
from auth_starter.errors import OtpDeliveryError, OtpPersistenceError


class TestDeliverySuccess:
    async def test_phone_code_sent_by_sms(self, make_user, repo, otp_service, sms):
        user = await make_user()

        outcome = await otp_service.request_issuance(user, OtpPurpose.PHONE_VERIFY, user.phone)

        assert outcome.persisted and outcome.delivered
        assert outcome.error is None
        code = repo.stored(user.id).phone_verification_otp
        assert sms.sent[-1][0] == "+2348012345678"
        assert code in sms.sent[-1][1]

    async def test_email_code_sent_by_mail(self, make_user, repo, otp_service, mail):
        user = await make_user()

        await otp_service.request_issuance(user, OtpPurpose.EMAIL_VERIFY, user.email)

        sent = mail.outbox[-1]
        assert sent.to == "ada@example.com"
        assert sent.subject == "Email Verification"
        assert repo.stored(user.id).email_verification_otp in sent.plain

    async def test_expiry_is_ten_minutes(self, make_user, otp_service, clock):
        user = await make_user()

        outcome = await otp_service.request_issuance(user, OtpPurpose.PASSWORD_RESET, user.phone)

        assert (outcome.expires_at - clock()).total_seconds() == 600
        outcome.raise_for_delivery()


class TestDeliveryFailure:
    async def test_sms_failure_still_persists(self, make_user, repo, otp_service, sms, clock):
        user = await make_user()
        sms.fail_with = "Termii error 500"

        outcome = await otp_service.request_issuance(user, OtpPurpose.PHONE_VERIFY, user.phone)

        assert outcome.persisted is True
        assert outcome.delivered is False
        assert outcome.error == "Termii error 500"
        stored = repo.stored(user.id)
        assert stored.phone_verification_otp is not None
        assert stored.otp_request_count == 1
        assert stored.last_otp_request_time == clock()

    async def test_undelivered_code_still_validates(self, make_user, repo, otp_service, mail):
        user = await make_user()
        mail.fail_with = "Connection refused"

        outcome = await otp_service.request_issuance(user, OtpPurpose.EMAIL_VERIFY, user.email)
        assert not outcome.delivered

        code = repo.stored(user.id).email_verification_otp
        await otp_service.validate_code(
            await repo.find_by_id(user.id), OtpPurpose.EMAIL_VERIFY, code
        )
        assert repo.stored(user.id).is_email_verified is True

    async def test_failed_delivery_consumes_quota(self, make_user, repo, otp_service, sms, clock):
        user = await make_user()
        sms.fail_with = "timeout"
        for _ in range(3):
            await otp_service.request_issuance(
                await repo.find_by_id(user.id), OtpPurpose.PASSWORD_RESET, user.phone
            )
            clock.advance(minutes=6)

        assert repo.stored(user.id).otp_request_count == 3

    async def test_raise_for_delivery(self, make_user, otp_service, sms):
        user = await make_user()
        sms.fail_with = "timeout"
        outcome = await otp_service.request_issuance(user, OtpPurpose.PHONE_VERIFY, user.phone)

        with pytest.raises(OtpDeliveryError) as exc_info:
            outcome.raise_for_delivery("Failed to send verification SMS.")
        assert exc_info.value.status_code == 502
        assert exc_info.value.outcome is outcome
        assert exc_info.value.detail == "Failed to send verification SMS."


class TestStoreFailure:
    async def test_delivered_but_not_saved(self, make_user, repo, otp_service, sms):
        user = await make_user()
        repo.fail_saves_with = "connection reset"

        outcome = await otp_service.request_issuance(user, OtpPurpose.PHONE_VERIFY, user.phone)

        assert outcome.delivered is True
        assert outcome.persisted is False
        assert outcome.error == "connection reset"
        assert len(sms.sent) == 1
        stored = repo.stored(user.id)
        assert stored.phone_verification_otp is None
        assert stored.otp_request_count == 0

    async def test_nothing_saved_leaves_throttle_open(self, make_user, repo, otp_service):
        user = await make_user()
        repo.fail_saves_with = "connection reset"
        await otp_service.request_issuance(user, OtpPurpose.PHONE_VERIFY, user.phone)
        repo.fail_saves_with = None

        outcome = await otp_service.request_issuance(
            await repo.find_by_id(user.id), OtpPurpose.PHONE_VERIFY, user.phone
        )

        assert outcome.persisted is True
        assert outcome.request_count == 1

    async def test_neither_sent_nor_saved_keeps_delivery_error(
        self, make_user, repo, otp_service, mail
    ):
        user = await make_user()
        repo.fail_saves_with = "connection reset"
        mail.fail_with = "SMTP down"

        outcome = await otp_service.request_issuance(user, OtpPurpose.EMAIL_VERIFY, user.email)

        assert outcome.persisted is False
        assert outcome.delivered is False
        assert outcome.error == "SMTP down"

    async def test_raise_for_delivery_reports_missing_save_first(self, make_user, repo, otp_service):
        user = await make_user()
        repo.fail_saves_with = "connection reset"
        outcome = await otp_service.request_issuance(user, OtpPurpose.PHONE_VERIFY, user.phone)

        with pytest.raises(OtpPersistenceError) as exc_info:
            outcome.raise_for_delivery("Failed to send verification SMS.")
        assert exc_info.value.status_code == 503
        assert exc_info.value.outcome is outcome
