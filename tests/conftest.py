"""
Shared test fixtures.

Provides:
  • a Settings instance that never reads .env
  • a controllable clock
  • in-memory user and preference repositories (no MongoDB)
  • SMS / mail fakes that record what would have been sent
  • a FastAPI TestClient wired to all of the above

The client is created without entering the app lifespan, so startup never
tries to reach MongoDB.
"""

from __future__ import annotations

import os

# Before any auth_starter import: the logger reads these at import time
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("SMS_PROVIDER", "dummy")
os.environ.setdefault("SMTP_ENABLED", "false")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from auth_starter.config import Settings
from auth_starter.deps import get_mail_service, get_otp_service, get_sms_service
from auth_starter.main import app
from auth_starter.models import UserAccount
from auth_starter.security import hash_password
from auth_starter.services.auth_service import AuthService
from auth_starter.services.otp_service import OtpPolicy, OtpService
from auth_starter.services.preference_repository import get_preference_repository
from auth_starter.services.preference_service import PreferenceService
from auth_starter.services.user_repository import get_user_repository
from tests.mocks.repositories import InMemoryPreferenceRepository, InMemoryUserRepository
from tests.mocks.services import FakeMailService, FakeSmsService

# Server timezone used by the clock fixture; local midnight != UTC midnight
LAGOS = timezone(timedelta(hours=1), "WAT")

PASSWORD = "Password@123"


# ── Helpers ────────────────────────────────────────────────────────────────


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now

    def set(self, now: datetime) -> datetime:
        self.now = now
        return self.now


# ── Fixtures ───────────────────────────────────────────────────────────────


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        LOG_TO_FILE=False,
        SMS_PROVIDER="dummy",
        SMS_COUNTRY_CODE="+234",
        SMTP_ENABLED="false",
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 5, 10, 9, 0, tzinfo=LAGOS))


@pytest.fixture()
def repo() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture()
def preference_repo() -> InMemoryPreferenceRepository:
    return InMemoryPreferenceRepository()


@pytest.fixture()
def sms(settings) -> FakeSmsService:
    return FakeSmsService(settings)


@pytest.fixture()
def mail(settings) -> FakeMailService:
    return FakeMailService(settings)


@pytest.fixture()
def otp_service(repo, sms, mail, clock) -> OtpService:
    return OtpService(
        repo,
        sms,
        mail,
        policy=OtpPolicy(expiry_minutes=10, daily_limit=3, min_interval_minutes=5),
        clock=clock,
    )


@pytest.fixture()
def auth_service(repo, otp_service, sms, mail) -> AuthService:
    return AuthService(repo, otp_service, sms, mail)


@pytest.fixture()
def preference_service(preference_repo, repo, clock) -> PreferenceService:
    return PreferenceService(preference_repo, repo, clock=clock)


@pytest.fixture()
def make_user(repo):
    """Factory saving a user straight into the repository."""

    async def _make_user(**overrides) -> UserAccount:
        fields = {
            "first_name": "Ada",
            "last_name": "Obi",
            "email": "ada@example.com",
            "phone": "+2348012345678",
            "password_hash": hash_password(PASSWORD),
        }
        fields.update(overrides)
        return await repo.save(UserAccount(**fields))

    return _make_user


@pytest.fixture()
def client(monkeypatch, repo, preference_repo, sms, mail, otp_service) -> TestClient:
    """TestClient with in-memory store, fake delivery and no rate limiting."""
    from auth_starter.rate_limit import limiter

    monkeypatch.setattr(limiter, "enabled", False)

    app.dependency_overrides[get_user_repository] = lambda: repo
    app.dependency_overrides[get_preference_repository] = lambda: preference_repo
    app.dependency_overrides[get_sms_service] = lambda: sms
    app.dependency_overrides[get_mail_service] = lambda: mail
    app.dependency_overrides[get_otp_service] = lambda: otp_service

    yield TestClient(app, raise_server_exceptions=False)

    app.dependency_overrides.clear()
