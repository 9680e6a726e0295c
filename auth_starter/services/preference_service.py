"""
Marketing notification preferences.

A user without a stored record is treated as opted in to promotional mail;
the first read stores that default. Opting out stamps ``opt_out_date``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, List

from auth_starter.constants import MarketingCategory
from auth_starter.errors import UserNotFoundError, ValidationError
from auth_starter.models import PreferenceAccount, UserAccount
from auth_starter.services.auth_service import EMAIL_RE
from auth_starter.services.otp_service import local_now
from auth_starter.services.preference_repository import PreferenceRepository
from auth_starter.services.user_repository import UserRepository
from auth_starter.utils.logger import get_logger

logger = get_logger("preferences")


class PreferenceService:
    def __init__(
        self,
        preferences: PreferenceRepository,
        users: UserRepository,
        clock: Callable[[], datetime] | None = None,
    ):
        self.preferences = preferences
        self.users = users
        self.clock = clock or local_now

    async def _get_user(self, user_id: str) -> UserAccount:
        user = await self.users.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError(f"User with ID {user_id} not found")
        return user

    async def get_preference(self, user_id: str) -> PreferenceAccount:
        """Stored preference for ``user_id``, creating the opted-in default if missing."""
        preference = await self.preferences.find_by_user_id(user_id)
        if preference is not None:
            return preference

        user = await self._get_user(user_id)
        preference = await self.preferences.save(
            PreferenceAccount(user_id=user_id, email=user.email)
        )
        logger.info("Created default marketing preference for user %s", user_id)
        return preference

    async def update_preference(
        self,
        user_id: str,
        *,
        email: str | None = None,
        opted_in: bool | None = None,
        subscribed_categories: List[MarketingCategory] | None = None,
    ) -> PreferenceAccount:
        user = await self._get_user(user_id)
        if email is not None:
            email = email.strip()
            if not EMAIL_RE.match(email):
                raise ValidationError("Invalid email format")
        else:
            email = user.email

        preference = await self.preferences.find_by_user_id(user_id)
        if preference is None:
            preference = PreferenceAccount(user_id=user_id, email=email)
        preference.email = email

        if opted_in is not None:
            if preference.opted_in and not opted_in:
                preference.opt_out_date = self.clock()
            elif opted_in:
                preference.opt_out_date = None
            preference.opted_in = opted_in
        if subscribed_categories is not None:
            # Order kept, duplicates dropped
            preference.subscribed_categories = list(dict.fromkeys(subscribed_categories))

        preference = await self.preferences.save(preference)
        logger.info(
            "Marketing preference for user %s: opted_in=%s categories=%s",
            user_id,
            preference.opted_in,
            ",".join(c.value for c in preference.subscribed_categories),
        )
        return preference
