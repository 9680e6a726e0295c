"""Marketing preference store, one record per user id."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol

from pymongo.errors import DuplicateKeyError, PyMongoError

from auth_starter.errors import AppError, StoreError
from auth_starter.models import MarketingPreference, PreferenceAccount, PreferenceFields

_FIELDS = set(PreferenceFields.model_fields)


class PreferenceRepository(Protocol):
    async def find_by_user_id(self, user_id: str) -> PreferenceAccount | None: ...

    async def save(self, preference: PreferenceAccount) -> PreferenceAccount: ...


def to_preference(doc: MarketingPreference) -> PreferenceAccount:
    return PreferenceAccount(id=str(doc.id), **doc.model_dump(include=_FIELDS))


class BeaniePreferenceRepository:
    async def find_by_user_id(self, user_id: str) -> PreferenceAccount | None:
        doc = await MarketingPreference.find_one(MarketingPreference.user_id == user_id)
        return to_preference(doc) if doc else None

    async def save(self, preference: PreferenceAccount) -> PreferenceAccount:
        preference.updated_at = datetime.now(timezone.utc)
        try:
            doc = await MarketingPreference.find_one(
                MarketingPreference.user_id == preference.user_id
            )
            if doc is None:
                doc = MarketingPreference(**preference.model_dump(include=_FIELDS))
                await doc.insert()
            else:
                for name in _FIELDS:
                    setattr(doc, name, getattr(preference, name))
                await doc.save()
        except DuplicateKeyError as exc:
            # Another request created the record first
            raise AppError("Preferences were just created; please retry", status_code=409) from exc
        except PyMongoError as exc:
            raise StoreError() from exc
        preference.id = str(doc.id)
        return preference


def get_preference_repository() -> PreferenceRepository:
    return BeaniePreferenceRepository()
