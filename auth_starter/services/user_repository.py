"""
User record store.

Services load a ``UserAccount`` working copy, mutate it and hand it back to
``save``. Saves replace the whole document without a version check, so two
requests racing on the same user resolve as last-write-wins. Driver failures
on save surface as ``StoreError``; unique-index clashes as ``DuplicateUserError``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol

from beanie import PydanticObjectId as OID
from bson.errors import InvalidId
from pymongo.errors import DuplicateKeyError, PyMongoError

from auth_starter.errors import DuplicateUserError, StoreError, UserNotFoundError
from auth_starter.models import User, UserAccount, UserFields

_FIELDS = set(UserFields.model_fields)


class UserRepository(Protocol):
    async def find_by_id(self, user_id: str) -> UserAccount | None: ...

    async def find_by_phone(self, phone: str) -> UserAccount | None: ...

    async def find_by_email(self, email: str) -> UserAccount | None: ...

    async def find_by_reset_token(self, token: str) -> UserAccount | None: ...

    async def save(self, user: UserAccount) -> UserAccount: ...

    async def list_users(self, limit: int = 10, skip: int = 0) -> list[UserAccount]: ...

    async def delete(self, user_id: str) -> bool: ...


def to_account(doc: User) -> UserAccount:
    return UserAccount(id=str(doc.id), **doc.model_dump(include=_FIELDS))


def _duplicate_field(exc: DuplicateKeyError) -> str | None:
    key_pattern = (exc.details or {}).get("keyPattern") or {}
    for field in ("email", "phone"):
        if field in key_pattern:
            return field
    return None


def _parse_id(user_id: str) -> OID | None:
    try:
        return OID(user_id)
    except (InvalidId, TypeError):
        return None


class BeanieUserRepository:
    """UserRepository backed by the Beanie ``User`` document."""

    async def find_by_id(self, user_id: str) -> UserAccount | None:
        oid = _parse_id(user_id)
        if oid is None:
            return None
        doc = await User.get(oid)
        return to_account(doc) if doc else None

    async def find_by_phone(self, phone: str) -> UserAccount | None:
        doc = await User.find_one(User.phone == phone)
        return to_account(doc) if doc else None

    async def find_by_email(self, email: str) -> UserAccount | None:
        doc = await User.find_one(User.email == email)
        return to_account(doc) if doc else None

    async def find_by_reset_token(self, token: str) -> UserAccount | None:
        doc = await User.find_one(User.reset_password_token == token)
        return to_account(doc) if doc else None

    async def save(self, user: UserAccount) -> UserAccount:
        user.updated_at = datetime.now(timezone.utc)
        try:
            if user.id is None:
                doc = User(**user.model_dump(include=_FIELDS))
                await doc.insert()
                user.id = str(doc.id)
                return user

            oid = _parse_id(user.id)
            doc = await User.get(oid) if oid is not None else None
            if doc is None:
                raise UserNotFoundError()
            for name in _FIELDS:
                setattr(doc, name, getattr(user, name))
            await doc.save()
        except DuplicateKeyError as exc:
            raise DuplicateUserError(_duplicate_field(exc)) from exc
        except PyMongoError as exc:
            raise StoreError() from exc
        return user

    async def list_users(self, limit: int = 10, skip: int = 0) -> list[UserAccount]:
        docs = await User.find_all().sort(-User.created_at).skip(skip).limit(limit).to_list()
        return [to_account(d) for d in docs]

    async def delete(self, user_id: str) -> bool:
        oid = _parse_id(user_id)
        doc = await User.get(oid) if oid is not None else None
        if doc is None:
            return False
        await doc.delete()
        return True


def get_user_repository() -> UserRepository:
    """FastAPI dependency; tests override it with an in-memory store."""
    return BeanieUserRepository()
