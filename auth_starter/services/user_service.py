"""Admin user management."""

from typing import Any, Dict, List

from auth_starter.constants import OtpPurpose
from auth_starter.errors import UserNotFoundError, ValidationError
from auth_starter.models import UserAccount
from auth_starter.security import hash_password
from auth_starter.services.auth_service import EMAIL_RE
from auth_starter.services.otp_service import PURPOSES
from auth_starter.services.sms_service import SmsService
from auth_starter.services.user_repository import UserRepository
from auth_starter.utils.logger import get_logger

logger = get_logger("users")

EDITABLE_FIELDS = {"first_name", "last_name", "role", "is_active"}

# address field -> verification purpose it belongs to
ADDRESS_PURPOSES = {
    "phone": OtpPurpose.PHONE_VERIFY,
    "email": OtpPurpose.EMAIL_VERIFY,
}


def reset_verification(user: UserAccount, address_field: str) -> None:
    """Mark a changed phone/email unverified and drop its pending code."""
    fields = PURPOSES[ADDRESS_PURPOSES[address_field]]
    setattr(user, fields.verified_field, False)
    setattr(user, fields.code_field, None)
    setattr(user, fields.expires_field, None)


class UserService:
    def __init__(self, users: UserRepository, sms: SmsService):
        self.users = users
        self.sms = sms

    async def list_users(self, *, limit: int = 10, skip: int = 0) -> List[UserAccount]:
        return await self.users.list_users(limit=limit, skip=skip)

    async def get_user(self, user_id: str) -> UserAccount:
        user = await self.users.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError(f"User with ID {user_id} not found")
        return user

    def _canonical_address(self, name: str, value: str) -> str:
        if name == "phone":
            check = self.sms.validate_phone_number(value)
            if not check.is_valid:
                raise ValidationError(check.error or "Invalid phone number")
            return check.formatted_number
        email = value.strip()
        if not EMAIL_RE.match(email):
            raise ValidationError("Invalid email format")
        return email

    async def update_user(self, user_id: str, changes: Dict[str, Any]) -> UserAccount:
        """Apply a partial update.

        ``password`` is re-hashed. A new phone or email is canonicalized and,
        when it differs from the stored one, loses its verified flag and any
        pending verification code.
        """
        user = await self.get_user(user_id)

        for name, value in changes.items():
            if value is None:
                continue
            if name == "password":
                password = value.strip()
                if not password:
                    raise ValidationError("Password is required")
                user.password_hash = hash_password(password)
            elif name in ADDRESS_PURPOSES:
                address = self._canonical_address(name, value)
                if address != getattr(user, name):
                    setattr(user, name, address)
                    reset_verification(user, name)
            elif name in EDITABLE_FIELDS:
                setattr(user, name, value)

        user = await self.users.save(user)
        logger.info("User %s updated (%s)", user_id, ", ".join(sorted(changes)))
        return user

    async def delete_user(self, user_id: str) -> None:
        if not await self.users.delete(user_id):
            raise UserNotFoundError(f"User with ID {user_id} not found")
        logger.info("User %s deleted", user_id)
