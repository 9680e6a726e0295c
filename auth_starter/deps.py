from fastapi import Depends

from auth_starter.config import get_settings
from auth_starter.security import get_current_user
from auth_starter.services.auth_service import AuthService
from auth_starter.services.mail_service import MailService
from auth_starter.services.otp_service import OtpPolicy, OtpService
from auth_starter.services.preference_repository import (
    PreferenceRepository,
    get_preference_repository,
)
from auth_starter.services.preference_service import PreferenceService
from auth_starter.services.sms_service import SmsService
from auth_starter.services.user_repository import UserRepository, get_user_repository
from auth_starter.services.user_service import UserService


def get_sms_service() -> SmsService:
    return SmsService(get_settings())


def get_mail_service() -> MailService:
    return MailService(get_settings())


def get_otp_service(
    users: UserRepository = Depends(get_user_repository),
    sms: SmsService = Depends(get_sms_service),
    mail: MailService = Depends(get_mail_service),
) -> OtpService:
    return OtpService(users, sms, mail, policy=OtpPolicy.from_settings(get_settings()))


def get_auth_service(
    users: UserRepository = Depends(get_user_repository),
    otp: OtpService = Depends(get_otp_service),
    sms: SmsService = Depends(get_sms_service),
    mail: MailService = Depends(get_mail_service),
) -> AuthService:
    return AuthService(users, otp, sms, mail)


def get_user_service(
    users: UserRepository = Depends(get_user_repository),
    sms: SmsService = Depends(get_sms_service),
) -> UserService:
    return UserService(users, sms)


def get_preference_service(
    preferences: PreferenceRepository = Depends(get_preference_repository),
    users: UserRepository = Depends(get_user_repository),
) -> PreferenceService:
    return PreferenceService(preferences, users)


# Common dependencies used across routers
CurrentUser = Depends(get_current_user)
