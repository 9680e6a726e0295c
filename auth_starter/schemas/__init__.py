from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Optional

from auth_starter.constants import MarketingCategory, Role

# -------------------- Auth Schemas --------------------


class SignUpIn(BaseModel):
    first_name: str = Field(..., min_length=3)
    last_name: str = Field(..., min_length=3)
    # format is checked by the service so the error message stays readable
    email: str
    phone: str
    password: str = Field(..., min_length=6)


class LoginIn(BaseModel):
    email: str
    password: str


class VerifyPhoneIn(BaseModel):
    phone: str
    otp: str


class VerifyEmailIn(BaseModel):
    email: str
    otp: str


class EmailIn(BaseModel):
    """Body for resend-verification-otp and forgot-password-email."""

    email: str


class SendVerificationOtpIn(BaseModel):
    type: str = Field(..., description="phone|mail")


class ForgotPasswordIn(BaseModel):
    phone: str


class ResetPasswordIn(BaseModel):
    phone: str
    otp: str
    new_password: str = Field(..., min_length=6)


class NewPasswordIn(BaseModel):
    new_password: str = Field(..., min_length=6)


class MessageOut(BaseModel):
    message: str


class OtpSentOut(MessageOut):
    expires_at: datetime


class LoginOut(BaseModel):
    message: str
    access_token: str
    token_type: str = "bearer"


# -------------------- User Schemas --------------------


class UserOut(BaseModel):
    id: str
    first_name: str
    last_name: str
    email: str
    phone: str
    role: Role
    is_active: bool
    is_phone_verified: bool
    is_email_verified: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SignUpOut(BaseModel):
    message: str
    user: UserOut
    mail_error: bool = False


class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=3)
    last_name: Optional[str] = Field(None, min_length=3)
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[Role] = None
    is_active: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=6)


# -------------------- Notification Schemas --------------------


class PreferenceUpdate(BaseModel):
    email: Optional[str] = None
    opted_in: Optional[bool] = None
    subscribed_categories: Optional[List[MarketingCategory]] = None


class PreferenceOut(BaseModel):
    user_id: str
    email: str
    opted_in: bool
    subscribed_categories: List[MarketingCategory]
    opt_out_date: Optional[datetime] = None
    last_email_sent: Optional[datetime] = None

    class Config:
        from_attributes = True
