from fastapi import APIRouter, Depends, Request

from auth_starter.deps import CurrentUser, get_auth_service
from auth_starter.models import UserAccount
from auth_starter.rate_limit import OTP_SEND_LIMIT, OTP_VERIFY_LIMIT, limiter
from auth_starter.schemas import (
    EmailIn,
    ForgotPasswordIn,
    LoginIn,
    LoginOut,
    MessageOut,
    NewPasswordIn,
    OtpSentOut,
    ResetPasswordIn,
    SendVerificationOtpIn,
    SignUpIn,
    SignUpOut,
    UserOut,
    VerifyEmailIn,
    VerifyPhoneIn,
)
from auth_starter.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=SignUpOut, status_code=201)
@limiter.limit(OTP_SEND_LIMIT)
async def route_signup(
    request: Request,
    payload: SignUpIn,
    auth: AuthService = Depends(get_auth_service),
):
    """Create an account and mail an email-verification OTP.
    Rate limit: 5 requests per minute per IP.
    """
    result = await auth.sign_up(**payload.model_dump())
    return SignUpOut(
        message=result.message,
        user=UserOut.model_validate(result.user),
        mail_error=result.mail_error,
    )


@router.post("/login", response_model=LoginOut)
async def route_login(payload: LoginIn, auth: AuthService = Depends(get_auth_service)):
    result = await auth.log_in(email=payload.email, password=payload.password)
    return LoginOut(message=result.message, access_token=result.access_token)


@router.post("/verify-phone", response_model=MessageOut)
@limiter.limit(OTP_VERIFY_LIMIT)
async def route_verify_phone(
    request: Request,
    payload: VerifyPhoneIn,
    auth: AuthService = Depends(get_auth_service),
):
    await auth.verify_phone(payload.phone, payload.otp)
    return MessageOut(message="Phone number verified successfully")


@router.post("/verify-email", response_model=MessageOut)
@limiter.limit(OTP_VERIFY_LIMIT)
async def route_verify_email(
    request: Request,
    payload: VerifyEmailIn,
    auth: AuthService = Depends(get_auth_service),
):
    await auth.verify_email_otp(payload.email, payload.otp)
    return MessageOut(message="Email verified successfully")


@router.post("/resend-verification-otp", response_model=OtpSentOut)
@limiter.limit(OTP_SEND_LIMIT)
async def route_resend_verification_otp(
    request: Request,
    payload: EmailIn,
    auth: AuthService = Depends(get_auth_service),
):
    outcome = await auth.resend_verification_otp(payload.email)
    return OtpSentOut(
        message="Verification OTP sent successfully",
        expires_at=outcome.expires_at,
    )


@router.post("/send-verification-otp", response_model=OtpSentOut)
@limiter.limit(OTP_SEND_LIMIT)
async def route_send_verification_otp(
    request: Request,
    payload: SendVerificationOtpIn,
    current: UserAccount = CurrentUser,
    auth: AuthService = Depends(get_auth_service),
):
    """Send a phone (SMS) or mail verification OTP to the logged-in user."""
    outcome = await auth.generate_verification_otp(current.id, payload.type)
    return OtpSentOut(
        message="Verification OTP sent successfully",
        expires_at=outcome.expires_at,
    )


@router.post("/forgot-password", response_model=OtpSentOut)
@limiter.limit(OTP_SEND_LIMIT)
async def route_forgot_password(
    request: Request,
    payload: ForgotPasswordIn,
    auth: AuthService = Depends(get_auth_service),
):
    outcome = await auth.generate_password_reset_otp(payload.phone)
    return OtpSentOut(
        message="Password reset OTP sent to your phone number.",
        expires_at=outcome.expires_at,
    )


@router.post("/reset-password", response_model=MessageOut)
@limiter.limit(OTP_VERIFY_LIMIT)
async def route_reset_password(
    request: Request,
    payload: ResetPasswordIn,
    auth: AuthService = Depends(get_auth_service),
):
    await auth.reset_password_with_otp(payload.phone, payload.otp, payload.new_password)
    return MessageOut(message="Password has been successfully reset.")


@router.post("/forgot-password-email", response_model=MessageOut)
@limiter.limit(OTP_SEND_LIMIT)
async def route_forgot_password_email(
    request: Request,
    payload: EmailIn,
    auth: AuthService = Depends(get_auth_service),
):
    await auth.generate_reset_token(payload.email)
    return MessageOut(
        message="Password reset link sent to your email. Check your spam folder"
    )


@router.post("/reset-password/{token}", response_model=MessageOut)
@limiter.limit(OTP_VERIFY_LIMIT)
async def route_reset_password_token(
    request: Request,
    token: str,
    payload: NewPasswordIn,
    auth: AuthService = Depends(get_auth_service),
):
    await auth.reset_password(token, payload.new_password)
    return MessageOut(message="Password has been successfully reset.")


@router.get("/me", response_model=UserOut)
async def route_me(current: UserAccount = CurrentUser):
    return UserOut.model_validate(current)
