"""Auth starter backend: signup/login with OTP phone/email verification and password reset."""
