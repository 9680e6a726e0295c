from slowapi import Limiter
from slowapi.util import get_remote_address

# Global limiter instance reused across the app
limiter = Limiter(key_func=get_remote_address)

# Per-IP limits on top of the per-user OTP throttle
OTP_SEND_LIMIT = "5/minute"
OTP_VERIFY_LIMIT = "10/minute"
