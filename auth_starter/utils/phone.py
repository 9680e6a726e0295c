"""
Phone number canonicalization.

Numbers are stored and looked up in one international form (``+<cc><digits>``).
Each supported country is a ``PhoneFormat`` entry keyed by its dialing code;
new countries are added with ``register_phone_format`` without touching the
OTP flows. Unknown country codes fall back to a generic international pattern.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional, Pattern

from auth_starter.utils.logger import get_logger

logger = get_logger("phone")

GENERIC_PHONE_PATTERN = re.compile(r"^\+[0-9]{1,3}[0-9]{7,14}$")

# (cleaned number, country code) -> formatted number, or None when the rule does not apply
LocalRule = Callable[[str, str], Optional[str]]


@dataclass(frozen=True)
class PhoneFormat:
    country_code: str
    name: str
    pattern: Pattern[str]
    local_rule: LocalRule | None = None


@dataclass(frozen=True)
class PhoneValidation:
    is_valid: bool
    formatted_number: str | None = None
    error: str | None = None


def _nigeria_local(cleaned: str, country_code: str) -> str | None:
    # 0XXXXXXXXXX -> +234XXXXXXXXXX
    if cleaned.startswith("0") and len(cleaned) == 11:
        return country_code + cleaned[1:]
    return None


def _nanp_local(cleaned: str, country_code: str) -> str | None:
    if len(cleaned) == 10:
        return country_code + cleaned
    return None


_FORMATS: dict[str, PhoneFormat] = {}


def register_phone_format(fmt: PhoneFormat) -> None:
    """Add or replace the format used for ``fmt.country_code``."""
    _FORMATS[fmt.country_code] = fmt


def get_phone_format(country_code: str) -> PhoneFormat:
    fmt = _FORMATS.get(country_code)
    if fmt is not None:
        return fmt
    return PhoneFormat(
        country_code=country_code,
        name="configured country",
        pattern=GENERIC_PHONE_PATTERN,
    )


register_phone_format(
    PhoneFormat("+234", "Nigeria", re.compile(r"^\+234[0-9]{10}$"), _nigeria_local)
)
register_phone_format(
    PhoneFormat("+1", "USA/Canada", re.compile(r"^\+1[0-9]{10}$"), _nanp_local)
)
register_phone_format(PhoneFormat("+44", "UK", re.compile(r"^\+44[0-9]{10}$")))
register_phone_format(PhoneFormat("+91", "India", re.compile(r"^\+91[0-9]{10}$")))


def clean_phone_number(raw: str) -> str:
    """Drop everything but digits, keeping a single leading '+'."""
    raw = (raw or "").strip()
    digits = re.sub(r"\D", "", raw)
    return "+" + digits if raw.startswith("+") else digits


def format_phone_number(raw: str, country_code: str) -> str:
    """Bring a raw phone number into ``+<cc><digits>`` form."""
    cleaned = clean_phone_number(raw)

    if cleaned.startswith(country_code):
        return cleaned

    # Country code digits without the '+'
    cc_digits = country_code.lstrip("+")
    if cleaned.startswith(cc_digits) and len(cleaned) > len(cc_digits):
        return "+" + cleaned

    fmt = get_phone_format(country_code)
    if fmt.local_rule is not None:
        local = fmt.local_rule(cleaned, country_code)
        if local is not None:
            return local

    return country_code + cleaned.lstrip("0")


class PhoneNormalizer:
    """Formats and validates numbers for one configured country."""

    def __init__(self, country_code: str = "+234", pattern: str | None = None):
        self.country_code = country_code
        self.format = get_phone_format(country_code)
        self.pattern = self.format.pattern
        if pattern:
            try:
                self.pattern = re.compile(pattern)
            except re.error:
                logger.warning(
                    "Invalid SMS_PHONE_REGEX pattern. Using default for %s",
                    country_code,
                )

    def normalize(self, raw: str) -> str:
        return format_phone_number(raw, self.country_code)

    def validate(self, raw: str) -> PhoneValidation:
        if not raw or not raw.strip():
            return PhoneValidation(is_valid=False, error="Phone number is required")

        formatted = self.normalize(raw)
        if not self.pattern.search(formatted):
            return PhoneValidation(
                is_valid=False,
                error=(
                    f"Invalid phone number format for {self.format.name}. "
                    f"Expected format: {self.country_code}XXXXXXXXXX"
                ),
            )
        return PhoneValidation(is_valid=True, formatted_number=formatted)
