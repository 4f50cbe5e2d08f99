"""Data normalization utilities for consistent data quality."""

import re


def normalize_email(email: str | None) -> str | None:
    """Lowercase and strip an email address."""
    if not email:
        return None
    return email.strip().lower()


def normalize_phone(phone: str | None) -> str | None:
    """
    Strip formatting from a phone number.

    Keeps a leading + and digits only: "+1 (555) 123-4567" -> "+15551234567".
    """
    if not phone:
        return None
    phone = phone.strip()
    prefix = "+" if phone.startswith("+") else ""
    digits = re.sub(r"\D", "", phone)
    if not digits:
        return None
    return prefix + digits


def normalize_enum_value(value: str | None) -> str | None:
    """Upper-case a status/priority/plan value from a request body."""
    if value is None:
        return None
    return value.strip().upper()


def parse_tags(raw: str | None) -> list[str]:
    """Parse a comma-separated tag filter."""
    if not raw:
        return []
    return [t.strip() for t in raw.split(",") if t.strip()]
