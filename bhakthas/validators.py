"""Shared validation utilities.

Each helper returns the normalized value or raises ``ValidationError`` with
a message suitable for showing next to the offending field.
"""
from __future__ import annotations

import re
from datetime import date, datetime, time, timezone

from .errors import ValidationError

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
PHONE_PATTERN = re.compile(r"^[0-9]{10}$")


def require_text(payload: dict, field: str, max_length: int = 100) -> str:
    value = (payload.get(field) or "")
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    value = value.strip()
    if not value:
        raise ValidationError(f"{field} is required")
    if len(value) > max_length:
        raise ValidationError(f"{field} must be less than {max_length} characters")
    return value


def optional_text(payload: dict, field: str, max_length: int = 2000) -> str | None:
    value = payload.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(f"{field} must be less than {max_length} characters")
    return value or None


def validate_email(email: str | None) -> str:
    email = (email or "").strip().lower()
    if not email:
        raise ValidationError("email is required")
    if len(email) > 255 or not EMAIL_PATTERN.match(email):
        raise ValidationError("Invalid email address")
    return email


def validate_phone(phone: str | None) -> str:
    phone = (phone or "").strip()
    if not PHONE_PATTERN.match(phone):
        raise ValidationError("Phone must be exactly 10 digits")
    return phone


def validate_coordinates(latitude, longitude) -> tuple[float, float]:
    try:
        lat = float(latitude)
        lng = float(longitude)
    except (TypeError, ValueError):
        raise ValidationError("latitude and longitude must be numbers") from None
    if not -90 <= lat <= 90:
        raise ValidationError("latitude must be between -90 and 90")
    if not -180 <= lng <= 180:
        raise ValidationError("longitude must be between -180 and 180")
    return lat, lng


def validate_rating(rating) -> float:
    try:
        value = float(rating)
    except (TypeError, ValueError):
        raise ValidationError("rating must be a number") from None
    if not 0 <= value <= 5:
        raise ValidationError("rating must be between 0 and 5")
    return value


def positive_int(value, field: str, minimum: int = 1) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer") from None
    if number < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    return number


def parse_date(value, field: str) -> date:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a valid ISO date (YYYY-MM-DD)") from None


def parse_time(value, field: str) -> time:
    try:
        return datetime.strptime(value, "%H:%M").time()
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a time in HH:MM format") from None


def parse_datetime(value, field: str) -> datetime | None:
    if value in (None, ""):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        raise ValidationError(f"{field} must be a valid ISO format datetime") from None
    # Stored as naive UTC
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
