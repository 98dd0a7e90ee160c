"""Input checks shared by the lifecycle services."""

from __future__ import annotations

from servicedesk.errors import InvalidInputError


def required_text(value: str | None, field_name: str) -> str:
    """Return ``value`` stripped, or raise when it is missing or blank."""

    cleaned = (value or "").strip()
    if not cleaned:
        raise InvalidInputError(f"{field_name} is required")
    return cleaned


def optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def rating_value(value: object) -> int:
    # bool is an int subclass; True must not count as a rating of 1
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
        raise InvalidInputError("Rating must be a number between 1 and 5")
    return value


def positive_id(value: object, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidInputError(f"{field_name} is required")
    return value
