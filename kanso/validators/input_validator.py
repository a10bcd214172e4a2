"""Input validation run before any provider call"""
from typing import Optional

from ..config import settings
from ..errors import ValidationError
from ..schemas.itinerary import UserPreferences
from ..utils.sanitizer import sanitize_input


def validate_destination(destination: Optional[str]) -> str:
    """
    Validate and sanitize a destination name

    Args:
        destination: Raw destination text

    Returns:
        Sanitized destination

    Raises:
        ValidationError: If destination is empty after sanitization
    """
    safe = sanitize_input(destination)
    if not safe:
        raise ValidationError("Destination cannot be empty")
    return safe


def validate_trip_days(days: int) -> None:
    """
    Validate the requested day count

    Raises:
        ValidationError: If days is outside 1..max_trip_days
    """
    if days < 1:
        raise ValidationError(
            "Trip must be at least 1 day long",
            {"days": days}
        )
    if days > settings.max_trip_days:
        raise ValidationError(
            f"Trip duration too long. Maximum is {settings.max_trip_days} days",
            {"days": days, "max_days": settings.max_trip_days}
        )


def validate_travelers(travelers: int) -> None:
    if travelers < 1 or travelers > settings.max_travelers:
        raise ValidationError(
            f"Travelers must be between 1 and {settings.max_travelers}",
            {"travelers": travelers}
        )


def validate_preferences(prefs: UserPreferences) -> dict:
    """
    Validate complete planner preferences

    Args:
        prefs: Preferences from the planner

    Returns:
        dict: Validation metadata (sanitized destination)

    Raises:
        ValidationError: If preferences are invalid
    """
    destination = validate_destination(prefs.destination)
    validate_trip_days(prefs.days)
    validate_travelers(prefs.travelers)
    return {"destination": destination}


def validate_credentials(email: Optional[str], password: Optional[str]) -> str:
    """
    Validate login/signup input

    Args:
        email: Raw email
        password: Plain password (length only; never sanitized before hashing)

    Returns:
        Sanitized email

    Raises:
        ValidationError: If email or password is unacceptable
    """
    safe_email = sanitize_input(email)
    if not safe_email or not password:
        raise ValidationError("Email and password are required.")
    if "@" not in safe_email:
        raise ValidationError("Please enter a valid email address.")
    if len(password) < settings.min_password_length:
        raise ValidationError(f"Password must be at least {settings.min_password_length} characters.")
    return safe_email
