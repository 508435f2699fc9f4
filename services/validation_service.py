"""
Validation service: normalize and check roster input

Pure computation, no database access. Everything here runs before a store
write, so an invalid request never reaches the database.
"""
from typing import Optional

from core.exceptions import ValidationError
from models import NAME_MAX_LENGTH, SECTION_MAX_LENGTH


def normalize_section(section: Optional[str]) -> str:
    """
    Strip and validate a classroom section

    Args:
        section: raw section text, e.g. " a "

    Returns:
        the stripped section, original case preserved ("a")

    Raises:
        ValidationError: empty or longer than SECTION_MAX_LENGTH
    """
    value = (section or "").strip()
    if not value:
        raise ValidationError("Section is required")
    if len(value) > SECTION_MAX_LENGTH:
        raise ValidationError(
            f"Section must be at most {SECTION_MAX_LENGTH} characters, got {len(value)}"
        )
    return value


def section_key(section: str) -> str:
    """Case-insensitive lookup key for a section"""
    return section.strip().lower()


def validate_grade(grade) -> int:
    """
    Grades are positive integers

    bool is rejected explicitly since it is an int subclass.
    """
    if isinstance(grade, bool) or not isinstance(grade, int):
        raise ValidationError(f"Grade must be an integer, got {grade!r}")
    if grade < 1:
        raise ValidationError(f"Grade must be positive, got {grade}")
    return grade


def normalize_name(value: Optional[str], field: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{field} is required")
    if len(value) > NAME_MAX_LENGTH:
        raise ValidationError(f"{field} must be at most {NAME_MAX_LENGTH} characters")
    return value


def normalize_photo(photo_url: Optional[str]) -> Optional[str]:
    """Empty photo references are stored as NULL (no photo)"""
    if photo_url is None:
        return None
    value = photo_url.strip()
    return value or None
