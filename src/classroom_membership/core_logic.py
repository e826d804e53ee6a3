from __future__ import annotations

import uuid

from classroom_membership.constants import (
    DEFAULT_CLASSROOM_NAME_MAX_LENGTH,
    DEFAULT_CLASSROOM_NAME_MIN_LENGTH,
)
from classroom_membership.exceptions import ClassroomNameValidationError


def collapse_whitespace(text: str) -> str:
    return " ".join(text.split())


def clean_classroom_name(raw_name: str) -> str:
    """
    Canonical stored form of a classroom name.
    Trims the ends and collapses any internal whitespace run to one space:
    - "  Period   3 Algebra " → "Period 3 Algebra"
    - "Bio\tLab\n2025" → "Bio Lab 2025"
    """
    return collapse_whitespace(raw_name)


def normalize_classroom_name(name: str) -> str:
    """Comparison key for uniqueness checks: cleaned and case-folded."""
    return clean_classroom_name(name).casefold()


def validate_classroom_name(
    cleaned_name: str,
    min_length: int = DEFAULT_CLASSROOM_NAME_MIN_LENGTH,
    max_length: int = DEFAULT_CLASSROOM_NAME_MAX_LENGTH,
) -> str:
    if not cleaned_name or not min_length <= len(cleaned_name) <= max_length:
        raise ClassroomNameValidationError(cleaned_name, min_length, max_length)
    return cleaned_name


def generate_join_password() -> str:
    """Fresh opaque join secret for a classroom."""
    return str(uuid.uuid4()).upper()
