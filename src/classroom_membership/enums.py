"""
classroom_membership.enums - Enumerations shared across the membership core.
"""

from __future__ import annotations

from enum import Enum


class Environment(str, Enum):
    """Defines application environments."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class MemberRole(str, Enum):
    """Role a user holds inside a single classroom."""

    CREATOR = "creator"
    MEMBER = "member"


class UniquenessResult(str, Enum):
    """Tri-state answer of the classroom name uniqueness check."""

    UNIQUE = "unique"
    DUPLICATE = "duplicate"
    INDETERMINATE = "indeterminate"


class OutcomeStatus(str, Enum):
    """Result kinds returned at the lifecycle operation boundary."""

    CREATED = "created"
    RENAMED = "renamed"
    REGENERATED = "regenerated"
    FETCHED = "fetched"
    JOINED = "joined"
    REJECTED_INVALID_NAME = "rejected_invalid_name"
    REJECTED_DUPLICATE_NAME = "rejected_duplicate_name"
    NOT_FOUND = "not_found"
    ALREADY_MEMBER = "already_member"
    FAILED = "failed"


class ClassroomErrorCode(str, Enum):
    """
    Specific error codes for the classroom membership core.
    """

    NAME_VALIDATION_ERROR = "NAME_VALIDATION_ERROR"
    DUPLICATE_NAME = "DUPLICATE_NAME"
    CLASSROOM_NOT_FOUND = "CLASSROOM_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    ALREADY_MEMBER = "ALREADY_MEMBER"
    TRANSIENT_STORAGE_ERROR = "TRANSIENT_STORAGE_ERROR"
    INVALID_CURSOR = "INVALID_CURSOR"
    PAGE_FETCH_IN_PROGRESS = "PAGE_FETCH_IN_PROGRESS"
