"""Custom exception classes for the classroom membership core."""

from __future__ import annotations

from classroom_membership.enums import ClassroomErrorCode


class StorageError(Exception):
    """Raised by a storage gateway when a read or write cannot be completed."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = path


class DocumentNotFoundError(StorageError):
    """Raised by a storage gateway when updating a document that does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Document not found: {path}", path)


class ClassroomMembershipError(Exception):
    """Base exception for classroom membership errors."""

    retryable: bool = True

    def __init__(self, message: str, error_code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class ClassroomNameValidationError(ClassroomMembershipError):
    """Raised when a cleaned classroom name is empty or outside the length bounds."""

    retryable = False

    def __init__(self, name: str, min_length: int, max_length: int) -> None:
        message = (
            f"Classroom name must be between {min_length} and {max_length} characters, "
            f"got {len(name)}"
        )
        super().__init__(message, ClassroomErrorCode.NAME_VALIDATION_ERROR.value)
        self.name = name
        self.min_length = min_length
        self.max_length = max_length


class DuplicateClassroomNameError(ClassroomMembershipError):
    """Raised when the creator already owns a classroom with the same normalized name."""

    retryable = False

    def __init__(self, name: str, user_id: str) -> None:
        message = f"Classroom name already in use by this creator: {name}"
        super().__init__(message, ClassroomErrorCode.DUPLICATE_NAME.value)
        self.name = name
        self.user_id = user_id


class NotFoundError(ClassroomMembershipError):
    """Base class for lookups that found nothing."""

    retryable = False


class ClassroomNotFoundError(NotFoundError):
    """Raised when a classroom is not found by id or join password."""

    def __init__(self, classroom_id: str | None = None) -> None:
        message = (
            f"Classroom not found: {classroom_id}"
            if classroom_id
            else "No classroom matches the given password"
        )
        super().__init__(message, ClassroomErrorCode.CLASSROOM_NOT_FOUND.value)
        self.classroom_id = classroom_id


class UserNotFoundError(NotFoundError):
    """Raised when a user profile document is missing."""

    def __init__(self, user_id: str) -> None:
        message = f"User profile not found: {user_id}"
        super().__init__(message, ClassroomErrorCode.USER_NOT_FOUND.value)
        self.user_id = user_id


class AlreadyMemberError(ClassroomMembershipError):
    """Raised when a user tries to join a classroom they already belong to."""

    retryable = False

    def __init__(self, classroom_id: str, user_id: str) -> None:
        message = f"User {user_id} is already a member of classroom {classroom_id}"
        super().__init__(message, ClassroomErrorCode.ALREADY_MEMBER.value)
        self.classroom_id = classroom_id
        self.user_id = user_id


class TransientStorageError(ClassroomMembershipError):
    """Raised when an underlying read or write failed; the caller may retry."""

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        detail = f": {cause}" if cause else ""
        super().__init__(
            f"Storage failure during {operation}{detail}",
            ClassroomErrorCode.TRANSIENT_STORAGE_ERROR.value,
        )
        self.operation = operation
        self.cause = cause


class InvalidCursorError(ClassroomMembershipError):
    """Raised when a page cursor is reused with a different query configuration."""

    retryable = False

    def __init__(self) -> None:
        super().__init__(
            "Cursor does not belong to this user, role and sort order",
            ClassroomErrorCode.INVALID_CURSOR.value,
        )


class PageFetchInProgressError(ClassroomMembershipError):
    """Raised when a page is requested while another fetch is still outstanding."""

    def __init__(self) -> None:
        super().__init__(
            "A page fetch is already in flight for this manager",
            ClassroomErrorCode.PAGE_FETCH_IN_PROGRESS.value,
        )
