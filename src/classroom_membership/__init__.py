"""Classroom membership core.

Creates and joins classrooms, keeps the denormalized per-classroom membership
index, checks classroom name uniqueness per creator and pages a user's
classrooms by role, all through an abstract document-store gateway.
"""

from classroom_membership.config import Settings, settings
from classroom_membership.connectivity import ConnectivityMonitor
from classroom_membership.di import create_container
from classroom_membership.enums import MemberRole, OutcomeStatus, UniquenessResult
from classroom_membership.exceptions import (
    AlreadyMemberError,
    ClassroomMembershipError,
    ClassroomNameValidationError,
    ClassroomNotFoundError,
    DuplicateClassroomNameError,
    InvalidCursorError,
    NotFoundError,
    PageFetchInProgressError,
    StorageError,
    TransientStorageError,
    UserNotFoundError,
)
from classroom_membership.models import (
    SERVER_TIMESTAMP,
    Classroom,
    ClassroomPage,
    DocumentSnapshot,
    LifecycleOutcome,
    Membership,
    PageCursor,
    PaginationState,
    UserProfile,
)
from classroom_membership.protocols import (
    ClassroomLifecycleManagerProtocol,
    MemberRosterProtocol,
    PaginationCursorManagerProtocol,
    StorageGatewayProtocol,
    UniquenessCheckerProtocol,
)

__all__ = [
    # Configuration and wiring
    "Settings",
    "settings",
    "create_container",
    "ConnectivityMonitor",
    # Protocols
    "StorageGatewayProtocol",
    "UniquenessCheckerProtocol",
    "ClassroomLifecycleManagerProtocol",
    "PaginationCursorManagerProtocol",
    "MemberRosterProtocol",
    # Models
    "SERVER_TIMESTAMP",
    "DocumentSnapshot",
    "Classroom",
    "Membership",
    "UserProfile",
    "ClassroomPage",
    "PageCursor",
    "PaginationState",
    "LifecycleOutcome",
    # Enums
    "MemberRole",
    "OutcomeStatus",
    "UniquenessResult",
    # Errors
    "ClassroomMembershipError",
    "ClassroomNameValidationError",
    "DuplicateClassroomNameError",
    "NotFoundError",
    "ClassroomNotFoundError",
    "UserNotFoundError",
    "AlreadyMemberError",
    "TransientStorageError",
    "InvalidCursorError",
    "PageFetchInProgressError",
    "StorageError",
]
