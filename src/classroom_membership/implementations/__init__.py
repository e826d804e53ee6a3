"""Implementations module for the classroom membership core."""

from .classroom_lifecycle_manager_impl import ClassroomLifecycleManagerImpl
from .member_roster_impl import MemberRosterImpl
from .membership_index_impl import MembershipIndex
from .pagination_cursor_manager_impl import PaginationCursorManagerImpl
from .storage_gateway_memory_impl import InMemoryStorageGateway
from .uniqueness_checker_impl import ClassroomNameUniquenessChecker
from .user_directory_impl import UserDirectory

__all__ = [
    "InMemoryStorageGateway",
    "MembershipIndex",
    "UserDirectory",
    "ClassroomNameUniquenessChecker",
    "ClassroomLifecycleManagerImpl",
    "PaginationCursorManagerImpl",
    "MemberRosterImpl",
]
