from __future__ import annotations

from typing import Any, Callable, Protocol, Sequence

from classroom_membership.enums import MemberRole, UniquenessResult
from classroom_membership.models import (
    ClassroomPage,
    DocumentSnapshot,
    LifecycleOutcome,
    Membership,
    PageCursor,
    PaginationState,
)

FieldFilter = tuple[str, Any]


class StorageGatewayProtocol(Protocol):
    """Protocol for the remote document store consumed by the membership core.

    Every method may raise ``StorageError``. Writes resolve ``SERVER_TIMESTAMP``
    values to the store's own clock.
    """

    async def get_document(self, path: str) -> DocumentSnapshot | None: ...

    async def query_equals(
        self,
        collection_path: str,
        field: str,
        value: Any,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        start_after: DocumentSnapshot | None = None,
    ) -> list[DocumentSnapshot]: ...

    async def query_collection_group(
        self,
        group_name: str,
        filters: Sequence[FieldFilter],
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        start_after: DocumentSnapshot | None = None,
    ) -> list[DocumentSnapshot]:
        """Query every sub-collection named ``group_name`` regardless of its parent."""
        ...

    async def list_collection(self, collection_path: str) -> list[DocumentSnapshot]:
        """Return every document of one collection ordered by document id."""
        ...

    async def create_document(self, collection_path: str, data: dict[str, Any]) -> str:
        """Create a document with a store-assigned id and return that id."""
        ...

    async def set_document(self, path: str, data: dict[str, Any]) -> None:
        """Create or overwrite the document at ``path``."""
        ...

    async def update_fields(self, path: str, fields: dict[str, Any]) -> None:
        """Merge ``fields`` into an existing document, raising DocumentNotFoundError if absent."""
        ...

    async def delete_document(self, path: str) -> bool: ...


class UniquenessCheckerProtocol(Protocol):
    """Protocol for the per-creator classroom name uniqueness check."""

    async def is_unique(
        self,
        user_id: str,
        candidate_name: str,
        exclude_classroom_id: str | None = None,
    ) -> UniquenessResult: ...


class ClassroomLifecycleManagerProtocol(Protocol):
    """Protocol for classroom create, rename, password and join operations."""

    async def create(self, user_id: str, raw_name: str) -> LifecycleOutcome: ...

    async def rename(self, classroom_id: str, user_id: str, raw_name: str) -> LifecycleOutcome:
        ...

    async def regenerate_password(self, classroom_id: str) -> LifecycleOutcome: ...

    async def get_password(self, classroom_id: str) -> LifecycleOutcome: ...

    async def join(self, user_id: str, password: str) -> LifecycleOutcome: ...


class PaginationCursorManagerProtocol(Protocol):
    """Protocol for cursor-based listing of a user's classrooms by role."""

    async def page(
        self,
        user_id: str,
        role: MemberRole,
        descending: bool,
        cursor: PageCursor | None = None,
        page_size: int | None = None,
    ) -> ClassroomPage: ...

    def configure(self, user_id: str, role: MemberRole, descending: bool) -> None: ...

    async def load_next_page(self) -> ClassroomPage: ...

    async def refresh(self) -> ClassroomPage: ...

    def reset(self) -> None: ...

    @property
    def state(self) -> PaginationState: ...

    def subscribe(self, listener: Callable[[PaginationState], None]) -> Callable[[], None]: ...


class MemberRosterProtocol(Protocol):
    """Protocol for reading and maintaining a classroom's member list."""

    async def list_members(self, classroom_id: str) -> list[Membership]: ...

    async def remove_member(self, classroom_id: str, user_id: str) -> bool: ...

    async def propagate_user_name(self, user_id: str, new_name: str) -> bool: ...
