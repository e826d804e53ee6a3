"""Domain and storage models for the classroom membership core."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from classroom_membership import constants as c
from classroom_membership.enums import MemberRole, OutcomeStatus
from classroom_membership.exceptions import ClassroomMembershipError

# ====================================================================
# Storage Models
# ====================================================================


class ServerTimestamp:
    """Sentinel asking the store to assign its own timestamp on write."""

    _instance: ServerTimestamp | None = None

    def __new__(cls) -> ServerTimestamp:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = ServerTimestamp()


class DocumentSnapshot(BaseModel):
    """Immutable view of one stored document as returned by a gateway read."""

    model_config = ConfigDict(frozen=True)

    id: str
    path: str
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def collection_path(self) -> str:
        return self.path.rsplit("/", 1)[0]

    @property
    def parent_document_path(self) -> str | None:
        """Path of the document owning this document's sub-collection, if any."""
        segments = self.path.split("/")
        if len(segments) < 4:
            return None
        return "/".join(segments[:-2])

    @property
    def parent_document_id(self) -> str | None:
        parent = self.parent_document_path
        return parent.rsplit("/", 1)[-1] if parent else None


# ====================================================================
# Domain Models
# ====================================================================


class UserProfile(BaseModel):
    id: str
    user_id: str
    email: str
    name: str

    @classmethod
    def from_snapshot(cls, snapshot: DocumentSnapshot) -> UserProfile:
        data = snapshot.data
        return cls(
            id=snapshot.id,
            user_id=data.get(c.FIELD_USER_ID, snapshot.id),
            email=data[c.FIELD_EMAIL],
            name=data[c.FIELD_NAME],
        )


class Classroom(BaseModel):
    id: str
    name: str
    created_at: datetime
    created_by_id: str | None = None
    created_by_name: str
    password: str

    @classmethod
    def from_snapshot(cls, snapshot: DocumentSnapshot) -> Classroom:
        data = snapshot.data
        return cls(
            id=snapshot.id,
            name=data[c.FIELD_NAME],
            created_at=data[c.FIELD_CREATED_AT],
            created_by_id=data.get(c.FIELD_CREATED_BY_ID),
            created_by_name=data[c.FIELD_CREATED_BY_NAME],
            password=data[c.FIELD_PASSWORD],
        )


class Membership(BaseModel):
    """One user's role-scoped record under ``classrooms/{classroom_id}/members``."""

    id: str
    classroom_id: str
    user_id: str
    email: str
    name: str
    role: MemberRole
    classroom_created_at: datetime

    @classmethod
    def from_snapshot(cls, snapshot: DocumentSnapshot) -> Membership:
        data = snapshot.data
        return cls(
            id=snapshot.id,
            classroom_id=snapshot.parent_document_id or "",
            user_id=data[c.FIELD_USER_ID],
            email=data[c.FIELD_EMAIL],
            name=data[c.FIELD_NAME],
            role=MemberRole(data[c.FIELD_ROLE]),
            classroom_created_at=data[c.FIELD_CLASSROOM_CREATED_AT],
        )

    def to_document(self) -> dict[str, Any]:
        return {
            c.FIELD_USER_ID: self.user_id,
            c.FIELD_EMAIL: self.email,
            c.FIELD_NAME: self.name,
            c.FIELD_ROLE: self.role.value,
            c.FIELD_CLASSROOM_CREATED_AT: self.classroom_created_at,
        }


# ====================================================================
# Pagination Models
# ====================================================================


class PageCursor:
    """Opaque position in one (user, role, sort order) membership listing."""

    __slots__ = ("_snapshot", "_query_key")

    def __init__(self, snapshot: DocumentSnapshot, query_key: tuple[str, MemberRole, bool]) -> None:
        self._snapshot = snapshot
        self._query_key = query_key

    def __repr__(self) -> str:
        return "PageCursor(<opaque>)"


class ClassroomPage(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    classrooms: list[Classroom]
    next_cursor: PageCursor | None = None
    has_more: bool = False


class PaginationState(BaseModel):
    """Snapshot of a pagination manager, handed to subscribers after every change."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    classrooms: tuple[Classroom, ...] = ()
    has_more: bool = True
    is_loading: bool = False
    last_error: ClassroomMembershipError | None = None


# ====================================================================
# Operation Outcomes
# ====================================================================


class LifecycleOutcome(BaseModel):
    """Result of a classroom lifecycle operation.

    Storage failures never escape as exceptions; they arrive here as
    ``OutcomeStatus.FAILED`` with the classified error attached.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    status: OutcomeStatus
    classroom: Classroom | None = None
    name: str | None = None
    password: str | None = None
    error: ClassroomMembershipError | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def retryable(self) -> bool:
        return self.error is not None and self.error.retryable
