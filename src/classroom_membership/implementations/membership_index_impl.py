"""
Denormalized membership index.

Every classroom carries a ``members`` sub-collection keyed by user id. The
collection-group scan over all ``members`` collections is the only path from a
user to their classrooms, so each record duplicates the parent classroom's
creation timestamp as its sort key.
"""

from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack
from typing import Sequence

from pydantic import ValidationError

from classroom_membership import constants as c
from classroom_membership.enums import MemberRole
from classroom_membership.exceptions import StorageError
from classroom_membership.logging_utils import create_service_logger
from classroom_membership.models import Classroom, DocumentSnapshot, Membership
from classroom_membership.protocols import FieldFilter, StorageGatewayProtocol

logger = create_service_logger("classroom_membership.membership_index")


def classroom_path(classroom_id: str) -> str:
    return f"{c.CLASSROOMS_COLLECTION}/{classroom_id}"


def members_collection_path(classroom_id: str) -> str:
    return f"{classroom_path(classroom_id)}/{c.MEMBERS_COLLECTION}"


def membership_path(classroom_id: str, user_id: str) -> str:
    return f"{members_collection_path(classroom_id)}/{user_id}"


class MembershipIndex:
    """Reads and writes membership records and resolves them to classrooms."""

    def __init__(self, gateway: StorageGatewayProtocol, fanout_limit: int = 0) -> None:
        self.gateway = gateway
        self._semaphore = asyncio.Semaphore(fanout_limit) if fanout_limit > 0 else None

    async def find_memberships(
        self,
        user_id: str,
        role: MemberRole | None = None,
        *,
        order_by_created: bool = False,
        descending: bool = False,
        limit: int | None = None,
        start_after: DocumentSnapshot | None = None,
    ) -> list[DocumentSnapshot]:
        """Collection-group scan of a user's memberships across all classrooms."""
        filters: list[FieldFilter] = [(c.FIELD_USER_ID, user_id)]
        if role is not None:
            filters.append((c.FIELD_ROLE, role.value))
        return await self.gateway.query_collection_group(
            c.MEMBERS_COLLECTION,
            filters,
            order_by=c.FIELD_CLASSROOM_CREATED_AT if order_by_created else None,
            descending=descending,
            limit=limit,
            start_after=start_after,
        )

    async def get_membership(self, classroom_id: str, user_id: str) -> Membership | None:
        snapshot = await self.gateway.get_document(membership_path(classroom_id, user_id))
        return Membership.from_snapshot(snapshot) if snapshot else None

    async def put_membership(self, membership: Membership) -> None:
        await self.gateway.set_document(
            membership_path(membership.classroom_id, membership.user_id),
            membership.to_document(),
        )

    async def read_classroom(self, classroom_id: str) -> Classroom | None:
        """Best-effort read of one classroom.

        A failed read, a missing document or a malformed document all yield None;
        fan-out callers treat that as an absent record rather than an error.
        """
        async with AsyncExitStack() as stack:
            if self._semaphore is not None:
                await stack.enter_async_context(self._semaphore)
            try:
                snapshot = await self.gateway.get_document(classroom_path(classroom_id))
                if snapshot is None:
                    logger.warning(
                        "Membership references missing classroom", classroom_id=classroom_id
                    )
                    return None
                return Classroom.from_snapshot(snapshot)
            except (StorageError, ValidationError, KeyError) as e:
                logger.warning(
                    "Classroom read failed during fan-out",
                    classroom_id=classroom_id,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                return None

    async def resolve_classrooms(
        self, memberships: Sequence[DocumentSnapshot]
    ) -> list[Classroom | None]:
        """Resolve memberships to their classrooms concurrently.

        The result is aligned index-for-index with ``memberships`` regardless of
        the order in which the reads complete. A membership with no parent
        classroom resolves to None without a read.
        """
        return list(
            await asyncio.gather(*(self._resolve_one(m) for m in memberships))
        )

    async def _resolve_one(self, membership: DocumentSnapshot) -> Classroom | None:
        classroom_id = classroom_id_of(membership)
        if classroom_id is None:
            return None
        return await self.read_classroom(classroom_id)


def classroom_id_of(membership: DocumentSnapshot) -> str | None:
    """Id of the classroom owning a membership record, or None for a stray record."""
    classroom_id = membership.parent_document_id
    if classroom_id is None:
        logger.warning("Membership record has no parent classroom", path=membership.path)
    return classroom_id
