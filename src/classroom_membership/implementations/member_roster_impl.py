from __future__ import annotations

import asyncio
from typing import Awaitable

from pydantic import ValidationError
from structlog.contextvars import bound_contextvars

from classroom_membership import constants as c
from classroom_membership.core_logic import collapse_whitespace
from classroom_membership.enums import MemberRole
from classroom_membership.exceptions import StorageError, TransientStorageError
from classroom_membership.implementations.membership_index_impl import (
    MembershipIndex,
    classroom_id_of,
    classroom_path,
    members_collection_path,
    membership_path,
)
from classroom_membership.implementations.user_directory_impl import UserDirectory
from classroom_membership.logging_utils import create_service_logger
from classroom_membership.models import Membership
from classroom_membership.protocols import MemberRosterProtocol, StorageGatewayProtocol

logger = create_service_logger("classroom_membership.roster")


class MemberRosterImpl(MemberRosterProtocol):
    """Member listing, removal and display-name propagation."""

    def __init__(
        self,
        gateway: StorageGatewayProtocol,
        index: MembershipIndex,
        users: UserDirectory,
    ) -> None:
        self.gateway = gateway
        self.index = index
        self.users = users

    async def list_members(self, classroom_id: str) -> list[Membership]:
        try:
            snapshots = await self.gateway.list_collection(members_collection_path(classroom_id))
        except StorageError as e:
            raise TransientStorageError("list_members", e) from e

        members: list[Membership] = []
        for snapshot in snapshots:
            try:
                members.append(Membership.from_snapshot(snapshot))
            except (ValidationError, KeyError) as e:
                logger.warning(
                    "Skipping malformed membership record", path=snapshot.path, error=str(e)
                )
        return members

    async def remove_member(self, classroom_id: str, user_id: str) -> bool:
        """Remove a member from a classroom.

        The creator's own membership is never removed; it is the only index
        entry through which the creator reaches the classroom.
        """
        with bound_contextvars(
            operation="remove_member", classroom_id=classroom_id, user_id=user_id
        ):
            try:
                membership = await self.index.get_membership(classroom_id, user_id)
                if membership is None:
                    return False
                if membership.role is MemberRole.CREATOR:
                    logger.warning("Refusing to remove classroom creator membership")
                    return False
                removed = await self.gateway.delete_document(
                    membership_path(classroom_id, user_id)
                )
            except StorageError as e:
                raise TransientStorageError("remove_member", e) from e

            logger.info("Member removed from classroom", removed=removed)
            return removed

    async def propagate_user_name(self, user_id: str, new_name: str) -> bool:
        """Write a user's new display name to their profile and every denormalized copy.

        Copies live on each membership record and, for classrooms the user
        created, in the classroom's ``createdByName``. Updates run concurrently;
        any failure returns False and may leave some copies stale.
        """
        cleaned = collapse_whitespace(new_name)
        if not cleaned:
            return False

        with bound_contextvars(operation="propagate_user_name", user_id=user_id):
            try:
                await self.users.update_name(user_id, cleaned)
                memberships = await self.index.find_memberships(user_id)

                updates: list[Awaitable[None]] = []
                for membership in memberships:
                    classroom_id = classroom_id_of(membership)
                    if classroom_id is None:
                        continue
                    updates.append(
                        self.gateway.update_fields(membership.path, {c.FIELD_NAME: cleaned})
                    )
                    if membership.data.get(c.FIELD_ROLE) == MemberRole.CREATOR.value:
                        updates.append(
                            self.gateway.update_fields(
                                classroom_path(classroom_id),
                                {c.FIELD_CREATED_BY_NAME: cleaned},
                            )
                        )
                results = await asyncio.gather(*updates, return_exceptions=True)
            except StorageError as e:
                logger.error("User name propagation failed", error=str(e))
                return False

            failures = [r for r in results if isinstance(r, BaseException)]
            for failure in failures:
                if not isinstance(failure, StorageError):
                    raise failure
            if failures:
                logger.error(
                    "User name propagation left stale copies",
                    failed_count=len(failures),
                    record_count=len(updates),
                    error=str(failures[0]),
                )
                return False

            logger.info("User name propagated", record_count=len(updates))
            return True
