"""
Per-creator classroom name uniqueness check.

The check is a scatter-gather over the creator's memberships followed by a
separate write, with no transaction in between. Two concurrent creates or
renames by the same user can both observe UNIQUE and both commit; the store
then holds duplicate names until one is renamed. This race is accepted.
"""

from __future__ import annotations

import asyncio

from classroom_membership.core_logic import normalize_classroom_name
from classroom_membership.enums import MemberRole, UniquenessResult
from classroom_membership.exceptions import StorageError
from classroom_membership.implementations.membership_index_impl import (
    MembershipIndex,
    classroom_id_of,
)
from classroom_membership.logging_utils import create_service_logger
from classroom_membership.metrics import ClassroomMetrics
from classroom_membership.models import Classroom
from classroom_membership.protocols import UniquenessCheckerProtocol

logger = create_service_logger("classroom_membership.uniqueness")


class ClassroomNameUniquenessChecker(UniquenessCheckerProtocol):
    """Scans a creator's classrooms for a name collision."""

    def __init__(self, index: MembershipIndex, metrics: ClassroomMetrics | None = None) -> None:
        self.index = index
        self.metrics = metrics
        # Reads still running after an early DUPLICATE answer; held until they finish.
        self._detached_reads: set[asyncio.Task[Classroom | None]] = set()

    async def is_unique(
        self,
        user_id: str,
        candidate_name: str,
        exclude_classroom_id: str | None = None,
    ) -> UniquenessResult:
        result = await self._check(user_id, candidate_name, exclude_classroom_id)
        if self.metrics:
            self.metrics.uniqueness_checks_total.labels(result=result.value).inc()
        return result

    async def _check(
        self,
        user_id: str,
        candidate_name: str,
        exclude_classroom_id: str | None,
    ) -> UniquenessResult:
        normalized_candidate = normalize_classroom_name(candidate_name)

        try:
            memberships = await self.index.find_memberships(user_id, MemberRole.CREATOR)
        except StorageError as e:
            logger.error(
                "Creator membership query failed, uniqueness is indeterminate",
                user_id=user_id,
                error=str(e),
            )
            return UniquenessResult.INDETERMINATE

        classroom_ids = [
            classroom_id
            for classroom_id in (classroom_id_of(m) for m in memberships)
            if classroom_id is not None and classroom_id != exclude_classroom_id
        ]
        logger.debug(
            "Checking classroom name against creator's classrooms",
            user_id=user_id,
            classroom_count=len(classroom_ids),
        )
        if not classroom_ids:
            return UniquenessResult.UNIQUE

        reads = [asyncio.create_task(self.index.read_classroom(cid)) for cid in classroom_ids]
        try:
            for completed in asyncio.as_completed(reads):
                classroom = await completed
                if classroom is None:
                    continue
                if normalize_classroom_name(classroom.name) == normalized_candidate:
                    logger.info(
                        "Classroom name collides with an existing classroom",
                        user_id=user_id,
                        colliding_classroom_id=classroom.id,
                    )
                    return UniquenessResult.DUPLICATE
        finally:
            self._detach_pending(reads)

        return UniquenessResult.UNIQUE

    def _detach_pending(self, reads: list[asyncio.Task[Classroom | None]]) -> None:
        for task in reads:
            if not task.done():
                self._detached_reads.add(task)
                task.add_done_callback(self._detached_reads.discard)
