"""
Classroom lifecycle operations: create, rename, password regeneration and join.

Creation is a multi-document write without a transaction: the classroom
document is written first, its server timestamp read back, and only then is the
creator's membership written. If the process fails between those writes the
classroom exists with no creator membership. That orphan is logged and counted
but not rolled back.
"""

from __future__ import annotations

import time
from typing import Awaitable, Callable

from pydantic import ValidationError
from structlog.contextvars import bound_contextvars

from classroom_membership import constants as c
from classroom_membership.config import Settings
from classroom_membership.core_logic import (
    clean_classroom_name,
    generate_join_password,
    validate_classroom_name,
)
from classroom_membership.enums import MemberRole, OutcomeStatus, UniquenessResult
from classroom_membership.exceptions import (
    AlreadyMemberError,
    ClassroomNameValidationError,
    ClassroomNotFoundError,
    DocumentNotFoundError,
    DuplicateClassroomNameError,
    StorageError,
    TransientStorageError,
    UserNotFoundError,
)
from classroom_membership.implementations.membership_index_impl import (
    MembershipIndex,
    classroom_path,
)
from classroom_membership.implementations.user_directory_impl import UserDirectory
from classroom_membership.logging_utils import create_service_logger
from classroom_membership.metrics import ClassroomMetrics
from classroom_membership.models import (
    SERVER_TIMESTAMP,
    Classroom,
    LifecycleOutcome,
    Membership,
)
from classroom_membership.protocols import (
    ClassroomLifecycleManagerProtocol,
    StorageGatewayProtocol,
    UniquenessCheckerProtocol,
)

logger = create_service_logger("classroom_membership.lifecycle")

STORAGE_OR_MALFORMED = (StorageError, ValidationError, KeyError)


class ClassroomLifecycleManagerImpl(ClassroomLifecycleManagerProtocol):
    """Implementation of the classroom lifecycle operations."""

    def __init__(
        self,
        gateway: StorageGatewayProtocol,
        index: MembershipIndex,
        users: UserDirectory,
        uniqueness_checker: UniquenessCheckerProtocol,
        settings: Settings,
        metrics: ClassroomMetrics | None = None,
        password_factory: Callable[[], str] = generate_join_password,
    ) -> None:
        self.gateway = gateway
        self.index = index
        self.users = users
        self.uniqueness_checker = uniqueness_checker
        self.metrics = metrics
        self.password_factory = password_factory
        self.name_min_length = settings.CLASSROOM_NAME_MIN_LENGTH
        self.name_max_length = settings.CLASSROOM_NAME_MAX_LENGTH
        self.password_attempts = settings.PASSWORD_GENERATION_ATTEMPTS

    async def create(self, user_id: str, raw_name: str) -> LifecycleOutcome:
        with bound_contextvars(operation="create_classroom", user_id=user_id):
            return await self._timed("create", self._create(user_id, raw_name))

    async def rename(self, classroom_id: str, user_id: str, raw_name: str) -> LifecycleOutcome:
        with bound_contextvars(
            operation="rename_classroom", user_id=user_id, classroom_id=classroom_id
        ):
            return await self._timed("rename", self._rename(classroom_id, user_id, raw_name))

    async def regenerate_password(self, classroom_id: str) -> LifecycleOutcome:
        with bound_contextvars(operation="regenerate_password", classroom_id=classroom_id):
            return await self._timed("regenerate_password", self._regenerate(classroom_id))

    async def get_password(self, classroom_id: str) -> LifecycleOutcome:
        with bound_contextvars(operation="get_password", classroom_id=classroom_id):
            return await self._timed("get_password", self._get_password(classroom_id))

    async def join(self, user_id: str, password: str) -> LifecycleOutcome:
        with bound_contextvars(operation="join_classroom", user_id=user_id):
            return await self._timed("join", self._join(user_id, password))

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def _create(self, user_id: str, raw_name: str) -> LifecycleOutcome:
        cleaned = clean_classroom_name(raw_name)
        invalid = self._validate(cleaned)
        if invalid:
            return invalid

        rejected = await self._check_unique(user_id, cleaned, exclude_classroom_id=None)
        if rejected:
            return rejected

        try:
            user = await self.users.get_user(user_id)
            if user is None:
                logger.error("Classroom creator has no user profile")
                return LifecycleOutcome(
                    status=OutcomeStatus.FAILED, name=cleaned, error=UserNotFoundError(user_id)
                )
            password = await self._unused_password()
            classroom_id = await self.gateway.create_document(
                c.CLASSROOMS_COLLECTION,
                {
                    c.FIELD_NAME: cleaned,
                    c.FIELD_CREATED_AT: SERVER_TIMESTAMP,
                    c.FIELD_CREATED_BY_ID: user_id,
                    c.FIELD_CREATED_BY_NAME: user.name,
                    c.FIELD_PASSWORD: password,
                },
            )
        except STORAGE_OR_MALFORMED as e:
            return self._failed("create_classroom", e)

        # The membership sort key is the server-assigned timestamp, so it must be
        # read back before the membership write.
        try:
            path = classroom_path(classroom_id)
            snapshot = await self.gateway.get_document(path)
            if snapshot is None:
                raise StorageError("Created classroom is not readable", path)
            classroom = Classroom.from_snapshot(snapshot)
            await self.index.put_membership(
                Membership(
                    id=user_id,
                    classroom_id=classroom.id,
                    user_id=user_id,
                    email=user.email,
                    name=user.name,
                    role=MemberRole.CREATOR,
                    classroom_created_at=classroom.created_at,
                )
            )
        except STORAGE_OR_MALFORMED as e:
            logger.error(
                "Classroom written without creator membership",
                orphan_classroom_id=classroom_id,
                error=str(e),
            )
            if self.metrics:
                self.metrics.orphaned_classrooms_total.inc()
            return self._failed("create_creator_membership", e)

        logger.info("Classroom created", classroom_id=classroom.id)
        return LifecycleOutcome(status=OutcomeStatus.CREATED, classroom=classroom, name=cleaned)

    async def _rename(self, classroom_id: str, user_id: str, raw_name: str) -> LifecycleOutcome:
        cleaned = clean_classroom_name(raw_name)
        invalid = self._validate(cleaned)
        if invalid:
            return invalid

        rejected = await self._check_unique(user_id, cleaned, exclude_classroom_id=classroom_id)
        if rejected:
            return rejected

        try:
            await self.gateway.update_fields(classroom_path(classroom_id), {c.FIELD_NAME: cleaned})
        except DocumentNotFoundError:
            return LifecycleOutcome(
                status=OutcomeStatus.FAILED,
                name=cleaned,
                error=ClassroomNotFoundError(classroom_id),
            )
        except StorageError as e:
            return self._failed("rename_classroom", e)

        return LifecycleOutcome(status=OutcomeStatus.RENAMED, name=cleaned)

    async def _regenerate(self, classroom_id: str) -> LifecycleOutcome:
        # Unconditional overwrite: the previous token stops admitting new members at once.
        try:
            password = await self._unused_password()
            await self.gateway.update_fields(
                classroom_path(classroom_id), {c.FIELD_PASSWORD: password}
            )
        except DocumentNotFoundError:
            return LifecycleOutcome(
                status=OutcomeStatus.FAILED, error=ClassroomNotFoundError(classroom_id)
            )
        except StorageError as e:
            return self._failed("regenerate_password", e)

        return LifecycleOutcome(status=OutcomeStatus.REGENERATED, password=password)

    async def _get_password(self, classroom_id: str) -> LifecycleOutcome:
        try:
            snapshot = await self.gateway.get_document(classroom_path(classroom_id))
        except StorageError as e:
            return self._failed("get_password", e)

        password = snapshot.data.get(c.FIELD_PASSWORD) if snapshot else None
        if not password:
            return LifecycleOutcome(
                status=OutcomeStatus.NOT_FOUND, error=ClassroomNotFoundError(classroom_id)
            )
        return LifecycleOutcome(status=OutcomeStatus.FETCHED, password=password)

    async def _join(self, user_id: str, password: str) -> LifecycleOutcome:
        if not password:
            return LifecycleOutcome(status=OutcomeStatus.NOT_FOUND, error=ClassroomNotFoundError())

        try:
            # First match only; tokens are generated unused, see _unused_password.
            matches = await self.gateway.query_equals(
                c.CLASSROOMS_COLLECTION, c.FIELD_PASSWORD, password, limit=1
            )
            if not matches:
                logger.info("No classroom matches join password")
                return LifecycleOutcome(
                    status=OutcomeStatus.NOT_FOUND, error=ClassroomNotFoundError()
                )
            classroom = Classroom.from_snapshot(matches[0])

            if await self.index.get_membership(classroom.id, user_id) is not None:
                return LifecycleOutcome(
                    status=OutcomeStatus.ALREADY_MEMBER,
                    classroom=classroom,
                    error=AlreadyMemberError(classroom.id, user_id),
                )

            user = await self.users.get_user(user_id)
            if user is None:
                logger.error("Joining user has no user profile")
                return LifecycleOutcome(
                    status=OutcomeStatus.FAILED, error=UserNotFoundError(user_id)
                )

            await self.index.put_membership(
                Membership(
                    id=user_id,
                    classroom_id=classroom.id,
                    user_id=user_id,
                    email=user.email,
                    name=user.name,
                    role=MemberRole.MEMBER,
                    classroom_created_at=classroom.created_at,
                )
            )
        except STORAGE_OR_MALFORMED as e:
            return self._failed("join_classroom", e)

        logger.info("User joined classroom", classroom_id=classroom.id)
        return LifecycleOutcome(status=OutcomeStatus.JOINED, classroom=classroom)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _validate(self, cleaned: str) -> LifecycleOutcome | None:
        try:
            validate_classroom_name(cleaned, self.name_min_length, self.name_max_length)
        except ClassroomNameValidationError as e:
            logger.info("Rejected invalid classroom name", name_length=len(cleaned))
            return LifecycleOutcome(
                status=OutcomeStatus.REJECTED_INVALID_NAME, name=cleaned, error=e
            )
        return None

    async def _check_unique(
        self, user_id: str, cleaned: str, exclude_classroom_id: str | None
    ) -> LifecycleOutcome | None:
        result = await self.uniqueness_checker.is_unique(user_id, cleaned, exclude_classroom_id)
        if result is UniquenessResult.INDETERMINATE:
            return LifecycleOutcome(
                status=OutcomeStatus.FAILED,
                name=cleaned,
                error=TransientStorageError("uniqueness_check"),
            )
        if result is UniquenessResult.DUPLICATE:
            return LifecycleOutcome(
                status=OutcomeStatus.REJECTED_DUPLICATE_NAME,
                name=cleaned,
                error=DuplicateClassroomNameError(cleaned, user_id),
            )
        return None

    async def _unused_password(self) -> str:
        for attempt in range(1, self.password_attempts + 1):
            candidate = self.password_factory()
            taken = await self.gateway.query_equals(
                c.CLASSROOMS_COLLECTION, c.FIELD_PASSWORD, candidate, limit=1
            )
            if not taken:
                return candidate
            logger.warning("Generated join password already in use", attempt=attempt)
        raise StorageError(
            f"No unused join password after {self.password_attempts} attempts",
            c.CLASSROOMS_COLLECTION,
        )

    def _failed(self, step: str, error: BaseException) -> LifecycleOutcome:
        logger.error(
            "Classroom operation failed",
            step=step,
            error_type=type(error).__name__,
            error=str(error),
        )
        return LifecycleOutcome(
            status=OutcomeStatus.FAILED, error=TransientStorageError(step, error)
        )

    async def _timed(
        self, operation: str, pending: Awaitable[LifecycleOutcome]
    ) -> LifecycleOutcome:
        start_time = time.perf_counter()
        outcome = await pending
        duration = time.perf_counter() - start_time
        if self.metrics:
            self.metrics.record_operation(operation, outcome.status.value, duration)
        logger.debug(
            "Classroom operation finished",
            outcome=outcome.status.value,
            duration_seconds=round(duration, 4),
        )
        return outcome
