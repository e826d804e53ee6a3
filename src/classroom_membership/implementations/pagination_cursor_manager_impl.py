"""
Cursor-based paging of a user's classrooms through the membership index.

``page`` is stateless: callers pass the cursor from the previous page. The
stateful API (``configure``, ``load_next_page``, ``refresh``, ``reset``) keeps the
cursor and the accumulated classroom list for one view and publishes a
``PaginationState`` snapshot to subscribers after each change. Only ``_publish``
replaces that state, and only one fetch may be in flight per manager.
"""

from __future__ import annotations

from typing import Callable

from classroom_membership.enums import MemberRole
from classroom_membership.exceptions import (
    ClassroomMembershipError,
    InvalidCursorError,
    PageFetchInProgressError,
    StorageError,
    TransientStorageError,
)
from classroom_membership.implementations.membership_index_impl import MembershipIndex
from classroom_membership.logging_utils import create_service_logger
from classroom_membership.metrics import ClassroomMetrics
from classroom_membership.models import ClassroomPage, PageCursor, PaginationState
from classroom_membership.protocols import PaginationCursorManagerProtocol

logger = create_service_logger("classroom_membership.pagination")

QueryKey = tuple[str, MemberRole, bool]
StateListener = Callable[[PaginationState], None]


class PaginationCursorManagerImpl(PaginationCursorManagerProtocol):
    """Pages classrooms by role ordered on the denormalized creation timestamp."""

    def __init__(
        self,
        index: MembershipIndex,
        page_size: int = 30,
        metrics: ClassroomMetrics | None = None,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.index = index
        self.page_size = page_size
        self.metrics = metrics
        self._query_key: QueryKey | None = None
        self._cursor: PageCursor | None = None
        self._state = PaginationState()
        self._listeners: list[StateListener] = []
        self._in_flight = False
        self._generation = 0

    async def page(
        self,
        user_id: str,
        role: MemberRole,
        descending: bool,
        cursor: PageCursor | None = None,
        page_size: int | None = None,
    ) -> ClassroomPage:
        size = page_size if page_size is not None else self.page_size
        if size < 1:
            raise ValueError("page_size must be at least 1")

        query_key: QueryKey = (user_id, role, descending)
        start_after = None
        if cursor is not None:
            if cursor._query_key != query_key:
                raise InvalidCursorError()
            start_after = cursor._snapshot

        try:
            # One record past the page tells us whether another page exists.
            memberships = await self.index.find_memberships(
                user_id,
                role,
                order_by_created=True,
                descending=descending,
                limit=size + 1,
                start_after=start_after,
            )
        except StorageError as e:
            logger.error(
                "Membership page query failed",
                user_id=user_id,
                role=role.value,
                error=str(e),
            )
            raise TransientStorageError("page_memberships", e) from e

        has_more = len(memberships) > size
        memberships = memberships[:size]

        resolved = await self.index.resolve_classrooms(memberships)
        classrooms = [classroom for classroom in resolved if classroom is not None]
        dropped = len(resolved) - len(classrooms)
        if dropped:
            logger.warning(
                "Dropped memberships whose classroom could not be resolved",
                user_id=user_id,
                dropped=dropped,
            )
            if self.metrics:
                self.metrics.dropped_resolutions_total.labels(component="pagination").inc(dropped)

        next_cursor = PageCursor(memberships[-1], query_key) if memberships else None
        return ClassroomPage(classrooms=classrooms, next_cursor=next_cursor, has_more=has_more)

    # ------------------------------------------------------------------
    # Stateful paging
    # ------------------------------------------------------------------

    @property
    def state(self) -> PaginationState:
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def configure(self, user_id: str, role: MemberRole, descending: bool) -> None:
        """Select the listing to page; a different selection discards current results."""
        query_key: QueryKey = (user_id, role, descending)
        if query_key != self._query_key:
            self._query_key = query_key
            self.reset()

    def reset(self) -> None:
        # A fetch still in flight belongs to the old generation and will be discarded.
        self._generation += 1
        self._cursor = None
        self._in_flight = False
        self._publish(PaginationState())

    async def refresh(self) -> ClassroomPage:
        if self._in_flight:
            raise PageFetchInProgressError()
        self.reset()
        return await self.load_next_page()

    async def load_next_page(self) -> ClassroomPage:
        if self._query_key is None:
            raise RuntimeError("Pagination is not configured; call configure() first.")
        if self._in_flight:
            raise PageFetchInProgressError()
        if not self._state.has_more:
            return ClassroomPage(classrooms=[], next_cursor=self._cursor, has_more=False)

        generation = self._generation
        self._in_flight = True
        self._publish(self._state.model_copy(update={"is_loading": True, "last_error": None}))

        user_id, role, descending = self._query_key
        try:
            page = await self.page(user_id, role, descending, cursor=self._cursor)
        except ClassroomMembershipError as e:
            if generation == self._generation:
                self._publish(self._state.model_copy(update={"is_loading": False, "last_error": e}))
            raise
        finally:
            if generation == self._generation:
                self._in_flight = False

        if generation != self._generation:
            logger.info("Discarding page fetched for a superseded listing")
            return page

        if page.next_cursor is not None:
            self._cursor = page.next_cursor
        self._publish(
            PaginationState(
                classrooms=self._state.classrooms + tuple(page.classrooms),
                has_more=page.has_more,
            )
        )
        return page

    def _publish(self, state: PaginationState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)
