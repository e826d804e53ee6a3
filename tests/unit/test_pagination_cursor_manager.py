"""
Unit tests for cursor-based classroom paging.

Five classrooms created a minute apart, all joined by one student, are paged
two at a time. Stateless ``page`` calls and the stateful load/refresh API are
both checked against the ordering of a single unpaged fetch.
"""

from __future__ import annotations

import asyncio

import pytest
from prometheus_client import REGISTRY

from classroom_membership.enums import MemberRole
from classroom_membership.exceptions import (
    InvalidCursorError,
    PageFetchInProgressError,
    TransientStorageError,
)
from classroom_membership.implementations.membership_index_impl import MembershipIndex
from classroom_membership.implementations.pagination_cursor_manager_impl import (
    PaginationCursorManagerImpl,
)
from classroom_membership.implementations.storage_gateway_memory_impl import (
    InMemoryStorageGateway,
)
from classroom_membership.models import ClassroomPage, PaginationState
from tests.utils.classroom_seeding import at_minute, seed_classroom, seed_membership

STUDENT = "student-1"


@pytest.fixture
def five_classrooms(gateway: InMemoryStorageGateway) -> list[str]:
    classroom_ids = [f"c{n}" for n in range(5)]
    for minute, classroom_id in enumerate(classroom_ids):
        seed_classroom(
            gateway, classroom_id, f"Classroom number {minute}", "teacher-1", at_minute(minute)
        )
        seed_membership(gateway, classroom_id, STUDENT, MemberRole.MEMBER, at_minute(minute))
    return classroom_ids


def ids(page: ClassroomPage) -> list[str]:
    return [classroom.id for classroom in page.classrooms]


class TestStatelessPaging:
    async def test_pages_chain_to_the_full_listing(
        self, pagination_manager: PaginationCursorManagerImpl, five_classrooms: list[str]
    ) -> None:
        """Chained pages reproduce a single unpaged fetch."""
        full = await pagination_manager.page(STUDENT, MemberRole.MEMBER, True, page_size=10)

        first = await pagination_manager.page(STUDENT, MemberRole.MEMBER, True)
        second = await pagination_manager.page(
            STUDENT, MemberRole.MEMBER, True, cursor=first.next_cursor
        )
        third = await pagination_manager.page(
            STUDENT, MemberRole.MEMBER, True, cursor=second.next_cursor
        )

        assert ids(full) == ["c4", "c3", "c2", "c1", "c0"]
        assert ids(first) + ids(second) + ids(third) == ids(full)
        assert [first.has_more, second.has_more, third.has_more] == [True, True, False]

    async def test_ascending_order(
        self, pagination_manager: PaginationCursorManagerImpl, five_classrooms: list[str]
    ) -> None:
        """Ascending order starts from the oldest classroom."""
        first = await pagination_manager.page(STUDENT, MemberRole.MEMBER, False)

        assert ids(first) == ["c0", "c1"]

    async def test_role_filter(
        self,
        pagination_manager: PaginationCursorManagerImpl,
        five_classrooms: list[str],
    ) -> None:
        """Only memberships with the requested role are paged."""
        created = await pagination_manager.page("teacher-1", MemberRole.CREATOR, True, page_size=10)
        joined = await pagination_manager.page("teacher-1", MemberRole.MEMBER, True)

        assert ids(created) == ["c4", "c3", "c2", "c1", "c0"]
        assert joined.classrooms == []
        assert joined.next_cursor is None
        assert joined.has_more is False

    async def test_result_order_follows_index_not_read_completion(
        self,
        pagination_manager: PaginationCursorManagerImpl,
        gateway: InMemoryStorageGateway,
        five_classrooms: list[str],
    ) -> None:
        """A slow classroom read does not reorder the page."""
        gateway.set_read_delay("classrooms/c4", 0.05)

        first = await pagination_manager.page(STUDENT, MemberRole.MEMBER, True)

        assert ids(first) == ["c4", "c3"]

    async def test_unresolvable_classroom_is_dropped(
        self,
        pagination_manager: PaginationCursorManagerImpl,
        gateway: InMemoryStorageGateway,
        five_classrooms: list[str],
    ) -> None:
        """A membership whose classroom is gone is dropped but still advances the cursor."""
        await gateway.delete_document("classrooms/c3")

        first = await pagination_manager.page(STUDENT, MemberRole.MEMBER, True)
        second = await pagination_manager.page(
            STUDENT, MemberRole.MEMBER, True, cursor=first.next_cursor
        )

        # The membership still advances the cursor
        assert ids(first) == ["c4"]
        assert ids(second) == ["c2", "c1"]
        assert REGISTRY.get_sample_value(
            "classroom_dropped_resolutions_total", {"component": "pagination"}
        ) == 1.0

    async def test_stray_membership_is_dropped_and_counted(
        self,
        pagination_manager: PaginationCursorManagerImpl,
        gateway: InMemoryStorageGateway,
        five_classrooms: list[str],
    ) -> None:
        """A membership outside any classroom counts as a dropped resolution."""
        gateway.seed_document(
            f"members/{STUDENT}",
            {"userId": STUDENT, "role": "member", "classroomCreatedAt": at_minute(10)},
        )

        first = await pagination_manager.page(STUDENT, MemberRole.MEMBER, True)
        second = await pagination_manager.page(
            STUDENT, MemberRole.MEMBER, True, cursor=first.next_cursor
        )

        assert ids(first) == ["c4"]
        assert ids(second) == ["c3", "c2"]
        assert REGISTRY.get_sample_value(
            "classroom_dropped_resolutions_total", {"component": "pagination"}
        ) == 1.0

    async def test_cursor_from_other_listing_is_rejected(
        self, pagination_manager: PaginationCursorManagerImpl, five_classrooms: list[str]
    ) -> None:
        """A cursor only continues the listing it came from."""
        first = await pagination_manager.page(STUDENT, MemberRole.MEMBER, True)

        with pytest.raises(InvalidCursorError):
            await pagination_manager.page(
                STUDENT, MemberRole.MEMBER, False, cursor=first.next_cursor
            )
        with pytest.raises(InvalidCursorError):
            await pagination_manager.page(
                "someone-else", MemberRole.MEMBER, True, cursor=first.next_cursor
            )

    async def test_query_failure_is_transient(
        self,
        pagination_manager: PaginationCursorManagerImpl,
        gateway: InMemoryStorageGateway,
    ) -> None:
        """A failed membership query raises a transient storage error."""
        gateway.fail_on("query_group")

        with pytest.raises(TransientStorageError):
            await pagination_manager.page(STUDENT, MemberRole.MEMBER, True)

    @pytest.mark.parametrize("page_size", [0, -1])
    def test_page_size_must_be_positive(self, index: MembershipIndex, page_size: int) -> None:
        """Page size below one is refused."""
        with pytest.raises(ValueError):
            PaginationCursorManagerImpl(index, page_size=page_size)


class TestStatefulPaging:
    async def test_load_until_exhausted(
        self,
        pagination_manager: PaginationCursorManagerImpl,
        gateway: InMemoryStorageGateway,
        five_classrooms: list[str],
    ) -> None:
        """Loading stops querying once the listing is exhausted."""
        pagination_manager.configure(STUDENT, MemberRole.MEMBER, True)

        for _ in range(3):
            await pagination_manager.load_next_page()
        queries = gateway.operation_count("query_group")
        extra = await pagination_manager.load_next_page()

        state = pagination_manager.state
        assert [c.id for c in state.classrooms] == ["c4", "c3", "c2", "c1", "c0"]
        assert state.has_more is False
        assert state.is_loading is False
        assert extra.classrooms == []
        assert gateway.operation_count("query_group") == queries

    async def test_load_before_configure_is_an_error(
        self, pagination_manager: PaginationCursorManagerImpl
    ) -> None:
        """Loading requires a configured listing."""
        with pytest.raises(RuntimeError):
            await pagination_manager.load_next_page()

    async def test_concurrent_load_is_rejected(
        self, pagination_manager: PaginationCursorManagerImpl, five_classrooms: list[str]
    ) -> None:
        """Only one fetch may be in flight."""
        pagination_manager.configure(STUDENT, MemberRole.MEMBER, True)

        pending = asyncio.create_task(pagination_manager.load_next_page())
        await asyncio.sleep(0)

        assert pagination_manager.state.is_loading is True
        with pytest.raises(PageFetchInProgressError):
            await pagination_manager.load_next_page()
        with pytest.raises(PageFetchInProgressError):
            await pagination_manager.refresh()

        page = await pending
        assert ids(page) == ["c4", "c3"]
        assert [c.id for c in pagination_manager.state.classrooms] == ["c4", "c3"]

    async def test_reconfigure_discards_results_and_in_flight_fetch(
        self, pagination_manager: PaginationCursorManagerImpl, five_classrooms: list[str]
    ) -> None:
        """Switching listings drops results and ignores the fetch still in flight."""
        pagination_manager.configure(STUDENT, MemberRole.MEMBER, True)
        await pagination_manager.load_next_page()

        pending = asyncio.create_task(pagination_manager.load_next_page())
        await asyncio.sleep(0)
        pagination_manager.configure(STUDENT, MemberRole.MEMBER, False)
        await pending

        assert pagination_manager.state == PaginationState()
        page = await pagination_manager.load_next_page()
        assert ids(page) == ["c0", "c1"]
        assert [c.id for c in pagination_manager.state.classrooms] == ["c0", "c1"]

    async def test_configure_with_same_listing_keeps_results(
        self, pagination_manager: PaginationCursorManagerImpl, five_classrooms: list[str]
    ) -> None:
        """Configuring the current listing again keeps what was loaded."""
        pagination_manager.configure(STUDENT, MemberRole.MEMBER, True)
        await pagination_manager.load_next_page()

        pagination_manager.configure(STUDENT, MemberRole.MEMBER, True)

        assert len(pagination_manager.state.classrooms) == 2

    async def test_refresh_starts_from_the_first_page(
        self,
        pagination_manager: PaginationCursorManagerImpl,
        gateway: InMemoryStorageGateway,
        five_classrooms: list[str],
    ) -> None:
        """Refresh reloads from the newest classroom."""
        pagination_manager.configure(STUDENT, MemberRole.MEMBER, True)
        await pagination_manager.load_next_page()
        await pagination_manager.load_next_page()
        seed_classroom(gateway, "c5", "Newest classroom", "teacher-1", at_minute(5))
        seed_membership(gateway, "c5", STUDENT, MemberRole.MEMBER, at_minute(5))

        page = await pagination_manager.refresh()

        assert ids(page) == ["c5", "c4"]
        assert [c.id for c in pagination_manager.state.classrooms] == ["c5", "c4"]
        assert pagination_manager.state.has_more is True

    async def test_failed_load_publishes_error_and_can_retry(
        self,
        pagination_manager: PaginationCursorManagerImpl,
        gateway: InMemoryStorageGateway,
        five_classrooms: list[str],
    ) -> None:
        """A failed load publishes the error and leaves the manager usable."""
        pagination_manager.configure(STUDENT, MemberRole.MEMBER, True)
        gateway.fail_on("query_group")

        with pytest.raises(TransientStorageError) as exc_info:
            await pagination_manager.load_next_page()

        state = pagination_manager.state
        assert state.last_error is exc_info.value
        assert state.is_loading is False
        assert state.has_more is True

        gateway.clear_failures()
        page = await pagination_manager.load_next_page()
        assert ids(page) == ["c4", "c3"]
        assert pagination_manager.state.last_error is None

    async def test_subscribers_see_each_state_until_unsubscribed(
        self, pagination_manager: PaginationCursorManagerImpl, five_classrooms: list[str]
    ) -> None:
        """Subscribers receive every published state until they unsubscribe."""
        seen: list[PaginationState] = []
        pagination_manager.configure(STUDENT, MemberRole.MEMBER, True)
        unsubscribe = pagination_manager.subscribe(seen.append)

        await pagination_manager.load_next_page()
        unsubscribe()
        await pagination_manager.load_next_page()

        assert [state.is_loading for state in seen] == [True, False]
        assert [c.id for c in seen[-1].classrooms] == ["c4", "c3"]
        assert len(pagination_manager.state.classrooms) == 4
