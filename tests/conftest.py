"""
Pytest Configuration

Shared fixtures for the classroom membership tests: an in-memory document
store, settings with the production name rules, and the core components wired
against that store the way the container wires them.
"""

from __future__ import annotations

from typing import Any, Iterator

import pytest
from prometheus_client import REGISTRY

from classroom_membership.config import Settings
from classroom_membership.implementations.classroom_lifecycle_manager_impl import (
    ClassroomLifecycleManagerImpl,
)
from classroom_membership.implementations.member_roster_impl import MemberRosterImpl
from classroom_membership.implementations.membership_index_impl import MembershipIndex
from classroom_membership.implementations.pagination_cursor_manager_impl import (
    PaginationCursorManagerImpl,
)
from classroom_membership.implementations.storage_gateway_memory_impl import (
    InMemoryStorageGateway,
)
from classroom_membership.implementations.uniqueness_checker_impl import (
    ClassroomNameUniquenessChecker,
)
from classroom_membership.implementations.user_directory_impl import UserDirectory
from classroom_membership.metrics import ClassroomMetrics


def pytest_configure(config: Any) -> None:
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "integration: full container wiring tests")


@pytest.fixture(autouse=True)
def _clear_prometheus_registry() -> Iterator[None]:
    """
    Clear the default Prometheus registry before each test.

    This prevents "Duplicated timeseries in CollectorRegistry" errors
    when several tests construct ClassroomMetrics.
    """
    collectors = list(REGISTRY._collector_to_names.keys())
    for collector in collectors:
        REGISTRY.unregister(collector)
    yield


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        CLASSROOM_NAME_MIN_LENGTH=8,
        CLASSROOM_NAME_MAX_LENGTH=150,
        DEFAULT_PAGE_SIZE=2,
        PASSWORD_GENERATION_ATTEMPTS=3,
    )


@pytest.fixture
def gateway() -> InMemoryStorageGateway:
    return InMemoryStorageGateway()


@pytest.fixture
def metrics() -> ClassroomMetrics:
    return ClassroomMetrics()


@pytest.fixture
def index(gateway: InMemoryStorageGateway) -> MembershipIndex:
    return MembershipIndex(gateway)


@pytest.fixture
def users(gateway: InMemoryStorageGateway) -> UserDirectory:
    return UserDirectory(gateway)


@pytest.fixture
def uniqueness_checker(
    index: MembershipIndex, metrics: ClassroomMetrics
) -> ClassroomNameUniquenessChecker:
    return ClassroomNameUniquenessChecker(index, metrics)


@pytest.fixture
def lifecycle_manager(
    gateway: InMemoryStorageGateway,
    index: MembershipIndex,
    users: UserDirectory,
    uniqueness_checker: ClassroomNameUniquenessChecker,
    test_settings: Settings,
    metrics: ClassroomMetrics,
) -> ClassroomLifecycleManagerImpl:
    return ClassroomLifecycleManagerImpl(
        gateway, index, users, uniqueness_checker, test_settings, metrics
    )


@pytest.fixture
def pagination_manager(
    index: MembershipIndex, metrics: ClassroomMetrics
) -> PaginationCursorManagerImpl:
    return PaginationCursorManagerImpl(index, page_size=2, metrics=metrics)


@pytest.fixture
def roster(
    gateway: InMemoryStorageGateway, index: MembershipIndex, users: UserDirectory
) -> MemberRosterImpl:
    return MemberRosterImpl(gateway, index, users)
