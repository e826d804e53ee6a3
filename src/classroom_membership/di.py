from __future__ import annotations

from dishka import AsyncContainer, Provider, Scope, make_async_container, provide
from prometheus_client import REGISTRY, CollectorRegistry

from classroom_membership.config import Settings, settings
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
from classroom_membership.logging_utils import configure_service_logging
from classroom_membership.metrics import ClassroomMetrics
from classroom_membership.protocols import (
    ClassroomLifecycleManagerProtocol,
    MemberRosterProtocol,
    PaginationCursorManagerProtocol,
    StorageGatewayProtocol,
    UniquenessCheckerProtocol,
)


class StorageProvider(Provider):
    """Provides the document store gateway; defaults to the in-memory store."""

    def __init__(self, gateway: StorageGatewayProtocol | None = None) -> None:
        super().__init__()
        self._gateway = gateway

    @provide(scope=Scope.APP)
    def provide_storage_gateway(self) -> StorageGatewayProtocol:
        return self._gateway if self._gateway is not None else InMemoryStorageGateway()

    @provide(scope=Scope.APP)
    def provide_membership_index(
        self, gateway: StorageGatewayProtocol, settings: Settings
    ) -> MembershipIndex:
        return MembershipIndex(gateway, fanout_limit=settings.FANOUT_CONCURRENCY_LIMIT)

    @provide(scope=Scope.APP)
    def provide_user_directory(self, gateway: StorageGatewayProtocol) -> UserDirectory:
        return UserDirectory(gateway)


class ServiceProvider(Provider):
    def __init__(
        self,
        service_settings: Settings | None = None,
        registry: CollectorRegistry | None = None,
    ) -> None:
        super().__init__()
        self._settings = service_settings
        self._registry = registry

    @provide(scope=Scope.APP)
    def provide_settings(self) -> Settings:
        return self._settings if self._settings is not None else settings

    @provide(scope=Scope.APP)
    def provide_metrics(self) -> ClassroomMetrics:
        return ClassroomMetrics(self._registry if self._registry is not None else REGISTRY)

    @provide(scope=Scope.APP)
    def provide_uniqueness_checker(
        self, index: MembershipIndex, metrics: ClassroomMetrics
    ) -> UniquenessCheckerProtocol:
        return ClassroomNameUniquenessChecker(index, metrics)

    @provide(scope=Scope.APP)
    def provide_lifecycle_manager(
        self,
        gateway: StorageGatewayProtocol,
        index: MembershipIndex,
        users: UserDirectory,
        uniqueness_checker: UniquenessCheckerProtocol,
        settings: Settings,
        metrics: ClassroomMetrics,
    ) -> ClassroomLifecycleManagerProtocol:
        return ClassroomLifecycleManagerImpl(
            gateway, index, users, uniqueness_checker, settings, metrics
        )

    @provide(scope=Scope.APP)
    def provide_member_roster(
        self,
        gateway: StorageGatewayProtocol,
        index: MembershipIndex,
        users: UserDirectory,
    ) -> MemberRosterProtocol:
        return MemberRosterImpl(gateway, index, users)

    @provide(scope=Scope.REQUEST)
    def provide_pagination_manager(
        self, index: MembershipIndex, settings: Settings, metrics: ClassroomMetrics
    ) -> PaginationCursorManagerProtocol:
        """One pagination manager per request scope, i.e. per listing view."""
        return PaginationCursorManagerImpl(index, settings.DEFAULT_PAGE_SIZE, metrics)


def create_container(
    gateway: StorageGatewayProtocol | None = None,
    service_settings: Settings | None = None,
    registry: CollectorRegistry | None = None,
) -> AsyncContainer:
    """Build the application container; pass a gateway to bind a real document store."""
    active_settings = service_settings if service_settings is not None else settings
    configure_service_logging(
        active_settings.SERVICE_NAME,
        environment=active_settings.ENVIRONMENT.value,
        log_level=active_settings.LOG_LEVEL,
    )
    return make_async_container(
        StorageProvider(gateway),
        ServiceProvider(service_settings, registry),
    )
