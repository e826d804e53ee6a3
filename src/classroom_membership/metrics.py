"""Metrics definitions for the classroom membership core."""

from __future__ import annotations

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram

from classroom_membership.logging_utils import create_service_logger

logger = create_service_logger("classroom_membership.metrics")


class ClassroomMetrics:
    """A container for all Prometheus metrics for the membership core."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        registry = registry if registry is not None else REGISTRY

        # Operation metrics
        self.operations_total = Counter(
            "classroom_operations_total",
            "Total number of classroom lifecycle operations by outcome.",
            ["operation", "outcome"],
            registry=registry,
        )
        self.operation_duration_seconds = Histogram(
            "classroom_operation_duration_seconds",
            "Classroom lifecycle operation duration in seconds.",
            ["operation"],
            registry=registry,
        )

        # Consistency metrics
        self.uniqueness_checks_total = Counter(
            "classroom_uniqueness_checks_total",
            "Total number of classroom name uniqueness checks by result.",
            ["result"],
            registry=registry,
        )
        self.orphaned_classrooms_total = Counter(
            "classroom_orphaned_classrooms_total",
            "Classrooms written without a creator membership.",
            registry=registry,
        )
        self.dropped_resolutions_total = Counter(
            "classroom_dropped_resolutions_total",
            "Memberships whose classroom could not be resolved and were dropped.",
            ["component"],
            registry=registry,
        )
        logger.debug("Classroom metrics registered")

    def record_operation(self, operation: str, outcome: str, duration: float) -> None:
        self.operations_total.labels(operation=operation, outcome=outcome).inc()
        self.operation_duration_seconds.labels(operation=operation).observe(duration)
