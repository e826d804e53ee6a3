"""Unit tests for structlog configuration helpers."""

from __future__ import annotations

import logging

import pytest

from classroom_membership.logging_utils import add_service_context, configure_service_logging


def test_add_service_context_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Service name and environment come from the process environment."""
    monkeypatch.setenv("SERVICE_NAME", "classroom_membership")
    monkeypatch.setenv("ENVIRONMENT", "testing")

    event = add_service_context(None, "info", {"event": "Classroom created"})

    assert event == {
        "event": "Classroom created",
        "service.name": "classroom_membership",
        "deployment.environment": "testing",
    }


def test_configure_service_logging_sets_level_and_defaults(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Configuration sets the root level and the service context defaults."""
    # Registered first so the values written by setdefault are undone after the test
    for name in ("SERVICE_NAME", "ENVIRONMENT"):
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)
    monkeypatch.setenv("LOG_FORMAT", "json")

    configure_service_logging("classroom_membership", environment="testing", log_level="warning")

    assert logging.getLogger().level == logging.WARNING
    event = add_service_context(None, "info", {})
    assert event["service.name"] == "classroom_membership"
    assert event["deployment.environment"] == "testing"
