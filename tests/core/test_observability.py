from __future__ import annotations

import logging

from app.core.observability import (
    OperationContext,
    generate_correlation_id,
    get_correlation_id,
    get_run_id,
    log_event,
)


def test_operation_context_generates_uuid4_correlation_id() -> None:
    with OperationContext("unit_test") as operation:
        correlation_id = operation.correlation_id

    assert isinstance(correlation_id, str)
    assert len(correlation_id) == 36
    assert correlation_id.count("-") == 4


def test_operation_context_binds_and_restores_correlation_id() -> None:
    before = get_correlation_id()

    with OperationContext("upload") as operation:
        assert get_correlation_id() == operation.correlation_id

    assert get_correlation_id() == before


def test_nested_operation_contexts_restore_outer_id() -> None:
    with OperationContext("outer") as outer:
        with OperationContext("inner") as inner:
            assert get_correlation_id() == inner.correlation_id
        assert get_correlation_id() == outer.correlation_id


def test_log_event_returns_structured_event_dict() -> None:
    logger = logging.getLogger("tests.observability")

    event = log_event(
        logger,
        "sync_started",
        {"operation": "upload"},
        "cid-123",
    )

    assert event["event"] == "sync_started"
    assert event["correlation_id"] == "cid-123"
    assert "timestamp" in event
    assert event["payload"] == {"operation": "upload"}


def test_log_event_emits_record_with_extra_payload(caplog) -> None:
    logger = logging.getLogger("tests.observability.records")

    with caplog.at_level(logging.INFO, logger="tests.observability.records"):
        log_event(logger, "sync_succeeded", {"inserted": 2}, "cid-456")

    record = caplog.records[-1]
    assert record.getMessage() == "sync_succeeded"
    assert record.correlation_id == "cid-456"
    assert record.extra["payload"] == {"inserted": 2}


def test_operation_context_binds_run_id_prefixed_with_operation() -> None:
    assert get_run_id() is None

    with OperationContext("sync_upload") as operation:
        assert get_run_id() == operation.run_id
        event = log_event(logging.getLogger("tests.observability"), "sync_started", {}, operation.correlation_id)

    assert operation.run_id.startswith("sync_upload-")
    assert event["run_id"] == operation.run_id
    assert get_run_id() is None


def test_generate_correlation_id_is_unique() -> None:
    first = generate_correlation_id()
    second = generate_correlation_id()

    assert first != second
