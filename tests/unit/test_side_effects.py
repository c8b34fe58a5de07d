import logging

import pytest

from cams.core.side_effects import SideEffectDispatcher, get_dispatcher, queue_audit_event


def test_inline_dispatch_runs_immediately():
    calls = []
    dispatcher = SideEffectDispatcher(mode="inline")

    assert dispatcher.submit(calls.append, "done") is None
    assert calls == ["done"]


def test_thread_dispatch_runs_on_pool():
    calls = []
    dispatcher = SideEffectDispatcher(mode="thread", max_workers=1)
    try:
        future = dispatcher.submit(calls.append, "done")
        future.result(timeout=5)
    finally:
        dispatcher.shutdown()
    assert calls == ["done"]


def test_failures_are_logged_and_swallowed(caplog):
    def explode():
        raise RuntimeError("smtp down")

    dispatcher = SideEffectDispatcher(mode="inline")
    with caplog.at_level(logging.ERROR, logger="cams.core.side_effects"):
        dispatcher.submit(explode)

    assert "Side effect explode failed" in caplog.text


def test_unknown_mode_rejected():
    with pytest.raises(ValueError):
        SideEffectDispatcher(mode="celery")


def test_app_dispatcher_is_configured_inline(app):
    assert get_dispatcher().mode == "inline"


def test_queue_audit_event_writes_through_dispatcher(app, mocker):
    safe_log = mocker.patch("scripts.audit.safe_log_event")

    queue_audit_event("role_assign", "root.admin", target="user:1", details={"role_id": 2})

    safe_log.assert_called_once_with(
        "role_assign",
        "root.admin",
        target="user:1",
        details={"role_id": 2},
        success=True,
        ip_address=None,
    )
