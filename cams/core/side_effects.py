"""Post-commit side effects (audit events, welcome emails).

Side effects are queued by the services once the primary transaction has
committed. In ``thread`` mode they run on a small worker pool; in ``inline``
mode (tests, CLI) they run immediately in the calling thread. Either way a
failing side effect is logged and never reaches the caller.
"""
from __future__ import annotations
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

from flask import current_app

logger = logging.getLogger(__name__)


class SideEffectDispatcher:
    def __init__(self, mode: str = "thread", max_workers: int = 2):
        if mode not in {"thread", "inline"}:
            raise ValueError(f"Unknown side effect mode: {mode}")
        self.mode = mode
        self._executor: Optional[ThreadPoolExecutor] = None
        if mode == "thread":
            self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="cams-side-effect")

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Optional[Future]:
        """Run ``fn`` now (inline) or on the pool (thread)."""
        name = getattr(fn, "__name__", repr(fn))
        if self._executor is None:
            self._run(name, fn, *args, **kwargs)
            return None
        return self._executor.submit(self._run, name, fn, *args, **kwargs)

    @staticmethod
    def _run(name: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        try:
            fn(*args, **kwargs)
        except Exception:
            logger.exception("Side effect %s failed", name)

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)


def get_dispatcher() -> SideEffectDispatcher:
    """Return the dispatcher bound to the current app, creating an inline one if missing."""
    dispatcher = current_app.extensions.get("cams_side_effects")
    if dispatcher is None:
        dispatcher = SideEffectDispatcher(mode="inline")
        current_app.extensions["cams_side_effects"] = dispatcher
    return dispatcher


def queue_audit_event(event_type: str, actor: str, *, target: str | None = None,
                      details: dict | None = None, success: bool = True,
                      ip_address: str | None = None) -> None:
    """Queue a signed audit event on the dispatcher."""
    from scripts import audit

    get_dispatcher().submit(
        audit.safe_log_event,
        event_type,
        actor,
        target=target,
        details=details,
        success=success,
        ip_address=ip_address,
    )
