from __future__ import annotations

import logging
from threading import Lock
from typing import Any

from app.domain.ports import SyncProgressSink
from app.domain.sync_models import SyncProgress

logger = logging.getLogger(__name__)


class NullProgressSink(SyncProgressSink):
    def on_started(self, total: int) -> None:
        return None

    def on_progress(self, progress: SyncProgress) -> None:
        return None

    def on_success(self, result: Any) -> None:
        return None

    def on_error(self, message: str, error: BaseException | None = None) -> None:
        return None


class LoggingProgressSink(SyncProgressSink):
    """Writes each run event to the log; used by the CLI."""

    def __init__(self, operation: str, log: logging.Logger | None = None) -> None:
        self._operation = operation
        self._logger = log or logger

    def on_started(self, total: int) -> None:
        self._logger.info("%s started", self._operation, extra={"extra": {"total": total}})

    def on_progress(self, progress: SyncProgress) -> None:
        self._logger.info(
            "%s progress %s/%s",
            self._operation,
            progress.processed,
            progress.total,
            extra={"extra": {"processed": progress.processed, "total": progress.total}},
        )

    def on_success(self, result: Any) -> None:
        payload = result.to_dict() if hasattr(result, "to_dict") else {"result": result}
        self._logger.info("%s finished", self._operation, extra={"extra": payload})

    def on_error(self, message: str, error: BaseException | None = None) -> None:
        self._logger.error("%s failed: %s", self._operation, message)


class TerminalOnceSink(SyncProgressSink):
    """Forwards events to ``inner`` and lets exactly one terminal event through.

    Anything after the first ``on_success``/``on_error`` is dropped, as are
    progress events, so a caller never sees a result followed by an error.
    """

    def __init__(self, inner: SyncProgressSink) -> None:
        self._inner = inner
        self._lock = Lock()
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    def on_started(self, total: int) -> None:
        if not self._finished:
            self._inner.on_started(total)

    def on_progress(self, progress: SyncProgress) -> None:
        if not self._finished:
            self._inner.on_progress(progress)

    def on_success(self, result: Any) -> None:
        if self._claim_terminal():
            self._inner.on_success(result)

    def on_error(self, message: str, error: BaseException | None = None) -> None:
        if self._claim_terminal():
            self._inner.on_error(message, error)

    def _claim_terminal(self) -> bool:
        with self._lock:
            if self._finished:
                logger.debug("Dropping extra terminal event")
                return False
            self._finished = True
            return True
