from __future__ import annotations

import logging
from typing import Any, Callable

from PySide6.QtCore import QObject, Qt, QThread, Slot

from app.application.use_cases.sync_cloud.engine import CloudSyncEngine
from app.bootstrap.logging import log_operational_error
from app.ui.workers.sync_workers import DownloadWorker, StatusWorker, UploadWorker

logger = logging.getLogger(__name__)

ALREADY_RUNNING_MESSAGE = "A sync run is already in progress."

_QUEUED = Qt.ConnectionType.QueuedConnection


def _noop(*_args: Any) -> None:
    return None


class SyncController(QObject):
    """Runs engine operations on a ``QThread`` and reports back to ``view``.

    Worker signals land on this controller's slots through queued
    connections, so ``view`` hooks and the in-progress flag are only touched
    on the thread that owns the controller. ``view`` may implement any of
    ``set_sync_in_progress``, ``on_sync_started``, ``on_sync_progress``,
    ``on_upload_finished``, ``on_download_finished``, ``on_status_ready`` and
    ``on_sync_failed``; missing hooks are ignored.
    """

    def __init__(
        self,
        engine: CloudSyncEngine,
        token_provider: Callable[[], str],
        view: Any,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._engine = engine
        self._token_provider = token_provider
        self.view = view
        self._in_progress = False
        self._operation: str | None = None
        self._on_finished: Callable[[Any], Any] = _noop
        self._thread: QThread | None = None
        self._worker: Any = None

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    def start_upload(self) -> bool:
        return self._run_background_operation(
            lambda: UploadWorker(self._engine, self._token_provider()),
            on_finished=self._hook("on_upload_finished"),
            operation_name="upload",
        )

    def start_download(self) -> bool:
        return self._run_background_operation(
            lambda: DownloadWorker(self._engine, self._token_provider()),
            on_finished=self._hook("on_download_finished"),
            operation_name="download",
        )

    def refresh_status(self) -> bool:
        return self._run_background_operation(
            lambda: StatusWorker(self._engine),
            on_finished=self._hook("on_status_ready"),
            operation_name="status",
        )

    def _hook(self, name: str) -> Callable[..., Any]:
        return getattr(self.view, name, _noop)

    def _run_background_operation(
        self,
        worker_factory: Callable[[], Any],
        *,
        on_finished: Callable[[Any], Any],
        operation_name: str,
    ) -> bool:
        if self._in_progress:
            logger.info("Ignoring %s request: another run is active", operation_name)
            self._hook("on_sync_failed")(ALREADY_RUNNING_MESSAGE)
            return False

        self._operation = operation_name
        self._on_finished = on_finished
        self._set_in_progress(True)
        thread = QThread()
        worker = worker_factory()
        worker.moveToThread(thread)
        thread.started.connect(worker.run)
        worker.started.connect(self._relay_started, _QUEUED)
        worker.progress.connect(self._relay_progress, _QUEUED)
        worker.finished.connect(self._relay_finished, _QUEUED)
        worker.failed.connect(self._relay_failed, _QUEUED)
        worker.finished.connect(thread.quit)
        worker.failed.connect(thread.quit)
        thread.finished.connect(worker.deleteLater)
        thread.finished.connect(thread.deleteLater)
        self._thread = thread
        self._worker = worker
        thread.start()
        return True

    @Slot(int)
    def _relay_started(self, total: int) -> None:
        self._hook("on_sync_started")(total)

    @Slot(int, int)
    def _relay_progress(self, processed: int, total: int) -> None:
        self._hook("on_sync_progress")(processed, total)

    @Slot(object)
    def _relay_finished(self, result: Any) -> None:
        self._set_in_progress(False)
        self._on_finished(result)

    @Slot(str)
    def _relay_failed(self, message: str) -> None:
        log_operational_error(logger, "Sync failed", extra={"operation": self._operation, "message": message})
        self._set_in_progress(False)
        self._hook("on_sync_failed")(message)

    def _set_in_progress(self, value: bool) -> None:
        self._in_progress = value
        self._hook("set_sync_in_progress")(value)
