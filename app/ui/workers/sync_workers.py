from __future__ import annotations

import logging
from typing import Any

from PySide6.QtCore import QObject, Signal, Slot

from app.application.use_cases.sync_cloud.engine import CloudSyncEngine
from app.domain.ports import SyncProgressSink
from app.domain.sync_models import SyncProgress

logger = logging.getLogger(__name__)


class _SignalSink(SyncProgressSink):
    """Turns engine callbacks into worker signals emitted from the worker thread."""

    def __init__(self, worker: "_EngineWorker") -> None:
        self._worker = worker

    def on_started(self, total: int) -> None:
        self._worker.started.emit(total)

    def on_progress(self, progress: SyncProgress) -> None:
        self._worker.progress.emit(progress.processed, progress.total)

    def on_success(self, result: Any) -> None:
        self._worker.finished.emit(result)

    def on_error(self, message: str, error: BaseException | None = None) -> None:
        self._worker.failed.emit(message)


class _EngineWorker(QObject):
    started = Signal(int)
    progress = Signal(int, int)
    finished = Signal(object)
    failed = Signal(str)

    def __init__(self, engine: CloudSyncEngine) -> None:
        super().__init__()
        self._engine = engine

    @Slot()
    def run(self) -> None:
        self._execute(_SignalSink(self))

    def _execute(self, sink: SyncProgressSink) -> None:
        raise NotImplementedError


class UploadWorker(_EngineWorker):
    def __init__(self, engine: CloudSyncEngine, auth_token: str) -> None:
        super().__init__(engine)
        self._auth_token = auth_token

    def _execute(self, sink: SyncProgressSink) -> None:
        self._engine.upload_all(self._auth_token, sink)


class DownloadWorker(_EngineWorker):
    def __init__(self, engine: CloudSyncEngine, auth_token: str) -> None:
        super().__init__(engine)
        self._auth_token = auth_token

    def _execute(self, sink: SyncProgressSink) -> None:
        self._engine.download_all(self._auth_token, sink)


class StatusWorker(_EngineWorker):
    def _execute(self, sink: SyncProgressSink) -> None:
        self._engine.status(sink)
