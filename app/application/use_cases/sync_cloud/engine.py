from __future__ import annotations

import logging
from threading import Lock
from typing import Callable, Optional, TypeVar

from app.application.use_cases.sync_cloud.download_reconciler import DownloadReconciler
from app.application.use_cases.sync_cloud.progress import NullProgressSink, TerminalOnceSink
from app.application.use_cases.sync_cloud.status_reporter import SyncStatusReporter
from app.application.use_cases.sync_cloud.upload_reconciler import UploadReconciler
from app.core.errors import SyncAlreadyRunningError, ValidationError, describe_error
from app.core.metrics import measure_time, metrics_registry
from app.core.observability import OperationContext, log_event
from app.domain.ports import SyncProgressSink
from app.domain.sync_models import DownloadResult, SyncStatusSnapshot, UploadResult

logger = logging.getLogger(__name__)

_R = TypeVar("_R")

UserIdProvider = Callable[[], Optional[str]]


def _deliver(callback: Callable[..., None], *args: object) -> None:
    """Calls a sink terminal hook; a failing sink is logged, never raised."""
    try:
        callback(*args)
    except Exception as exc:  # noqa: BLE001
        logger.error("Progress sink raised in %s", getattr(callback, "__name__", "callback"), exc_info=exc)


class CloudSyncEngine:
    """Entry point for upload, download and status runs.

    Results and failures are delivered through the sink, which receives
    exactly one terminal event per call; nothing is raised to the caller.
    Only one upload or download may run at a time per engine.
    """

    def __init__(
        self,
        uploader: UploadReconciler,
        downloader: DownloadReconciler,
        status_reporter: SyncStatusReporter,
        user_id_provider: UserIdProvider,
    ) -> None:
        self._uploader = uploader
        self._downloader = downloader
        self._status_reporter = status_reporter
        self._user_id_provider = user_id_provider
        self._run_lock = Lock()

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    def upload_all(self, auth_token: str, sink: SyncProgressSink | None = None) -> UploadResult | None:
        def _upload(guarded: SyncProgressSink) -> UploadResult:
            user_id = self._user_id_provider()
            if not user_id:
                raise ValidationError("No signed-in user; log in before uploading.")
            return self._timed_upload(auth_token, user_id, guarded)

        return self._run_exclusive("upload", auth_token, sink, _upload)

    def download_all(self, auth_token: str, sink: SyncProgressSink | None = None) -> DownloadResult | None:
        return self._run_exclusive(
            "download",
            auth_token,
            sink,
            lambda guarded: self._timed_download(auth_token, guarded),
        )

    def status(self, sink: SyncProgressSink | None = None) -> SyncStatusSnapshot | None:
        guarded = TerminalOnceSink(sink or NullProgressSink())
        try:
            snapshot = self._status_reporter.snapshot()
        except Exception as exc:  # noqa: BLE001
            logger.error("Sync status unavailable", exc_info=exc)
            _deliver(guarded.on_error, str(exc) or type(exc).__name__, exc)
            return None
        _deliver(guarded.on_success, snapshot)
        return snapshot

    def offline_hike_count(self) -> int:
        return self._status_reporter.offline_hike_count()

    @measure_time("latency.sync_upload_ms")
    def _timed_upload(self, auth_token: str, user_id: str, sink: SyncProgressSink) -> UploadResult:
        return self._uploader.run(auth_token, user_id, sink)

    @measure_time("latency.sync_download_ms")
    def _timed_download(self, auth_token: str, sink: SyncProgressSink) -> DownloadResult:
        return self._downloader.run(auth_token, sink)

    def _run_exclusive(
        self,
        operation: str,
        auth_token: str,
        sink: SyncProgressSink | None,
        body: Callable[[SyncProgressSink], _R],
    ) -> _R | None:
        guarded = TerminalOnceSink(sink or NullProgressSink())
        if not self._run_lock.acquire(blocking=False):
            error = SyncAlreadyRunningError("A sync run is already in progress.")
            logger.warning("Rejected concurrent %s run", operation)
            metrics_registry.increment(f"sync.{operation}.rejected")
            _deliver(guarded.on_error, str(error), error)
            return None

        try:
            with OperationContext(f"sync_{operation}") as context:
                log_event(logger, "sync_started", {"operation": operation}, context.correlation_id)
                metrics_registry.increment(f"sync.{operation}.runs")
                try:
                    if not auth_token:
                        raise ValidationError("Missing auth token; log in before syncing.")
                    result = body(guarded)
                except Exception as exc:  # noqa: BLE001
                    metrics_registry.increment(f"sync.{operation}.errors")
                    logger.error(
                        "Sync %s aborted",
                        operation,
                        exc_info=exc,
                        extra={"extra": {"operation": operation}},
                    )
                    log_event(
                        logger,
                        "sync_failed",
                        {"operation": operation, **describe_error(exc)},
                        context.correlation_id,
                    )
                    _deliver(guarded.on_error, str(exc) or type(exc).__name__, exc)
                    return None

                payload = {"operation": operation, **result.to_dict()}
                log_event(logger, "sync_succeeded", payload, context.correlation_id)
                failed = getattr(result, "failed", 0)
                if failed:
                    metrics_registry.increment(f"sync.{operation}.records_failed", failed)
                _deliver(guarded.on_success, result)
                return result
        finally:
            self._run_lock.release()
