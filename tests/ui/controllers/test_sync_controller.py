from __future__ import annotations

from unittest.mock import Mock

import pytest

from app.domain.sync_models import SyncStatusSnapshot, UploadResult
from app.ui.controllers import sync_controller as module
from app.ui.controllers.sync_controller import ALREADY_RUNNING_MESSAGE, SyncController


class _FakeSignal:
    def __init__(self) -> None:
        self.callbacks = []
        self.connection_types = []

    def connect(self, callback, connection_type=None) -> None:
        self.callbacks.append(callback)
        self.connection_types.append(connection_type)

    def emit(self, *args) -> None:
        for callback in list(self.callbacks):
            callback(*args)


class _FakeThread:
    instances: list["_FakeThread"] = []

    def __init__(self) -> None:
        self.started = _FakeSignal()
        self.finished = _FakeSignal()
        self.started_flag = False
        self.quit_called = False
        _FakeThread.instances.append(self)

    def quit(self, *_args) -> None:
        self.quit_called = True

    def deleteLater(self) -> None:
        return None

    def start(self) -> None:
        self.started_flag = True


class _FakeWorker:
    def __init__(self, engine, auth_token: str | None = None) -> None:
        self.engine = engine
        self.auth_token = auth_token
        self.started = _FakeSignal()
        self.progress = _FakeSignal()
        self.finished = _FakeSignal()
        self.failed = _FakeSignal()
        self.thread = None

    def moveToThread(self, thread) -> None:
        self.thread = thread

    def run(self) -> None:
        return None

    def deleteLater(self) -> None:
        return None


def _view() -> Mock:
    return Mock(
        spec=[
            "set_sync_in_progress",
            "on_sync_started",
            "on_sync_progress",
            "on_upload_finished",
            "on_download_finished",
            "on_status_ready",
            "on_sync_failed",
        ]
    )


@pytest.fixture
def fake_qt(monkeypatch):
    _FakeThread.instances = []
    monkeypatch.setattr(module, "QThread", _FakeThread)
    monkeypatch.setattr(module, "UploadWorker", _FakeWorker)
    monkeypatch.setattr(module, "DownloadWorker", _FakeWorker)
    monkeypatch.setattr(module, "StatusWorker", _FakeWorker)
    return _FakeThread


@pytest.mark.headless_safe
def test_start_upload_runs_worker_on_thread(fake_qt) -> None:
    view = _view()
    engine = object()
    controller = SyncController(engine, lambda: "tok-1", view)

    assert controller.start_upload() is True

    thread = fake_qt.instances[0]
    worker = controller._worker
    assert thread.started_flag is True
    assert worker.thread is thread
    assert worker.engine is engine
    assert worker.auth_token == "tok-1"
    assert thread.started.callbacks == [worker.run]
    view.set_sync_in_progress.assert_called_once_with(True)
    assert controller.in_progress is True


@pytest.mark.headless_safe
def test_second_request_while_running_is_refused(fake_qt) -> None:
    view = _view()
    controller = SyncController(object(), lambda: "tok", view)
    controller.start_upload()

    assert controller.start_download() is False
    assert controller.refresh_status() is False

    assert len(fake_qt.instances) == 1
    assert view.on_sync_failed.call_count == 2
    view.on_sync_failed.assert_called_with(ALREADY_RUNNING_MESSAGE)


@pytest.mark.headless_safe
def test_finished_signal_reaches_view_and_clears_flag(fake_qt) -> None:
    view = _view()
    controller = SyncController(object(), lambda: "tok", view)
    controller.start_upload()
    worker = controller._worker
    result = UploadResult(total=1, succeeded=1)

    worker.started.emit(1)
    worker.progress.emit(1, 1)
    worker.finished.emit(result)

    view.on_sync_started.assert_called_once_with(1)
    view.on_sync_progress.assert_called_once_with(1, 1)
    view.on_upload_finished.assert_called_once_with(result)
    view.set_sync_in_progress.assert_called_with(False)
    assert controller.in_progress is False
    assert fake_qt.instances[0].quit_called is True


@pytest.mark.headless_safe
def test_failed_signal_logs_and_reports(fake_qt, monkeypatch) -> None:
    logged = []
    monkeypatch.setattr(module, "log_operational_error", lambda *args, **kwargs: logged.append((args, kwargs)))
    view = _view()
    controller = SyncController(object(), lambda: "tok", view)
    controller.start_download()

    controller._worker.failed.emit("Remote service unavailable")

    view.on_sync_failed.assert_called_once_with("Remote service unavailable")
    assert controller.in_progress is False
    assert logged[0][1]["extra"] == {"operation": "download", "message": "Remote service unavailable"}


@pytest.mark.headless_safe
def test_status_result_goes_to_status_hook(fake_qt) -> None:
    view = _view()
    controller = SyncController(object(), lambda: "tok", view)
    controller.refresh_status()
    snapshot = SyncStatusSnapshot(2, 1, 1, 50)

    controller._worker.finished.emit(snapshot)

    view.on_status_ready.assert_called_once_with(snapshot)
    assert controller._worker.auth_token is None


@pytest.mark.headless_safe
def test_view_without_hooks_is_accepted(fake_qt) -> None:
    controller = SyncController(object(), lambda: "tok", object())

    assert controller.start_upload() is True
    controller._worker.finished.emit(UploadResult())
    assert controller.in_progress is False


@pytest.mark.headless_safe
def test_worker_results_use_queued_connections(fake_qt) -> None:
    controller = SyncController(object(), lambda: "tok", _view())
    controller.start_upload()
    worker = controller._worker

    queued = module.Qt.ConnectionType.QueuedConnection
    assert worker.started.connection_types == [queued]
    assert worker.progress.connection_types == [queued]
    assert worker.finished.connection_types == [queued, None]
    assert worker.failed.connection_types == [queued, None]
