from __future__ import annotations

import argparse
import faulthandler
import logging
import sys
from pathlib import Path

from app.application.use_cases.sync_cloud.progress import LoggingProgressSink
from app.bootstrap.container import AppContainer, build_container
from app.bootstrap.exception_handler import handle_global_exception
from app.bootstrap.logging import configure_logging, install_exception_hook
from app.bootstrap.settings import resolve_log_dir

logger = logging.getLogger(__name__)


class _CliSink(LoggingProgressSink):
    def __init__(self, operation: str) -> None:
        super().__init__(operation)
        self.error_message: str | None = None

    def on_error(self, message: str, error: BaseException | None = None) -> None:
        super().on_error(message, error)
        self.error_message = message


def _auth_token(container: AppContainer) -> str:
    session = container.current_session()
    return session.token if session else ""


def _run_upload(container: AppContainer) -> int:
    sink = _CliSink("upload")
    result = container.sync_engine.upload_all(_auth_token(container), sink)
    if result is None:
        print(f"Upload failed: {sink.error_message}")
        return 1
    print(
        f"Uploaded {result.succeeded}/{result.total} record(s), "
        f"{result.failed} failed in {result.duration_ms} ms"
    )
    return 0 if result.failed == 0 else 3


def _run_download(container: AppContainer) -> int:
    sink = _CliSink("download")
    result = container.sync_engine.download_all(_auth_token(container), sink)
    if result is None:
        print(f"Download failed: {sink.error_message}")
        return 1
    print(
        f"Fetched {result.total_fetched} hike(s): {result.inserted} inserted, "
        f"{result.skipped_duplicate} already local, {result.failed} failed in {result.duration_ms} ms"
    )
    return 0 if result.failed == 0 else 3


def _run_status(container: AppContainer) -> int:
    sink = _CliSink("status")
    snapshot = container.sync_engine.status(sink)
    if snapshot is None:
        print(f"Status unavailable: {sink.error_message}")
        return 1
    print(
        f"{snapshot.synced_hikes}/{snapshot.total_hikes} hikes synced "
        f"({snapshot.sync_percentage}%), {snapshot.offline_hikes} offline"
    )
    return 0


def _run_clear_local(container: AppContainer) -> int:
    report = container.local_data_cleaner.clear_all()
    print(f"Removed {report.hikes_deleted} hike(s) and {report.observations_deleted} observation(s)")
    return 0


_COMMANDS = {
    "upload": _run_upload,
    "download": _run_download,
    "status": _run_status,
    "clear-local": _run_clear_local,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hikelog", description="HikeLog offline/cloud sync")
    parser.add_argument("command", choices=sorted(_COMMANDS), help="Operation to run")
    parser.add_argument("--data-dir", default=None, help="Override the data directory")
    return parser


def main(argv: list[str] | None = None, *, container: AppContainer | None = None) -> int:
    args = build_parser().parse_args(argv)

    log_dir = resolve_log_dir()
    configure_logging(log_dir)
    install_exception_hook(log_dir)
    faulthandler.enable()

    logger.info("Log dir: %s", log_dir)
    logger.info("Python: %s", sys.version)
    logger.info("CWD: %s", Path.cwd())

    if container is None:
        data_dir = Path(args.data_dir) if args.data_dir else None
        container = build_container(data_dir=data_dir)
    return _COMMANDS[args.command](container)


def run(argv: list[str] | None = None) -> int:
    """``main`` plus the last-resort handler that turns a crash into an incident id."""
    try:
        return main(argv)
    except Exception:  # noqa: BLE001
        exc_type, exc_value, exc_traceback = sys.exc_info()
        if exc_type is None or exc_value is None:
            return 2
        incident_id = handle_global_exception(exc_type, exc_value, exc_traceback)
        sys.stderr.write(f"Unexpected error. Incident id: {incident_id}\n")
        return 2
