from __future__ import annotations

import argparse
import hashlib
import logging
import re
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from app.bootstrap.logging import configure_logging
from app.bootstrap.settings import project_root, resolve_database_path, resolve_log_dir

logger = logging.getLogger(__name__)

_SCRIPT_NAME = re.compile(r"^(?P<version>\d+)_(?P<name>\w+)\.up\.sql$")

_HISTORY_DDL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    checksum TEXT NOT NULL,
    applied_at TEXT NOT NULL
)
"""


@dataclass(frozen=True)
class MigrationScript:
    version: int
    name: str
    up_sql: Path
    down_sql: Path

    def checksum(self) -> str:
        return hashlib.sha256(self.up_sql.read_bytes()).hexdigest()


@dataclass(frozen=True)
class MigrationStatus:
    version: int
    name: str
    applied: bool
    modified: bool = False


def discover_scripts(migrations_dir: Path) -> list[MigrationScript]:
    """Pairs every ``NNN_name.up.sql`` with its ``.down.sql``, sorted by version."""
    scripts: list[MigrationScript] = []
    for up_file in migrations_dir.glob("*.up.sql"):
        match = _SCRIPT_NAME.match(up_file.name)
        if match is None:
            logger.warning("Ignoring migration with unexpected name: %s", up_file.name)
            continue
        down_file = up_file.with_name(up_file.name.replace(".up.sql", ".down.sql"))
        if not down_file.exists():
            raise FileNotFoundError(f"{up_file.name} has no matching {down_file.name}")
        scripts.append(MigrationScript(int(match["version"]), match["name"], up_file, down_file))
    return sorted(scripts, key=lambda script: script.version)


class MigrationRunner:
    """Keeps the SQLite schema in step with the scripts under ``migrations/``.

    ``schema_migrations`` stores the sha256 of every applied up-script;
    ``PRAGMA user_version`` tracks the highest applied version.
    """

    def __init__(self, connection: sqlite3.Connection, migrations_dir: Path | None = None) -> None:
        connection.row_factory = sqlite3.Row
        self.connection = connection
        self.migrations_dir = migrations_dir or project_root() / "migrations"
        self.scripts = discover_scripts(self.migrations_dir)

    def apply_all(self) -> list[int]:
        history = self._history()
        pending = [script for script in self.scripts if script.version not in history]
        for script in pending:
            self._run(script, upgrade=True)
        return [script.version for script in pending]

    def rollback(self, steps: int = 1) -> list[int]:
        by_version = {script.version: script for script in self.scripts}
        newest_first = sorted(self._history(), reverse=True)[: max(steps, 0)]
        for version in newest_first:
            self._run(by_version[version], upgrade=False)
        return newest_first

    def status(self) -> list[MigrationStatus]:
        history = self._history()
        report: list[MigrationStatus] = []
        for script in self.scripts:
            recorded = history.get(script.version)
            modified = recorded is not None and recorded != script.checksum()
            if modified:
                logger.warning("Applied migration %04d was edited afterwards", script.version)
            report.append(MigrationStatus(script.version, script.name, recorded is not None, modified))
        return report

    def _history(self) -> dict[int, str]:
        self.connection.execute(_HISTORY_DDL)
        self.connection.commit()
        rows = self.connection.execute("SELECT version, checksum FROM schema_migrations").fetchall()
        return {row["version"]: row["checksum"] for row in rows}

    def _run(self, script: MigrationScript, *, upgrade: bool) -> None:
        sql = (script.up_sql if upgrade else script.down_sql).read_text(encoding="utf-8")
        if sql.strip():
            self.connection.executescript(sql)
        with self.connection:
            if upgrade:
                applied_at = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
                self.connection.execute(
                    "INSERT INTO schema_migrations (version, name, checksum, applied_at) VALUES (?, ?, ?, ?)",
                    (script.version, script.name, script.checksum(), applied_at),
                )
            else:
                self.connection.execute("DELETE FROM schema_migrations WHERE version = ?", (script.version,))
            current = self.connection.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations").fetchone()[0]
            self.connection.execute(f"PRAGMA user_version = {int(current)}")
        logger.info(
            "Migration applied" if upgrade else "Migration rolled back",
            extra={"extra": {"version": script.version, "name": script.name}},
        )


def run_migrations(connection: sqlite3.Connection) -> None:
    MigrationRunner(connection).apply_all()


def build_cli() -> argparse.ArgumentParser:
    database = argparse.ArgumentParser(add_help=False)
    database.add_argument("--db", default=None, help="SQLite file; defaults to the data directory database")

    parser = argparse.ArgumentParser(prog="hikelog-migrate", description="Manage the HikeLog SQLite schema")
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("up", parents=[database], help="Apply pending migrations")
    down = commands.add_parser("down", parents=[database], help="Roll back applied migrations")
    down.add_argument("--steps", type=int, default=1, help="How many migrations to undo")
    commands.add_parser("status", parents=[database], help="List migrations and whether they are applied")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_cli().parse_args(argv)
    configure_logging(resolve_log_dir())

    db_path = Path(args.db) if args.db else resolve_database_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    connection = sqlite3.connect(db_path)
    try:
        runner = MigrationRunner(connection)
        if args.command == "up":
            print(f"Applied {len(runner.apply_all())} migration(s)")
        elif args.command == "down":
            print(f"Rolled back {len(runner.rollback(args.steps))} migration(s)")
        else:
            for item in runner.status():
                marker = "[x]" if item.applied else "[ ]"
                suffix = " (modified)" if item.modified else ""
                print(f"{marker} {item.version:04d} {item.name}{suffix}")
    finally:
        connection.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
