from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from app.infrastructure import migrations
from app.infrastructure.migrations import MigrationRunner, MigrationStatus


@pytest.fixture
def raw_connection() -> sqlite3.Connection:
    conn = sqlite3.connect(":memory:")
    yield conn
    conn.close()


def _tables(connection: sqlite3.Connection) -> set[str]:
    rows = connection.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    return {row[0] for row in rows}


def test_apply_all_creates_schema_and_records_history(raw_connection) -> None:
    runner = MigrationRunner(raw_connection)

    applied = runner.apply_all()

    assert applied == [1]
    assert {"hikes", "observations", "schema_migrations"} <= _tables(raw_connection)
    history = raw_connection.execute("SELECT version, name, checksum FROM schema_migrations").fetchone()
    assert history["version"] == 1
    assert history["name"] == "initial_schema"
    assert len(history["checksum"]) == 64
    assert raw_connection.execute("PRAGMA user_version").fetchone()[0] == 1


def test_apply_all_is_idempotent(raw_connection) -> None:
    runner = MigrationRunner(raw_connection)
    runner.apply_all()

    assert runner.apply_all() == []


def test_rollback_drops_tables_and_resets_user_version(raw_connection) -> None:
    runner = MigrationRunner(raw_connection)
    runner.apply_all()

    rolled_back = runner.rollback(1)

    assert rolled_back == [1]
    assert "hikes" not in _tables(raw_connection)
    assert raw_connection.execute("PRAGMA user_version").fetchone()[0] == 0
    assert runner.status() == [MigrationStatus(1, "initial_schema", applied=False)]


def test_status_reports_applied_migrations(raw_connection) -> None:
    runner = MigrationRunner(raw_connection)
    assert runner.status()[0].applied is False

    runner.apply_all()

    assert runner.status()[0].applied is True


def test_missing_down_script_is_rejected(tmp_path: Path, raw_connection) -> None:
    (tmp_path / "001_only_up.up.sql").write_text("CREATE TABLE t (id INTEGER);", encoding="utf-8")

    with pytest.raises(FileNotFoundError, match="001_only_up.up.sql"):
        MigrationRunner(raw_connection, migrations_dir=tmp_path)


def test_custom_migrations_dir_applies_in_version_order(tmp_path: Path, raw_connection) -> None:
    (tmp_path / "002_second.up.sql").write_text("ALTER TABLE t ADD COLUMN label TEXT;", encoding="utf-8")
    (tmp_path / "002_second.down.sql").write_text("", encoding="utf-8")
    (tmp_path / "001_first.up.sql").write_text("CREATE TABLE t (id INTEGER);", encoding="utf-8")
    (tmp_path / "001_first.down.sql").write_text("DROP TABLE t;", encoding="utf-8")

    applied = MigrationRunner(raw_connection, migrations_dir=tmp_path).apply_all()

    assert applied == [1, 2]
    columns = [row[1] for row in raw_connection.execute("PRAGMA table_info(t)").fetchall()]
    assert columns == ["id", "label"]


def test_cli_up_then_status(tmp_path: Path, monkeypatch, capsys, restore_root_logging) -> None:
    monkeypatch.setattr(migrations, "resolve_log_dir", lambda: tmp_path / "logs")
    db_path = tmp_path / "cli.db"

    assert migrations.main(["up", "--db", str(db_path)]) == 0
    assert migrations.main(["status", "--db", str(db_path)]) == 0

    output = capsys.readouterr().out
    assert "Applied 1 migration(s)" in output
    assert "[x] 0001 initial_schema" in output


def test_status_flags_scripts_edited_after_apply(tmp_path: Path, raw_connection) -> None:
    up_script = tmp_path / "001_first.up.sql"
    up_script.write_text("CREATE TABLE t (id INTEGER);", encoding="utf-8")
    (tmp_path / "001_first.down.sql").write_text("DROP TABLE t;", encoding="utf-8")
    MigrationRunner(raw_connection, migrations_dir=tmp_path).apply_all()

    up_script.write_text("CREATE TABLE t (id INTEGER, extra TEXT);", encoding="utf-8")

    assert MigrationRunner(raw_connection, migrations_dir=tmp_path).status() == [
        MigrationStatus(1, "first", applied=True, modified=True)
    ]


def test_scripts_with_unexpected_names_are_ignored(tmp_path: Path, raw_connection) -> None:
    (tmp_path / "notes.up.sql").write_text("CREATE TABLE t (id INTEGER);", encoding="utf-8")

    assert MigrationRunner(raw_connection, migrations_dir=tmp_path).apply_all() == []
