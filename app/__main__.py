from __future__ import annotations

from app.entrypoints.main import run

raise SystemExit(run())
