from __future__ import annotations

from app.entrypoints.main import run

if __name__ == "__main__":
    raise SystemExit(run())
