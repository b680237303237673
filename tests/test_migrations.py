import sqlite3

import pytest

from jobcard_api.db.run_migrations import main as run_alembic


def test_upgrade_creates_workflow_tables(tmp_path, monkeypatch):
    db_file = tmp_path / "migrated.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")

    run_alembic(["upgrade", "head"])

    with sqlite3.connect(db_file) as conn:
        tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
    assert {
        "production_plans",
        "job_cards",
        "step_transitions",
        "qa_reports",
        "rejections",
        "material_requests",
        "alembic_version",
    } <= tables


def test_unknown_command_exits():
    with pytest.raises(SystemExit) as info:
        run_alembic(["stamp"])
    assert info.value.code == 2
