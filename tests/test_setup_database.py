"""
Tests for the jobs table setup script (SQLite stands in for Postgres).
"""

from sqlalchemy import create_engine, inspect, select
from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateTable

import settings
import setup_database


def test_init_db_creates_jobs_table():
    engine = create_engine("sqlite://")

    setup_database.init_db(engine)

    columns = {c["name"] for c in inspect(engine).get_columns("jobs")}
    assert columns == {
        "id", "part_type", "material", "quantity", "complexity", "deadline", "quote",
        "rush_fee_enabled", "rush_fee_amount", "margin_percentage", "created_at",
    }


def test_init_db_is_idempotent():
    engine = create_engine("sqlite://")
    setup_database.init_db(engine)
    setup_database.init_db(engine)
    assert inspect(engine).has_table("jobs")


def test_main_requires_database_url(monkeypatch):
    monkeypatch.setattr(settings, "DATABASE_URL", "")
    assert setup_database.main() == 1


def _ddl_line(ddl, column):
    return next(line for line in ddl.splitlines() if line.strip().startswith(column + " "))


def test_postgres_ddl_generates_id_and_created_at_server_side():
    ddl = str(CreateTable(setup_database.JobRow.__table__).compile(dialect=postgresql.dialect()))

    id_line = _ddl_line(ddl, "id")
    assert "UUID" in id_line
    assert "DEFAULT gen_random_uuid()" in id_line
    assert "DEFAULT now()" in _ddl_line(ddl, "created_at")


def test_insert_without_id_gets_server_defaults():
    engine = create_engine("sqlite://")
    setup_database.init_db(engine)
    jobs = setup_database.JobRow.__table__

    # same shape the app sends: no id, no created_at
    record = {"part_type": "Bracket", "material": "steel", "quantity": 2, "complexity": "low", "quote": 33.0}
    with engine.begin() as conn:
        conn.execute(jobs.insert(), [record, dict(record, part_type="Gear")])
        rows = conn.execute(select(jobs.c.id, jobs.c.created_at, jobs.c.margin_percentage)).all()

    assert len(rows) == 2
    assert all(r.id and r.created_at is not None for r in rows)
    assert rows[0].id != rows[1].id
    assert {r.margin_percentage for r in rows} == {20}
