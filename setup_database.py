# setup_database.py
"""
Create (or upgrade) the `jobs` table the quote tool writes to.

    DATABASE_URL=postgresql://... python setup_database.py

On PostgreSQL this also adds any pricing columns an older table is missing and
installs row-level security policies that let the anon role insert and select.
"""
import sys

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
    create_engine,
    func,
    text,
)
from sqlalchemy.dialects import postgresql
from sqlalchemy.engine import Engine
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql.expression import FunctionElement

import settings
from job_store import COLUMN_MIGRATIONS
from logging_config import get_logger, setup_logging

logger = get_logger(__name__)

Base = declarative_base()


class new_uuid(FunctionElement):
    """Server-side UUID default. Rows inserted through PostgREST carry no id."""

    type = String(36)
    inherit_cache = True


@compiles(new_uuid)
def _new_uuid_default(element, compiler, **kw):
    # sqlite has no uuid function; 32 random hex chars keep the column unique
    return "lower(hex(randomblob(16)))"


@compiles(new_uuid, "postgresql")
def _new_uuid_pg(element, compiler, **kw):
    return "gen_random_uuid()"


class JobRow(Base):
    __tablename__ = "jobs"

    id = Column(
        String(36).with_variant(postgresql.UUID(as_uuid=False), "postgresql"),
        primary_key=True,
        server_default=new_uuid(),
    )
    part_type = Column(Text, nullable=False)
    material = Column(Text, nullable=False)
    quantity = Column(Integer, nullable=False)
    complexity = Column(Text, nullable=False)
    deadline = Column(Date, nullable=True)
    quote = Column(Numeric(10, 2))
    rush_fee_enabled = Column(Boolean, default=False, server_default=text("false"))
    rush_fee_amount = Column(Numeric(10, 2), default=0, server_default=text("0"))
    margin_percentage = Column(Integer, default=20, server_default=text("20"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())


RLS_STATEMENTS = [
    "ALTER TABLE public.jobs ENABLE ROW LEVEL SECURITY",
    'DROP POLICY IF EXISTS "Allow anon insert" ON public.jobs',
    'DROP POLICY IF EXISTS "Allow anon select" ON public.jobs',
    'CREATE POLICY "Allow anon insert" ON public.jobs FOR INSERT TO anon WITH CHECK (true)',
    'CREATE POLICY "Allow anon select" ON public.jobs FOR SELECT TO anon USING (true)',
]


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)
    logger.info("jobs table is present")

    if engine.dialect.name != "postgresql":
        return

    with engine.begin() as conn:
        for column, sql in COLUMN_MIGRATIONS.items():
            conn.execute(text(sql.rstrip(";")))
            logger.info("Ensured column %s", column)
        for sql in RLS_STATEMENTS:
            conn.execute(text(sql))
    logger.info("Row-level security policies installed for anon insert/select")


def main() -> int:
    setup_logging(log_level=settings.LOG_LEVEL)

    if not settings.DATABASE_URL:
        logger.error("DATABASE_URL is not set")
        return 1

    engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)
    init_db(engine)
    return 0


if __name__ == "__main__":
    sys.exit(main())
