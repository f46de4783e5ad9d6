"""Session, transaction and time helpers shared by the services."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from gms.extensions import db


@contextmanager
def atomic() -> Iterator[Session]:
    """Run the enclosed block as one transaction on the request session.

    Commits when the block exits normally; any exception rolls the whole
    unit back and propagates.
    """
    session = db.session
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def for_update(query):
    """Lock selected rows until the end of the transaction.

    SQLite has no row locks (writers are serialised per database), so the
    clause is only added on dialects that support it.
    """
    if db.engine.dialect.name == "sqlite":
        return query
    return query.with_for_update()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from databases without tz support."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def close_db(_: Exception | None = None) -> None:
    db.session.remove()


def ensure_core_tables() -> None:
    """Ensure core ORM tables exist. If missing (e.g., fresh DB without migrations), create them.

    This is a development convenience so the app can run without manual Alembic steps.
    """
    engine = db.engine
    inspector = inspect(engine)
    required_tables = {
        'user', 'workspace', 'membership', 'invitation', 'game', 'puzzle',
        'hint', 'maintenance', 'report', 'puzzle_image', 'report_image', 'audit_log',
    }
    existing = set(inspector.get_table_names())
    if not required_tables.issubset(existing):
        db.create_all()


__all__ = ["atomic", "for_update", "utcnow", "as_utc", "close_db", "ensure_core_tables"]
