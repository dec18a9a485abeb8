"""Dialect-aware INSERT ... ON CONFLICT construction."""

from __future__ import annotations

from sqlalchemy import Table
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def dialect_insert(db: AsyncSession, table: Table) -> postgresql.Insert | sqlite.Insert:
    """Return an insert construct that supports ``on_conflict_do_update`` for the session's backend."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(table)
    if dialect == "sqlite":
        return sqlite.insert(table)
    raise RuntimeError(f"Upserts are not supported on dialect: {dialect}")
