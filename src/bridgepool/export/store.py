"""Relational store boundary.

This module provides:
- Store: engine owner, created from a SQLAlchemy database URL
- StoreWriter: one connection + one transaction, bulk insert-or-ignore

All writes of a run go through a single ``Store.transaction()``: it
commits on successful exit and rolls back on any exception, so the
optional clear and every insert land together or not at all.

Usage::

    store = Store("postgresql+psycopg://user:pw@localhost/tor")
    with store.transaction() as writer:
        writer.create_schema()
        writer.insert_ignore(AssignmentFile, [row], "digest")
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import event, func, make_url, select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import ArgumentError, DBAPIError
from sqlmodel import Session, SQLModel, create_engine

from bridgepool.core.errors import PersistenceError
from bridgepool.export.indexes import create_additional_indexes
from bridgepool.export.models import EXPORT_TABLES

if TYPE_CHECKING:
    from sqlalchemy import Engine

log = structlog.get_logger(__name__)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class Store:
    """Database engine owner for the assignment tables."""

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.url = url
        self.engine = self._create_engine(echo)

    def _create_engine(self, echo: bool) -> Engine:
        """Build the engine. No connection is opened yet.

        Raises:
            PersistenceError: CONNECTION_FAILED for an unparseable URL, an
                unknown dialect, or a driver that is not installed.
        """
        try:
            engine = create_engine(self.url, echo=echo, pool_pre_ping=True)
        except (ArgumentError, ImportError) as e:
            raise PersistenceError.connection_failed(_mask_url(self.url), str(e)) from e
        if engine.dialect.name == "sqlite":
            event.listen(engine, "connect", _configure_sqlite_pragmas)
        return engine

    @property
    def safe_url(self) -> str:
        """URL with the password masked, for logs and errors."""
        return self.engine.url.render_as_string(hide_password=True)

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    @contextmanager
    def transaction(self) -> Generator[StoreWriter, None, None]:
        """One transactional writer. Commits on success, rolls back on exception.

        Raises:
            PersistenceError: CONNECTION_FAILED when no connection can be opened.
        """
        try:
            writer = StoreWriter(self.engine)
        except DBAPIError as e:
            raise PersistenceError.connection_failed(self.safe_url, str(e.orig or e)) from e

        try:
            yield writer
            writer.commit()
        except Exception:
            writer.rollback()
            log.warning("transaction_rolled_back", url=self.safe_url)
            raise
        finally:
            writer.close()

    def count(self, model: type[SQLModel]) -> int:
        """Row count of a table (read-only helper)."""
        table = model.__table__  # type: ignore[attr-defined]
        with Session(self.engine) as session:
            return int(session.execute(select(func.count()).select_from(table)).scalar_one())

    def dispose(self) -> None:
        """Close pooled connections."""
        self.engine.dispose()


def _mask_url(url: str) -> str:
    try:
        return make_url(url).render_as_string(hide_password=True)
    except ArgumentError:
        # Unparseable; keep only what follows any credentials
        return url.rpartition("@")[2]


def _configure_sqlite_pragmas(dbapi_conn: Any, _connection_record: Any) -> None:
    """Enforce the file → assignment foreign key on SQLite."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class StoreWriter:
    """Bulk writes on one connection inside one transaction, using Core SQL."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.conn = engine.connect()
        self.transaction = self.conn.begin()

    @property
    def dialect(self) -> str:
        return self.conn.dialect.name

    def create_schema(self) -> None:
        """Create tables and query indexes if absent."""
        tables = [model.__table__ for model in EXPORT_TABLES]  # type: ignore[attr-defined]
        SQLModel.metadata.create_all(self.conn, tables=tables, checkfirst=True)
        create_additional_indexes(self.conn)

    def clear(self) -> None:
        """Empty both tables, referencing table first."""
        for model in reversed(EXPORT_TABLES):
            name = model.__tablename__
            if self.dialect == "postgresql":
                self.conn.execute(text(f"TRUNCATE TABLE {name} CASCADE"))
            else:
                self.conn.execute(text(f"DELETE FROM {name}"))
            log.info("table_cleared", table=name)

    def insert_ignore(
        self,
        model_class: type[SQLModel],
        records: list[dict[str, Any]],
        conflict_column: str,
    ) -> int:
        """Multi-row INSERT ... ON CONFLICT (conflict_column) DO NOTHING.

        Returns:
            Rows actually inserted (conflicting rows are not counted).
        """
        if not records:
            return 0

        insert = _INSERT_BY_DIALECT.get(self.dialect)
        if insert is None:
            raise PersistenceError.write_failed(
                "insert rows", f"unsupported database dialect '{self.dialect}'"
            )

        table = model_class.__table__  # type: ignore[attr-defined]
        stmt = insert(table).values(records).on_conflict_do_nothing(index_elements=[conflict_column])
        result = self.conn.execute(stmt)
        return max(int(result.rowcount), 0)

    def commit(self) -> None:
        """Commit the current transaction."""
        self.transaction.commit()

    def rollback(self) -> None:
        """Rollback the current transaction."""
        self.transaction.rollback()

    def close(self) -> None:
        """Close the connection."""
        self.conn.close()
