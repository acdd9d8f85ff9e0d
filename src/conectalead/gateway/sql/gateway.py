"""
SQL Gateway

Gateway implementation over SQLAlchemy for the self-hosted backend.
Implements the same filter/order/embed contract as the REST gateway:
embeds are resolved with one extra query per embedded table.
"""

import asyncio
import functools
import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime
from enum import Enum
from typing import Any

from sqlalchemy import Table, and_, create_engine, delete, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from conectalead.contracts.schema import get_relation
from conectalead.errors import GatewayError
from conectalead.gateway.base import Embed, Filter, Gateway, Order, Row, in_
from conectalead.gateway.sql.models import SqlBase, new_id

logger = logging.getLogger(__name__)


def create_sql_engine(database_url: str) -> Engine:
    """
    Create an engine for database_url.

    In-memory SQLite shares one connection so every session sees the
    same database.
    """
    if database_url == "sqlite://" or (database_url.startswith("sqlite") and ":memory:" in database_url):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, pool_pre_ping=True, echo=False)


def create_schema(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    SqlBase.metadata.create_all(engine)


def _coerce(table: Table, column: str, value: Any) -> Any:
    """Convert API-shaped values (ISO strings, enums) to column types."""
    if isinstance(value, Enum):
        value = value.value
    if value is None or column not in table.c:
        return value
    try:
        python_type = table.c[column].type.python_type
    except NotImplementedError:
        return value
    if isinstance(value, str):
        if python_type is datetime:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)
        if python_type is date:
            return date.fromisoformat(value[:10])
    if python_type is date and isinstance(value, datetime):
        return value.date()
    if python_type is datetime and isinstance(value, datetime) and value.tzinfo is not None:
        return value.replace(tzinfo=None) - value.utcoffset()
    return value


def _project(row: Row, columns: str) -> Row:
    if columns.strip() == "*":
        return row
    wanted = [c.strip() for c in columns.split(",") if c.strip()]
    return {k: row[k] for k in wanted if k in row}


class SqlGateway(Gateway):
    """
    Gateway backed by a SQLAlchemy engine.

    Every call runs in its own session and commits on success. Calls run
    one at a time on a worker thread so the event loop is never blocked.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._sessionmaker = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="sql-gateway")

    async def _run(self, fn, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(fn, *args))

    @functools.cached_property
    def _tables(self) -> dict[str, Table]:
        return dict(SqlBase.metadata.tables)

    def _table(self, name: str) -> Table:
        try:
            return self._tables[name]
        except KeyError:
            raise GatewayError(f"Unknown table: {name}", code="UNKNOWN_TABLE") from None

    def _where(self, table: Table, filters: list[Filter] | tuple[Filter, ...] | None):
        clauses = []
        for f in filters or []:
            if f.column not in table.c:
                raise GatewayError(f"Unknown column: {table.name}.{f.column}", code="UNKNOWN_COLUMN")
            col = table.c[f.column]
            if f.op == "in":
                clauses.append(col.in_([_coerce(table, f.column, v) for v in f.value]))
                continue
            value = _coerce(table, f.column, f.value)
            if f.op == "eq":
                clauses.append(col == value)
            elif f.op == "neq":
                clauses.append(col != value)
            elif f.op == "gt":
                clauses.append(col > value)
            elif f.op == "gte":
                clauses.append(col >= value)
            elif f.op == "lt":
                clauses.append(col < value)
            elif f.op == "lte":
                clauses.append(col <= value)
            elif f.op == "ilike":
                clauses.append(col.ilike(value))
            elif f.op == "is":
                clauses.append(col.is_(None) if value is None else col == value)
            else:
                raise GatewayError(f"Unsupported operator: {f.op}", code="BAD_OPERATOR")
        return and_(*clauses) if clauses else None

    def _fetch(
        self,
        db: Session,
        table: Table,
        filters: list[Filter] | tuple[Filter, ...] | None = None,
        order: list[Order] | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        stmt = select(table)
        where = self._where(table, filters)
        if where is not None:
            stmt = stmt.where(where)
        for o in order or []:
            col = table.c[o.column]
            stmt = stmt.order_by(col.asc() if o.ascending else col.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return [dict(r._mapping) for r in db.execute(stmt)]

    def _attach_embed(self, db: Session, parent: str, rows: list[Row], embed: Embed) -> list[Row]:
        relation = get_relation(parent, embed.table)
        child_table = self._table(embed.table)
        keys = {r[relation.parent_key] for r in rows if r.get(relation.parent_key) is not None}

        grouped: dict[Any, list[Row]] = defaultdict(list)
        if keys:
            children = self._fetch(db, child_table, [in_(relation.child_key, list(keys)), *embed.filters])
            for child in children:
                grouped[child[relation.child_key]].append(_project(child, embed.columns))

        result = []
        for row in rows:
            matches = grouped.get(row.get(relation.parent_key), [])
            if embed.inner and not matches:
                continue
            row[embed.key] = matches if relation.many else (matches[0] if matches else None)
            result.append(row)
        return result

    async def select(
        self,
        table: str,
        filters: list[Filter] | None = None,
        order: list[Order] | None = None,
        embeds: list[Embed] | None = None,
        limit: int | None = None,
        columns: str = "*",
    ) -> list[Row]:
        return await self._run(self._select, table, filters, order, embeds, limit, columns)

    def _select(
        self,
        table: str,
        filters: list[Filter] | None,
        order: list[Order] | None,
        embeds: list[Embed] | None,
        limit: int | None,
        columns: str,
    ) -> list[Row]:
        t = self._table(table)
        db = self._sessionmaker()
        try:
            # Inner embeds filter parents, so the limit applies afterwards
            inner = any(e.inner for e in embeds or [])
            rows = self._fetch(db, t, filters, order, None if inner else limit)
            for embed in embeds or []:
                rows = self._attach_embed(db, table, rows, embed)
            if inner and limit is not None:
                rows = rows[:limit]
            embed_keys = {e.key for e in embeds or []}
            return [{**_project(r, columns), **{k: r[k] for k in embed_keys if k in r}} for r in rows]
        except SQLAlchemyError as e:
            logger.error(f"Select on {table} failed: {e}")
            raise GatewayError(f"Select on {table} failed: {e}", code="DB_ERROR") from e
        finally:
            db.close()

    async def insert(self, table: str, rows: Row | list[Row]) -> list[Row]:
        rows = [rows] if isinstance(rows, dict) else list(rows)
        if not rows:
            return []
        return await self._run(self._insert, table, rows)

    def _insert(self, table: str, rows: list[Row]) -> list[Row]:
        t = self._table(table)
        prepared = []
        for row in rows:
            values = {k: _coerce(t, k, v) for k, v in row.items() if k in t.c}
            if "id" in t.c and not values.get("id"):
                values["id"] = new_id()
            prepared.append(values)

        db = self._sessionmaker()
        try:
            for values in prepared:
                db.execute(insert(t).values(**values))
            db.commit()
            ids = [v["id"] for v in prepared]
            return self._fetch(db, t, [Filter("id", "in", ids)])
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Insert into {table} failed: {e}")
            raise GatewayError(f"Insert into {table} failed: {e}", code="DB_ERROR") from e
        finally:
            db.close()

    async def update(self, table: str, patch: Row, filters: list[Filter]) -> list[Row]:
        self._require_filters("update", table, filters)
        return await self._run(self._update, table, patch, filters)

    def _update(self, table: str, patch: Row, filters: list[Filter]) -> list[Row]:
        t = self._table(table)
        values = {k: _coerce(t, k, v) for k, v in patch.items() if k in t.c and k != "id"}

        db = self._sessionmaker()
        try:
            ids = [r["id"] for r in self._fetch(db, t, filters)]
            if not ids:
                return []
            if values:
                db.execute(update(t).where(t.c.id.in_(ids)).values(**values))
                db.commit()
            return self._fetch(db, t, [Filter("id", "in", ids)])
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Update on {table} failed: {e}")
            raise GatewayError(f"Update on {table} failed: {e}", code="DB_ERROR") from e
        finally:
            db.close()

    async def delete(self, table: str, filters: list[Filter]) -> list[Row]:
        self._require_filters("delete", table, filters)
        return await self._run(self._delete, table, filters)

    def _delete(self, table: str, filters: list[Filter]) -> list[Row]:
        t = self._table(table)

        db = self._sessionmaker()
        try:
            rows = self._fetch(db, t, filters)
            if rows:
                db.execute(delete(t).where(t.c.id.in_([r["id"] for r in rows])))
                db.commit()
            return rows
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Delete on {table} failed: {e}")
            raise GatewayError(f"Delete on {table} failed: {e}", code="DB_ERROR") from e
        finally:
            db.close()

    async def close(self) -> None:
        self._executor.shutdown(wait=True)
        self.engine.dispose()
