"""SQLAlchemy implementation of the record store."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..core.errors import StoreError
from ..db.migrate import run_migrations
from ..db.session import Base, build_engine, build_session_factory
from ..models.returns import ExpectedReturn, ReceivedReturn
from .base import ReturnsStore, Table

logger = logging.getLogger(__name__)

MODELS = {"expected": ExpectedReturn, "received": ReceivedReturn}
COLUMNS = {
    "expected": ("barcode", "name", "phone", "added_at"),
    "received": ("barcode", "added_at"),
}
_UPSERT_DIALECTS = {"sqlite": sqlite.insert, "postgresql": postgresql.insert}


class SqlReturnsStore(ReturnsStore):
    """Keeps both tables in one SQL database."""

    backend = "sql"

    def __init__(self, engine: Engine, *, create_schema: bool = True) -> None:
        self.engine = engine
        self._sessions = build_session_factory(engine)
        if create_schema:
            Base.metadata.create_all(bind=engine)
            run_migrations(engine)

    @classmethod
    def from_url(cls, url: str) -> "SqlReturnsStore":
        return cls(build_engine(url))

    def _clean(self, table: Table, row: dict[str, Any]) -> dict[str, Any]:
        cleaned = {key: row.get(key) for key in COLUMNS[table]}
        for key in ("name", "phone"):
            if key in cleaned and cleaned[key] is None:
                cleaned[key] = ""
        return cleaned

    def select_all(self, table: Table) -> list[dict[str, Any]]:
        model = MODELS[table]
        try:
            with self._sessions() as db:
                records = db.execute(select(model).order_by(model.id)).scalars().all()
        except SQLAlchemyError as exc:
            logger.error("Store select on %s failed: %s", table, exc)
            raise StoreError(str(exc)) from exc
        return [{key: getattr(record, key) for key in COLUMNS[table]} for record in records]

    def upsert(self, table: Table, rows: list[dict[str, Any]]) -> None:
        if not rows:
            return
        model = MODELS[table]
        payload = [self._clean(table, row) for row in rows]
        insert = _UPSERT_DIALECTS.get(self.engine.dialect.name)
        try:
            with self._sessions() as db:
                if insert is not None:
                    stmt = insert(model).values(payload)
                    updates = {key: stmt.excluded[key] for key in COLUMNS[table] if key != "barcode"}
                    stmt = stmt.on_conflict_do_update(index_elements=["barcode"], set_=updates)
                    db.execute(stmt)
                else:
                    self._merge_rows(db, model, payload)
                db.commit()
        except SQLAlchemyError as exc:
            logger.error("Store upsert on %s failed: %s", table, exc)
            raise StoreError(str(exc)) from exc

    def _merge_rows(self, db, model, payload: list[dict[str, Any]]) -> None:
        for row in payload:
            existing = db.execute(select(model).where(model.barcode == row["barcode"])).scalars().first()
            if existing:
                for key, value in row.items():
                    setattr(existing, key, value)
            else:
                db.add(model(**row))
            db.flush()

    def delete(self, table: Table, barcodes: Iterable[str]) -> None:
        codes = [code for code in barcodes if code]
        if not codes:
            return
        model = MODELS[table]
        try:
            with self._sessions() as db:
                db.execute(delete(model).where(model.barcode.in_(codes)))
                db.commit()
        except SQLAlchemyError as exc:
            logger.error("Store delete on %s failed: %s", table, exc)
            raise StoreError(str(exc)) from exc

    def delete_all(self, table: Table) -> None:
        try:
            with self._sessions() as db:
                db.execute(delete(MODELS[table]))
                db.commit()
        except SQLAlchemyError as exc:
            logger.error("Store delete_all on %s failed: %s", table, exc)
            raise StoreError(str(exc)) from exc

    def close(self) -> None:
        self.engine.dispose()
