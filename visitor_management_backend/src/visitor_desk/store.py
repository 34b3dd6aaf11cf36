"""
Record store: the data-access contract the services talk to.

Every operation returns a StoreResult carrying either data or an error
description; store failures are logged and reported, never raised.
Two implementations:
- SqlRecordStore: SQLAlchemy session per call (PostgreSQL, SQLite in tests)
- MemoryRecordStore: demo mode when no database is configured
"""

import datetime
import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError

from .database import build_engine, build_session_factory, create_tables
from .models import TABLES

logger = logging.getLogger(__name__)


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


# PUBLIC_INTERFACE
@dataclass
class StoreResult:
    """Outcome of a store call: data on success, error on failure."""
    data: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: Any = None) -> "StoreResult":
        return cls(data=data)

    @classmethod
    def fail(cls, error: str) -> "StoreResult":
        return cls(error=error)


# PUBLIC_INTERFACE
class RecordStore(Protocol):
    """
    Data-access contract over the four tables.

    fetch_all filters by column equality (`filters`) and lower bounds
    (`at_least`, column >= value), then skips `offset` rows and returns at
    most `limit`. update_by_id only writes when the row also matches
    `expected`; it succeeds with None when no row has the id or the row
    does not match. delete_by_id succeeds with False for an unknown id.
    """

    def fetch_all(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
        at_least: Optional[Dict[str, Any]] = None,
    ) -> StoreResult: ...

    def insert_one(self, table: str, values: Dict[str, Any]) -> StoreResult: ...

    def update_by_id(
        self,
        table: str,
        record_id: str,
        values: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None,
    ) -> StoreResult: ...

    def delete_by_id(self, table: str, record_id: str) -> StoreResult: ...


def _columns(table: str) -> List[str]:
    return list(TABLES[table].__table__.columns.keys())


def _check(table: str, *names) -> Optional[str]:
    if table not in TABLES:
        return f"unknown table: {table}"
    columns = _columns(table)
    unknown = [n for n in names if n is not None and n not in columns]
    if unknown:
        return f"unknown column(s) for {table}: {', '.join(sorted(unknown))}"
    return None


def _check_window(offset: int, limit: Optional[int]) -> Optional[str]:
    if offset < 0:
        return f"offset must not be negative: {offset}"
    if limit is not None and limit < 0:
        return f"limit must not be negative: {limit}"
    return None


def _row_to_dict(row) -> Dict[str, Any]:
    return {c.name: getattr(row, c.key) for c in row.__table__.columns}


# PUBLIC_INTERFACE
class SqlRecordStore:
    """
    Record store backed by SQLAlchemy. Each call runs in its own session.
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def fetch_all(self, table, filters=None, order_by=None, descending=False, limit=None, offset=0, at_least=None):
        filters = filters or {}
        at_least = at_least or {}
        problem = _check(table, order_by, *filters, *at_least) or _check_window(offset, limit)
        if problem:
            return StoreResult.fail(problem)
        model = TABLES[table]
        with self._session_factory() as db:
            try:
                query = db.query(model).filter_by(**filters)
                for name, value in at_least.items():
                    query = query.filter(getattr(model, name) >= value)
                if order_by:
                    column = getattr(model, order_by)
                    query = query.order_by(column.desc() if descending else column.asc())
                if offset:
                    query = query.offset(offset)
                if limit is not None:
                    query = query.limit(limit)
                return StoreResult.success([_row_to_dict(r) for r in query.all()])
            except SQLAlchemyError as ex:
                logger.error(f"fetch from {table} failed: {ex}")
                return StoreResult.fail(str(ex))

    def insert_one(self, table, values):
        problem = _check(table, *values)
        if problem:
            return StoreResult.fail(problem)
        now = utcnow()
        values = {"created_at": now, "updated_at": now, **values}
        with self._session_factory() as db:
            try:
                obj = TABLES[table](**values)
                db.add(obj)
                db.commit()
                db.refresh(obj)
                return StoreResult.success(_row_to_dict(obj))
            except SQLAlchemyError as ex:
                db.rollback()
                logger.error(f"insert into {table} failed: {ex}")
                return StoreResult.fail(str(ex))

    def update_by_id(self, table, record_id, values, expected=None):
        expected = expected or {}
        problem = _check(table, *values, *expected)
        if problem:
            return StoreResult.fail(problem)
        model = TABLES[table]
        values = {**values, "updated_at": values.get("updated_at", utcnow())}
        with self._session_factory() as db:
            try:
                # one UPDATE statement, so `expected` is checked where it is written
                matched = (
                    db.query(model)
                    .filter_by(id=record_id, **expected)
                    .update(values, synchronize_session=False)
                )
                db.commit()
                if not matched:
                    return StoreResult.success(None)
                return StoreResult.success(_row_to_dict(db.get(model, record_id)))
            except SQLAlchemyError as ex:
                db.rollback()
                logger.error(f"update of {table}/{record_id} failed: {ex}")
                return StoreResult.fail(str(ex))

    def delete_by_id(self, table, record_id):
        problem = _check(table)
        if problem:
            return StoreResult.fail(problem)
        with self._session_factory() as db:
            try:
                obj = db.get(TABLES[table], record_id)
                if obj is None:
                    return StoreResult.success(False)
                db.delete(obj)
                db.commit()
                return StoreResult.success(True)
            except SQLAlchemyError as ex:
                db.rollback()
                logger.error(f"delete of {table}/{record_id} failed: {ex}")
                return StoreResult.fail(str(ex))


# PUBLIC_INTERFACE
class MemoryRecordStore:
    """
    Record store kept in process memory. Rows are plain dicts and callers
    always get copies.
    """

    def __init__(self):
        self._tables: Dict[str, Dict[str, Dict[str, Any]]] = {name: {} for name in TABLES}
        self._lock = threading.Lock()

    def _defaults(self, table):
        defaults = {}
        for column in TABLES[table].__table__.columns:
            default = column.default
            defaults[column.name] = default.arg if default is not None and default.is_scalar else None
        return defaults

    def fetch_all(self, table, filters=None, order_by=None, descending=False, limit=None, offset=0, at_least=None):
        filters = filters or {}
        at_least = at_least or {}
        problem = _check(table, order_by, *filters, *at_least) or _check_window(offset, limit)
        if problem:
            return StoreResult.fail(problem)
        with self._lock:
            rows = [
                dict(row) for row in self._tables[table].values()
                if all(row.get(k) == v for k, v in filters.items())
                and all(row.get(k) is not None and row[k] >= v for k, v in at_least.items())
            ]
        if order_by:
            rows.sort(key=lambda r: (r[order_by] is None, r[order_by]), reverse=descending)
        rows = rows[offset:]
        if limit is not None:
            rows = rows[:limit]
        return StoreResult.success(rows)

    def insert_one(self, table, values):
        problem = _check(table, *values)
        if problem:
            return StoreResult.fail(problem)
        now = utcnow()
        row = {**self._defaults(table), "created_at": now, "updated_at": now, **values}
        if not row.get("id"):
            row["id"] = uuid.uuid4().hex
        with self._lock:
            if row["id"] in self._tables[table]:
                return StoreResult.fail(f"duplicate id for {table}: {row['id']}")
            self._tables[table][row["id"]] = row
        return StoreResult.success(dict(row))

    def update_by_id(self, table, record_id, values, expected=None):
        expected = expected or {}
        problem = _check(table, *values, *expected)
        if problem:
            return StoreResult.fail(problem)
        with self._lock:
            row = self._tables[table].get(record_id)
            if row is None or any(row.get(k) != v for k, v in expected.items()):
                return StoreResult.success(None)
            row.update(values)
            row["updated_at"] = values.get("updated_at", utcnow())
            return StoreResult.success(dict(row))

    def delete_by_id(self, table, record_id):
        problem = _check(table)
        if problem:
            return StoreResult.fail(problem)
        with self._lock:
            return StoreResult.success(self._tables[table].pop(record_id, None) is not None)


DEFAULT_SYSTEM_SETTINGS = {
    "site_name": "Vitasco Besucherverwaltung",
    "logo_url": None,
    "company_name": "Vitasco GmbH",
    "language": "de",
    "timezone": "Europe/Berlin",
    "slideshow_interval": 10,
    "auto_checkout_time": 18,
    "max_upload_size": 20,
    "tablet_display_mode": "auto",
    "visitor_display_limit": 10,
    "enable_notifications": True,
    "enable_auto_checkout": True,
}

DEFAULT_LAYOUT = {
    "name": "Standard Layout",
    "header_enabled": True,
    "header_text": "Vitasco Besucherverwaltung",
    "header_color": "#1e40af",
    "header_text_color": "#ffffff",
    "footer_enabled": True,
    "footer_text": "Willkommen bei Vitasco GmbH",
    "footer_color": "#1e40af",
    "footer_text_color": "#ffffff",
    "background_color": "#f8fafc",
    "background_image_url": None,
    "primary_color": "#1e40af",
    "secondary_color": "#64748b",
    "text_color": "#0f172a",
    "is_active": True,
}


def seed_demo_data(store, now: Optional[datetime.datetime] = None):
    """
    Fills a store with the sample visitors, slides and settings shown when
    no database is connected.
    """
    now = now or utcnow()
    store.insert_one("visitors", {
        "name": "Max Mustermann",
        "company": "Beispiel GmbH",
        "purpose": "Geschäftstermin",
        "host": "Anna Schmidt",
        "start_time": now,
        "end_time": None,
        "is_active": True,
        "badge_number": "B001",
        "notes": "VIP Gast",
    })
    store.insert_one("visitors", {
        "name": "Lisa Weber",
        "company": "Tech Solutions",
        "purpose": "Projektbesprechung",
        "host": "Thomas Müller",
        "start_time": now - datetime.timedelta(hours=1),
        "end_time": None,
        "is_active": True,
        "badge_number": "B002",
        "notes": None,
    })
    slides = [
        ("Willkommen bei Vitasco",
         "Herzlich willkommen in unserem Unternehmen. Bitte melden Sie sich am Empfang an.",
         "https://images.pexels.com/photos/1181396/pexels-photo-1181396.jpeg", 8, "#1e40af"),
        ("Moderne Technologie",
         "Wir setzen auf innovative Lösungen und modernste Technologie für unsere Kunden.",
         "https://images.pexels.com/photos/3184291/pexels-photo-3184291.jpeg", 6, "#3b82f6"),
        ("Unser Team",
         "Erfahrene Experten arbeiten täglich daran, die besten Ergebnisse zu erzielen.",
         "https://images.pexels.com/photos/3184338/pexels-photo-3184338.jpeg", 7, "#6366f1"),
    ]
    for order, (title, content, image_url, display_time, color) in enumerate(slides, start=1):
        store.insert_one("slideshow_items", {
            "title": title,
            "content": content,
            "image_url": image_url,
            "display_time": display_time,
            "is_active": True,
            "order": order,
            "background_color": color,
            "text_color": "#ffffff",
        })
    store.insert_one("system_settings", dict(DEFAULT_SYSTEM_SETTINGS))


# PUBLIC_INTERFACE
def build_record_store(settings):
    """
    Picks the store for the given settings: SQL when a database URL is
    configured, otherwise a demo store seeded with sample data.
    """
    if settings.is_demo_mode:
        logger.warning("No database configured; running in demo mode with sample data")
        store = MemoryRecordStore()
        seed_demo_data(store)
        return store
    url = settings.database_url
    engine = build_engine(url)
    if url.startswith("sqlite"):
        create_tables(engine)
    logger.info(f"Using database {engine.url.render_as_string(hide_password=True)}")
    return SqlRecordStore(build_session_factory(engine))
