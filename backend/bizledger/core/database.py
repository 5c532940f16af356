import logging
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterator, Optional

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, String, bindparam, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.sql.elements import TextClause
from sqlalchemy.types import NullType, TypeEngine

from bizledger.core.config import settings
from bizledger.core.errors import ConnectionFailure, ConstraintViolation
from bizledger.models import Base


logger = logging.getLogger(__name__)


def make_engine(url: str, **kwargs) -> Engine:
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    engine = create_engine(url, pool_pre_ping=True, **kwargs)
    if engine.dialect.name == "sqlite":
        enable_sqlite_foreign_keys(engine)
    return engine


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = make_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    # Create tables in dev/test without running Alembic
    if settings.env in {"dev", "test"}:
        Base.metadata.create_all(bind=engine)


def _infer_type(value: Any) -> TypeEngine:
    # bool before int: bool is an int subclass
    if value is None:
        return NullType()
    if isinstance(value, bool):
        return Boolean()
    if isinstance(value, int):
        return Integer()
    if isinstance(value, Decimal):
        return Numeric(12, 2)
    if isinstance(value, datetime):
        return DateTime()
    if isinstance(value, date):
        return Date()
    return String()


def _resolve_type(type_hint: Any) -> TypeEngine:
    """Accept a type instance, a type class, or a mapped column / Column (its declared type)."""
    if isinstance(type_hint, TypeEngine):
        return type_hint
    if isinstance(type_hint, type) and issubclass(type_hint, TypeEngine):
        return type_hint()
    column_type = getattr(type_hint, "type", None)
    if isinstance(column_type, TypeEngine):
        return column_type
    raise TypeError(f"Unsupported type hint: {type_hint!r}")


class Database:
    """
    Thin statement runner over one SQLAlchemy session.

    Usage mirrors a prepared-statement API::

        db.query(select(customers).where(customers.c.id == bindparam("id")))
        db.bind("id", 7)
        row = db.single()

    Statements run outside ``transaction()`` are committed immediately.
    Inside ``transaction()`` they are committed together, or rolled back
    together when anything in the block raises.
    """

    def __init__(self, session: Session):
        self._session = session
        self._statement = None
        self._params: dict[str, Any] = {}
        self._types: dict[str, TypeEngine] = {}
        self._rows: list = []
        self._rowcount = 0
        self._last_id = None
        self._depth = 0

    @property
    def session(self) -> Session:
        return self._session

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def query(self, statement) -> "Database":
        if isinstance(statement, str):
            statement = text(statement)
        self._statement = statement
        self._params = {}
        self._types = {}
        self._rows = []
        self._rowcount = 0
        return self

    def bind(self, name: str, value: Any, type_: Any = None) -> "Database":
        """
        Bind a named parameter. ``type_`` may be a SQLAlchemy type or a mapped
        column, in which case the column's declared type is used. Core
        statements already bind against their target columns, so the hint
        only affects raw SQL.
        """
        name = name.lstrip(":")
        self._params[name] = value
        self._types[name] = _infer_type(value) if type_ is None else _resolve_type(type_)
        return self

    def execute(self) -> bool:
        if self._statement is None:
            raise RuntimeError("query() must be called before execute()")

        statement = self._statement
        if isinstance(statement, TextClause) and self._types:
            statement = statement.bindparams(
                *(bindparam(name, type_=type_) for name, type_ in self._types.items())
            )

        try:
            result = self._session.execute(statement, self._params or None)
            # Rows are buffered before a possible commit releases the cursor
            self._rows = list(result.mappings().all()) if result.returns_rows else []
            self._rowcount = result.rowcount
            if getattr(result, "is_insert", False) and not isinstance(statement, TextClause):
                self._last_id = result.inserted_primary_key[0]
            elif isinstance(statement, TextClause) and statement.text.lstrip().upper().startswith("INSERT"):
                self._last_id = result.lastrowid
            if self._depth == 0:
                self._session.commit()
        except IntegrityError as exc:
            self._abort()
            logger.warning("Constraint violation: %s", exc.orig)
            raise ConstraintViolation(str(exc.orig)) from exc
        except (OperationalError, InterfaceError) as exc:
            self._abort()
            logger.error("Database unavailable: %s", exc.orig)
            raise ConnectionFailure(str(exc.orig)) from exc
        except DBAPIError as exc:
            self._abort()
            if exc.connection_invalidated:
                raise ConnectionFailure(str(exc.orig)) from exc
            raise
        return True

    def result_set(self) -> list[dict]:
        self.execute()
        return [dict(row) for row in self._rows]

    def single(self) -> Optional[dict]:
        self.execute()
        return dict(self._rows[0]) if self._rows else None

    def scalar(self) -> Any:
        row = self.single()
        if row is None:
            return None
        return next(iter(row.values()))

    def row_count(self) -> int:
        return self._rowcount

    def last_insert_id(self):
        return self._last_id

    @contextmanager
    def transaction(self) -> Iterator["Database"]:
        self._depth += 1
        try:
            yield self
        except Exception:
            self._depth -= 1
            if self._depth == 0:
                self._session.rollback()
            raise
        self._depth -= 1
        if self._depth == 0:
            try:
                self._session.commit()
            except IntegrityError as exc:
                self._session.rollback()
                raise ConstraintViolation(str(exc.orig)) from exc
            except (OperationalError, InterfaceError) as exc:
                self._session.rollback()
                raise ConnectionFailure(str(exc.orig)) from exc

    def _abort(self) -> None:
        # Inside a transaction the rollback belongs to transaction()
        if self._depth == 0:
            self._session.rollback()
