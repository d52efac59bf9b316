"""
Database engine initialisation and the identity-store facade.
"""

import sys
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from lora_auth.config import get_env
from lora_auth.errors import (
    AlreadyExistsError,
    DoesNotExistError,
    MalformedRequestError,
    UnavailableError,
)


def init_engine(db_uri: Optional[str] = None):
    """Create a SQLAlchemy engine and verify the connection."""
    db_uri = db_uri or get_env("DB_URI")
    engine = create_engine(db_uri, echo=False, future=True, pool_pre_ping=True)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        print("ERROR: could not connect to DB:", e, file=sys.stderr)
        sys.exit(1)
    print("[init] Connected to DB.")
    return engine


def _integrity_error(err: IntegrityError) -> Exception:
    """Classify a constraint violation the way clients should see it."""
    detail = str(err.orig).lower()
    if "unique" in detail or "duplicate" in detail:
        return AlreadyExistsError()
    if "foreign key" in detail:
        return DoesNotExistError()
    return MalformedRequestError(f"constraint violation: {err.orig}")


class IdentityStore:
    """Read access for the core, transactions for the business layer."""

    def __init__(self, engine):
        self.engine = engine

    def query(self, sql: str, params: Optional[Dict[str, Any]] = None) -> List[Any]:
        """Run a read-only statement and return all rows as mappings."""
        try:
            with self.engine.connect() as conn:
                return list(conn.execute(text(sql), params or {}).mappings().all())
        except SQLAlchemyError as e:
            raise UnavailableError(f"select error: {e}") from e

    def with_tx(self, fn: Callable):
        """Run fn(conn) inside a transaction; committed when fn returns."""
        try:
            with self.engine.begin() as conn:
                return fn(conn)
        except IntegrityError as e:
            raise _integrity_error(e) from e
        except SQLAlchemyError as e:
            raise UnavailableError(f"transaction error: {e}") from e

    def ping(self) -> bool:
        try:
            self.query("SELECT 1")
        except UnavailableError:
            return False
        return True
