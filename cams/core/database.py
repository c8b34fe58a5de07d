"""SQLAlchemy session handling and unit-of-work helper."""
from __future__ import annotations
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session

from cams.core.exceptions import CamsError, InfrastructureError, PersistenceError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


db = SQLAlchemy(model_class=Base)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@contextmanager
def unit_of_work() -> Iterator[Session]:
    """Run a block of writes as one all-or-nothing transaction.

    Commits on success and rolls back on any exception. Store errors are
    translated into the service exception hierarchy:

    - ``OperationalError`` (database unreachable, locked) -> InfrastructureError
    - ``IntegrityError`` and other SQLAlchemy errors -> PersistenceError

    Service exceptions (ValidationError, ConflictError...) raised inside the
    block propagate unchanged after the rollback.
    """
    session = db.session
    try:
        yield session
        session.commit()
    except CamsError:
        session.rollback()
        raise
    except OperationalError as exc:
        session.rollback()
        logger.error("Database unavailable: %s", exc.__class__.__name__)
        raise InfrastructureError("Database is unavailable") from exc
    except IntegrityError as exc:
        session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        raise PersistenceError("Write rejected by a database constraint") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Database error on commit: %s", exc)
        raise PersistenceError("Database write failed") from exc
    except Exception:
        session.rollback()
        raise


def ping() -> bool:
    """Return True when the database answers a trivial query."""
    try:
        db.session.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as exc:
        logger.warning("Database ping failed: %s", exc.__class__.__name__)
        db.session.rollback()
        return False
