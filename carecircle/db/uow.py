"""Unit-of-work scoping: one operation, one transaction."""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from carecircle.core.errors import UnavailableError

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """
    Commit on success, roll back on any error.

    Store connectivity failures surface as UnavailableError so callers see a
    typed error instead of a driver exception.
    """
    try:
        yield db
        db.commit()
    except OperationalError as exc:
        db.rollback()
        logger.error("Database unavailable: %s", exc.__class__.__name__)
        raise UnavailableError("Database unavailable") from exc
    except Exception:
        db.rollback()
        raise
