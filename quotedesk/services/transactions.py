"""
Transaction boundary shared by the services.

Pattern (same as the audit pattern): mutate -> flush -> log_action -> commit.
Any failure inside the block rolls the whole unit back, so no partial
state is ever committed.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..errors import ConflictError, QuoteDeskError, StoreError

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(session, conflict_message: Optional[str] = None) -> Iterator[None]:
    """
    Commit on success, roll back on any error.

    - QuoteDeskError raised inside the block propagates unchanged.
    - IntegrityError becomes ConflictError(conflict_message) when a
      message is given (unique-constraint races), StoreError otherwise.
    - Any other SQLAlchemyError is logged and becomes StoreError.
    """
    try:
        yield
        session.commit()
    except QuoteDeskError:
        session.rollback()
        raise
    except IntegrityError as exc:
        session.rollback()
        if conflict_message:
            logger.info("Integrity conflict: %s", exc.orig)
            raise ConflictError(conflict_message) from exc
        logger.exception("Integrity error while committing")
        raise StoreError() from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Database error while committing")
        raise StoreError() from exc
