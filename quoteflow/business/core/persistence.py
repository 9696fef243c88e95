from __future__ import annotations

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from quoteflow import db
from quoteflow.errors import ConcurrencyConflict, PersistenceFailure
from quoteflow.utils.logger import get_logger

logger = get_logger("quoteflow.business.persistence")


def commit(action: str) -> None:
    """
    Commit the current unit of work.

    Unique-constraint violations surface as ConcurrencyConflict; any other
    database error rolls back and surfaces as PersistenceFailure.
    """
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        logger.warning(f"Integrity error while trying to {action}: {e.orig}")
        raise ConcurrencyConflict(f"Could not {action}: a conflicting record already exists") from e
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Database error while trying to {action}: {e}")
        raise PersistenceFailure(f"Could not {action}") from e
