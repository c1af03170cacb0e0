import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from skillswap import db
from skillswap.errors import InfrastructureError

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(description):
    """
    Run a block of session work and commit it.

    Any SQLAlchemy failure rolls the session back and surfaces as
    InfrastructureError. IntegrityError is re-raised untouched so callers can
    turn constraint violations into business errors.
    """
    try:
        yield db.session
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Failed to %s: %s", description, e)
        raise InfrastructureError() from e
    except Exception:
        db.session.rollback()
        raise


def fetch(description, query_fn):
    """Run a read and convert driver failures to InfrastructureError."""
    try:
        return query_fn()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Failed to %s: %s", description, e)
        raise InfrastructureError() from e
