import logging

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, StorageError

logger = logging.getLogger(__name__)

# SQLSTATE raised by PostgreSQL when a SERIALIZABLE transaction loses a race.
SERIALIZATION_FAILURE = "40001"


def is_serialization_failure(exc: DBAPIError) -> bool:
    orig = getattr(exc, "orig", None)
    return SERIALIZATION_FAILURE in (getattr(orig, "sqlstate", None), getattr(orig, "pgcode", None))


async def commit_or_raise(db: AsyncSession, *, conflict_message: str, failure_message: str) -> None:
    """Commit, turning a unique-index hit or a lost serializable race into ConflictError.

    The transaction is rolled back on any failure. Nothing is retried here.
    """
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.info("Write rejected by storage constraint: %s", e.orig)
        raise ConflictError(conflict_message)
    except DBAPIError as e:
        await db.rollback()
        if is_serialization_failure(e):
            logger.info("Write lost a serializable race: %s", e.orig)
            raise ConflictError(conflict_message)
        logger.exception(failure_message)
        raise StorageError(failure_message)
