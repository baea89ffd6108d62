"""
Database error handling utilities.

Centralizes the common pattern of:
1. Rolling back the database session on error
2. Logging the error with context
3. Raising a generic INTERNAL_ERROR that does not leak store internals

Usage:
    from quizhub.core.db_error_handling import handle_db_error

    with handle_db_error(db, "update test result status"):
        result.status = ResultStatus.ACTIVE
        db.commit()
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from quizhub.core.error_responses import (
    ErrorMessages,
    ServiceError,
    raise_server_error,
)


logger = logging.getLogger(__name__)


@contextmanager
def handle_db_error(
    db: Session,
    operation_name: str,
    *,
    log_level: int = logging.ERROR,
) -> Generator[None, None, None]:
    """Context manager for handling store errors consistently.

    ServiceErrors raised inside the block (validation, access checks) are
    re-raised unchanged after the session is rolled back. Any other
    exception also rolls back, is logged with its traceback and is replaced
    with an INTERNAL_ERROR.

    Args:
        db: The SQLAlchemy session to rollback on error.
        operation_name: Human-readable name of the operation for error messages
            and logging (e.g., "create test result").
        log_level: Logging level for error messages. Defaults to logging.ERROR.

    Raises:
        ServiceError: INTERNAL_ERROR when the store fails.
    """
    try:
        yield
    except ServiceError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.log(
            log_level,
            f"Database error during {operation_name}: {e}",
            exc_info=True,
        )
        raise_server_error(ErrorMessages.database_operation_failed(operation_name))
    except Exception as e:
        db.rollback()
        logger.log(
            log_level,
            f"Unexpected error during {operation_name}: {e}",
            exc_info=True,
        )
        raise_server_error(ErrorMessages.database_operation_failed(operation_name))
