"""
Transaction Helper Service

Session hygiene for the read-only reporting queries:
- Retry of transient connection failures
- Rollback of the failed session before retrying
- Re-raise once retries are exhausted, so callers never aggregate partial data
"""

from functools import wraps
from typing import Callable
import logging
import time
from sqlalchemy.exc import OperationalError, DisconnectionError
from app import db

logger = logging.getLogger(__name__)

class TransactionHelper:
    """Helper class for running database reads safely"""

    TRANSIENT_ERRORS = (OperationalError, DisconnectionError)

    @staticmethod
    def with_read_retry(max_retries: int = 3, delay: float = 0.5) -> Callable:
        """
        Decorator that retries a read when the connection drops.

        Only transient connection errors are retried; anything else is
        rolled back and re-raised on the first attempt.

        Usage:
            @TransactionHelper.with_read_retry()
            def fetch_drivers(self):
                ...
        """
        def decorator(func: Callable) -> Callable:
            @wraps(func)
            def wrapper(*args, **kwargs):
                for attempt in range(max_retries):
                    try:
                        return func(*args, **kwargs)
                    except TransactionHelper.TRANSIENT_ERRORS as e:
                        db.session.rollback()
                        logger.warning(f"Transient database error in {func.__name__} "
                                       f"(attempt {attempt + 1}/{max_retries}): {str(e)}")
                        if attempt < max_retries - 1:
                            time.sleep(delay)
                            continue
                        logger.error(f"{func.__name__} failed after {max_retries} attempts")
                        raise
                    except Exception:
                        db.session.rollback()
                        raise
            return wrapper
        return decorator
