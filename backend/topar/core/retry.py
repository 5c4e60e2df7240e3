"""
Bounded retry for units of work that hit transient database faults
"""

import time
from functools import wraps

from sqlalchemy.exc import OperationalError

from .exceptions import StorageError
from .logging import get_logger

logger = get_logger(__name__)


def retry_on_storage_error(func):
    """
    Retry a service method when the database raises OperationalError.

    The decorated method must belong to an object exposing ``db`` (a
    SQLAlchemy Session) and ``settings``. The session is rolled back after
    every failure, so each attempt starts a fresh transaction and nothing
    from a failed attempt is ever committed. Domain errors propagate
    immediately. When the attempts are exhausted a StorageError is raised.
    """
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        settings = self.settings
        attempts = max(1, settings.storage_retry_attempts)
        delay = settings.storage_retry_delay

        for attempt in range(1, attempts + 1):
            try:
                return func(self, *args, **kwargs)
            except OperationalError as e:
                self.db.rollback()
                if attempt >= attempts:
                    logger.error(
                        f"{func.__name__} failed after {attempts} attempts: {e}",
                        extra={"operation": func.__name__, "attempts": attempts},
                    )
                    raise StorageError("Storage is temporarily unavailable, please retry") from e
                logger.warning(
                    f"{func.__name__} hit a storage fault, retrying in {delay}s "
                    f"(attempt {attempt}/{attempts})"
                )
                time.sleep(delay)
                delay *= settings.storage_retry_backoff
            except Exception:
                self.db.rollback()
                raise

    return wrapper
