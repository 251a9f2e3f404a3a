from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError

from smartlocker.core.errors import StorageUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Callable)


def translate_storage_errors(func: T) -> T:
    """Surface driver/ORM failures as StorageUnavailable, never as a domain error."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SQLAlchemyError as e:
            logger.error("Storage failure in %s: %s", func.__qualname__, e)
            raise StorageUnavailable(f"Storage unavailable: {e.__class__.__name__}") from e

    return wrapper  # type: ignore[return-value]


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
