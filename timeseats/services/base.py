"""
TimesEats — shared service helpers
"""
import uuid
from datetime import datetime, timezone
from typing import Callable

from timeseats.repositories.base import UnitOfWork

UowFactory = Callable[[], UnitOfWork]


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
