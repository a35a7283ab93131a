"""
Declarative base and the columns every Factory Ledger table shares.

BaseModel gives each table an integer key, a uuid that stays stable if rows
are exported elsewhere, and created_at/updated_at audit timestamps.
"""

import uuid
from datetime import date
from typing import Any, Dict

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import declarative_base

from factory_ledger.utils.datetime_utils import utc_now

Base = declarative_base()


def _new_uuid() -> str:
    # Stored as text; SQLite has no native UUID type
    return str(uuid.uuid4())


def _serializable(value: Any) -> Any:
    # datetime is a subclass of date
    if isinstance(value, date):
        return value.isoformat()
    return value


class BaseModel(Base):
    """Abstract parent of all Factory Ledger tables."""

    __abstract__ = True

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), unique=True, nullable=False, default=_new_uuid, index=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        """Column values keyed by column name, with dates as ISO strings."""
        return {
            column.name: _serializable(getattr(self, column.name))
            for column in self.__table__.columns
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id})"
