"""Declarative base and metadata utilities."""
from __future__ import annotations

from datetime import datetime, timezone
import enum

from sqlalchemy.orm import DeclarativeBase, declared_attr


def utcnow() -> datetime:
    """Timezone-aware current time used for column defaults."""

    return datetime.now(timezone.utc)


def enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Persist enum members by value rather than by member name."""

    return [member.value for member in enum_cls]


class Base(DeclarativeBase):
    """Base model with naming conventions."""

    __abstract__ = True

    @declared_attr.directive
    def __tablename__(cls) -> str:  # type: ignore[misc]
        return cls.__name__.lower()
