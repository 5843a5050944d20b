"""Shared base entity for all database models."""
import re
from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class BaseEntity(DeclarativeBase):
    """Base class for all database entities."""

    @declared_attr.directive
    def __tablename__(cls) -> str:
        """Generate snake_case table name from class name."""
        return _CAMEL_BOUNDARY.sub("_", cls.__name__).lower()

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4())
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"
