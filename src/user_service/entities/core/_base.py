import uuid
from datetime import UTC, datetime

import sqlalchemy as sa
from pydantic import BaseModel, field_validator
from pydantic import Field as PydanticField
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


class Entity(BaseModel):
    """Base entity class with an identifier and audit stamps."""

    id: str = PydanticField(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique identifier for the entity",
    )

    created_by: str | None = PydanticField(default=None)
    created_date: datetime = PydanticField(default_factory=utc_now)
    last_modified_by: str | None = PydanticField(default=None)
    last_modified_date: datetime = PydanticField(default_factory=utc_now)

    @field_validator("created_date", "last_modified_date")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # SQLite hands timestamps back without tzinfo
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class EntityTable(SQLModel, table=False):
    """Base table with a UUID primary key and audit columns."""

    id: str = Field(
        primary_key=True,
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique identifier for the entity",
    )

    created_by: str | None = Field(default=None, max_length=50)
    created_date: datetime = Field(
        default_factory=utc_now,
        sa_type=sa.DateTime(timezone=True),
        nullable=False,
    )
    last_modified_by: str | None = Field(default=None, max_length=50)
    last_modified_date: datetime = Field(
        default_factory=utc_now,
        sa_type=sa.DateTime(timezone=True),
        nullable=False,
    )
