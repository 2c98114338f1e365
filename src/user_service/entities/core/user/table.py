"""User database table models."""

import sqlalchemy as sa
from sqlalchemy import Column, ForeignKey, Index, String
from sqlmodel import Field, SQLModel

from src.user_service.entities.core._base import EntityTable


class UserTable(EntityTable, table=True):
    """Database persistence model for users.

    Login and email are unique among rows that are not soft-deleted. The
    partial indexes are the final word on uniqueness; the validator's
    lookups only give friendlier errors ahead of them.
    """

    __tablename__ = "users"
    __table_args__ = (
        Index(
            "uq_users_login_active",
            "login",
            unique=True,
            sqlite_where=sa.text("deleted = 0"),
            postgresql_where=sa.text("deleted = false"),
        ),
        Index(
            "uq_users_email_active",
            "email",
            unique=True,
            sqlite_where=sa.text("deleted = 0"),
            postgresql_where=sa.text("deleted = false"),
        ),
    )

    login: str = Field(max_length=50)
    email: str = Field(max_length=254)
    first_name: str | None = Field(default=None, max_length=50)
    last_name: str | None = Field(default=None, max_length=50)
    salesforce_id: str = Field(max_length=64, index=True)
    parent_salesforce_id: str | None = Field(default=None, max_length=64)
    main_contact: bool = Field(default=False)
    is_consortium_lead: bool = Field(default=False)
    deleted: bool = Field(default=False, nullable=False)


class UserAuthorityTable(SQLModel, table=True):
    """Authorities granted to a user, one row per (user, authority)."""

    __tablename__ = "user_authorities"

    user_id: str = Field(
        sa_column=Column(
            String, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
        )
    )
    authority_name: str = Field(sa_column=Column(String(50), primary_key=True))
