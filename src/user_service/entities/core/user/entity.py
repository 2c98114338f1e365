"""User domain entities."""

from typing import Any

from pydantic import BaseModel, Field

from src.user_service.entities.core._base import Entity


class UserRecord(BaseModel):
    """Candidate user as submitted by a client or a CSV row.

    Untrusted input: nothing here has been checked against the store yet.
    ``id`` is absent for new users and names the user to update otherwise.
    Audit stamps are deliberately missing; the upsert engine owns them.
    """

    id: str | None = Field(default=None, description="Existing user id, for updates")
    login: str | None = Field(default=None, description="Login name")
    email: str | None = Field(default=None, description="Email address")
    first_name: str | None = Field(default=None, description="User's first name")
    last_name: str | None = Field(default=None, description="User's last name")
    authorities: set[str] = Field(
        default_factory=set, description="Granted authority names"
    )
    salesforce_id: str | None = Field(
        default=None, description="Salesforce id of the member organization"
    )
    parent_salesforce_id: str | None = Field(
        default=None, description="Salesforce id of the consortium parent"
    )
    main_contact: bool = Field(default=False, description="Member's main contact")
    is_consortium_lead: bool = Field(
        default=False, description="User belongs to a consortium lead"
    )

    @property
    def normalized_login(self) -> str | None:
        return self.login.strip().lower() if self.login else None

    @property
    def normalized_email(self) -> str | None:
        return self.email.strip().lower() if self.email else None


class User(Entity):
    """User account as held by the identity store.

    Login and email are stored case-folded. A deleted user keeps every other
    field for audit purposes but no longer holds its login or email.
    """

    login: str = Field(description="Login name, lower case")
    email: str = Field(description="Email address, lower case")
    first_name: str | None = Field(default=None, description="User's first name")
    last_name: str | None = Field(default=None, description="User's last name")
    authorities: set[str] = Field(default_factory=set)
    salesforce_id: str = Field(description="Salesforce id of the member organization")
    parent_salesforce_id: str | None = Field(default=None)
    main_contact: bool = Field(default=False)
    is_consortium_lead: bool = Field(default=False)
    deleted: bool = Field(default=False, description="Soft-delete marker")

    def __eq__(self, other: Any) -> bool:
        """Compare users by business attributes, ignoring audit stamps."""
        if not isinstance(other, User):
            return False

        return (
            self.id == other.id
            and self.login == other.login
            and self.email == other.email
            and self.first_name == other.first_name
            and self.last_name == other.last_name
            and self.authorities == other.authorities
            and self.salesforce_id == other.salesforce_id
            and self.parent_salesforce_id == other.parent_salesforce_id
            and self.main_contact == other.main_contact
            and self.is_consortium_lead == other.is_consortium_lead
            and self.deleted == other.deleted
        )

    def __hash__(self) -> int:
        """Hash based on identity and login, ignoring audit stamps."""
        return hash((self.id, self.login, self.email))
