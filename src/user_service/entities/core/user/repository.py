"""User repository for data access operations."""

from collections.abc import Iterable
from datetime import datetime

from sqlmodel import Session, col, func, select

from src.user_service.entities.core.user.entity import User
from src.user_service.entities.core.user.table import UserAuthorityTable, UserTable


class UserRepository:
    """Data-access layer for users.

    Lookups by login and email only ever see active users, so a soft-deleted
    account never shadows a live one. Writes are flushed, never committed;
    the caller owns the transaction.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, user_id: str) -> User | None:
        """Fetch a user by id, deleted or not."""
        row = self._session.get(UserTable, user_id)
        if row is None:
            return None
        return self._to_entity(row)

    def find_by_login(self, login: str) -> User | None:
        """Find the active user holding ``login`` (case-insensitive)."""
        statement = select(UserTable).where(
            UserTable.login == login.strip().lower(),
            col(UserTable.deleted).is_(False),
        )
        row = self._session.exec(statement).first()
        return self._to_entity(row) if row else None

    def find_by_email(self, email: str) -> User | None:
        """Find the active user holding ``email`` (case-insensitive)."""
        statement = select(UserTable).where(
            UserTable.email == email.strip().lower(),
            col(UserTable.deleted).is_(False),
        )
        row = self._session.exec(statement).first()
        return self._to_entity(row) if row else None

    def list_page(self, offset: int = 0, limit: int = 20) -> list[User]:
        statement = (
            select(UserTable)
            .where(col(UserTable.deleted).is_(False))
            .order_by(UserTable.login)
            .offset(offset)
            .limit(limit)
        )
        return [self._to_entity(row) for row in self._session.exec(statement)]

    def count(self) -> int:
        statement = (
            select(func.count())
            .select_from(UserTable)
            .where(col(UserTable.deleted).is_(False))
        )
        return self._session.exec(statement).one()

    def list_by_salesforce_id(self, salesforce_id: str) -> list[User]:
        statement = (
            select(UserTable)
            .where(
                UserTable.salesforce_id == salesforce_id,
                col(UserTable.deleted).is_(False),
            )
            .order_by(UserTable.login)
        )
        return [self._to_entity(row) for row in self._session.exec(statement)]

    def create(self, user: User) -> User:
        """Insert a new user and its authorities."""
        row = UserTable(**user.model_dump(exclude={"authorities"}))
        self._session.add(row)
        self._session.flush()
        self._replace_authorities(row.id, user.authorities)
        self._session.flush()
        return self._to_entity(row)

    def update(self, user: User) -> User:
        """Overwrite the stored fields of an existing user."""
        row = self._session.get(UserTable, user.id)
        if row is None:
            raise ValueError(f"User with id {user.id} not found")

        for field, value in user.model_dump(exclude={"id", "authorities"}).items():
            setattr(row, field, value)
        self._session.add(row)
        self._replace_authorities(row.id, user.authorities)
        self._session.flush()
        return self._to_entity(row)

    def soft_delete(self, user_id: str, actor: str, now: datetime) -> bool:
        """Mark a user deleted. Returns False if it was already deleted."""
        row = self._session.get(UserTable, user_id)
        if row is None:
            raise ValueError(f"User with id {user_id} not found")
        if row.deleted:
            return False

        row.deleted = True
        row.last_modified_by = actor
        row.last_modified_date = now
        self._session.add(row)
        self._session.flush()
        return True

    def remove_authority(self, user_id: str, authority_name: str) -> bool:
        """Drop one authority grant. Returns False if it was not granted."""
        grant = self._session.get(UserAuthorityTable, (user_id, authority_name))
        if grant is None:
            return False
        self._session.delete(grant)
        self._session.flush()
        return True

    def _authorities_of(self, user_id: str) -> set[str]:
        statement = select(UserAuthorityTable.authority_name).where(
            UserAuthorityTable.user_id == user_id
        )
        return set(self._session.exec(statement))

    def _replace_authorities(self, user_id: str, authorities: Iterable[str]) -> None:
        wanted = set(authorities)
        current = self._authorities_of(user_id)
        for name in current - wanted:
            grant = self._session.get(UserAuthorityTable, (user_id, name))
            if grant is not None:
                self._session.delete(grant)
        for name in wanted - current:
            self._session.add(UserAuthorityTable(user_id=user_id, authority_name=name))

    def _to_entity(self, row: UserTable) -> User:
        user = User.model_validate(row, from_attributes=True)
        user.authorities = self._authorities_of(row.id)
        return user
