from collections.abc import Callable
from datetime import datetime
from typing import TextIO

from loguru import logger
from sqlmodel import Session

from src.user_service.core.security import KNOWN_AUTHORITIES
from src.user_service.core.services.member_directory import MemberDirectory
from src.user_service.core.services.user.csv_upload import (
    BatchReport,
    UserCsvUploadProcessor,
)
from src.user_service.core.services.user.errors import (
    BadRequestError,
    MemberNotFoundError,
    UserNotFoundError,
    UserValidationError,
)
from src.user_service.core.services.user.upsert import UserUpsertEngine
from src.user_service.core.services.user.validation import UniquenessValidator
from src.user_service.entities.core._base import utc_now
from src.user_service.entities.core.user.entity import User, UserRecord
from src.user_service.entities.core.user.repository import UserRepository


class UserManagementService:
    """Entry point for every user operation of the service.

    Writes follow one path: validate, then check the member when the
    salesforce id is new to the user, then upsert. Any field error blocks the
    write, blank or duplicate alike.
    """

    def __init__(
        self,
        db_session: Session,
        member_directory: MemberDirectory,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._user_repo = UserRepository(db_session)
        self._validator = UniquenessValidator(self._user_repo)
        self._engine = UserUpsertEngine(db_session)
        self._member_directory = member_directory
        self._clock = clock
        self._db_session = db_session

    def create_user(self, candidate: UserRecord, actor: str) -> User:
        """Create a new user.

        Raises:
            BadRequestError: The candidate already carries an id
            UserValidationError: Blank or duplicate fields
            MemberNotFoundError: The salesforce id is unknown to the member directory
            ConflictError: The store rejected the insert
        """
        if candidate.id and candidate.id.strip():
            raise BadRequestError("A new user cannot already have an ID")
        user = self.save(candidate.model_copy(update={"id": None}), actor)
        logger.info("Created user {} ({}) for member {}", user.login, user.id, user.salesforce_id)
        return user

    def update_user(self, candidate: UserRecord, actor: str) -> User:
        """Update an existing user, keeping its id and creation stamps.

        Raises:
            BadRequestError: The candidate has no id
            UserNotFoundError: No active user with that id
            UserValidationError: Blank or duplicate fields
            MemberNotFoundError: A changed salesforce id is unknown
            ConflictError: The store rejected the update
        """
        if not candidate.id:
            raise BadRequestError("An updated user must have an ID")
        user = self.save(candidate, actor)
        logger.info("Updated user {} ({})", user.login, user.id)
        return user

    def save(self, candidate: UserRecord, actor: str) -> User:
        """Validate, check the member and upsert one candidate."""
        existing = None
        if candidate.id is not None:
            existing = self._user_repo.get(candidate.id)
            if existing is None or existing.deleted:
                raise UserNotFoundError(candidate.id)

        result = self._validator.validate(candidate)
        if not result.is_valid:
            raise UserValidationError(result)

        salesforce_id = candidate.salesforce_id.strip()
        if existing is None or existing.salesforce_id != salesforce_id:
            if not self._member_directory.exists(salesforce_id):
                logger.warning(
                    "Attempt to create user with non existent member {}", salesforce_id
                )
                raise MemberNotFoundError(salesforce_id)

        return self._engine.upsert(candidate, actor, self._clock())

    def delete_user(self, user_id: str, actor: str) -> None:
        """Soft-delete a user; deleting twice is a no-op."""
        self._engine.soft_delete(user_id, actor, self._clock())

    def remove_authority(self, user_id: str, authority: str) -> None:
        self._engine.remove_authority(user_id, authority)

    def get_user(self, login_or_id: str) -> User | None:
        """Look a user up by login first, then by id."""
        return self._user_repo.find_by_login(login_or_id) or self._user_repo.get(
            login_or_id
        )

    def list_users(self, page: int = 0, size: int = 20) -> tuple[list[User], int]:
        """One page of active users ordered by login, with the total count."""
        users = self._user_repo.list_page(offset=page * size, limit=size)
        return users, self._user_repo.count()

    def list_users_by_salesforce_id(self, salesforce_id: str) -> list[User]:
        return self._user_repo.list_by_salesforce_id(salesforce_id)

    def list_authorities(self) -> list[str]:
        return sorted(KNOWN_AUTHORITIES)

    def upload_users(self, stream: TextIO, actor: str) -> BatchReport:
        """Provision users from a CSV stream, one independent commit per row."""
        return UserCsvUploadProcessor(self).process_csv(stream, actor)

    def rollback(self) -> None:
        """Discard any uncommitted work left on the session by a failed read."""
        self._db_session.rollback()
