"""Create, update, authority removal and soft delete of single users."""

from datetime import datetime

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from src.user_service.core.services.user.errors import ConflictError, UserNotFoundError
from src.user_service.entities.core.user.entity import User, UserRecord
from src.user_service.entities.core.user.repository import UserRepository


class UserUpsertEngine:
    """Persists one user per call and commits it on its own.

    A failed call rolls back only its own unit of work, so work committed by
    earlier calls on the same session survives. The store's unique indexes
    are authoritative: any violation surfacing at flush or commit becomes a
    ``ConflictError``, whatever the validator saw beforehand.
    """

    def __init__(self, db_session: Session) -> None:
        self._db_session = db_session
        self._user_repo = UserRepository(db_session)

    def upsert(self, candidate: UserRecord, actor: str, now: datetime) -> User:
        if candidate.id is None:
            return self._commit(lambda: self._create(candidate, actor, now))
        return self._commit(lambda: self._update(candidate, actor, now))

    def remove_authority(self, user_id: str, authority_name: str) -> None:
        self._require_active(user_id)
        removed = self._commit(
            lambda: self._user_repo.remove_authority(user_id, authority_name)
        )
        if removed:
            logger.info("Removed authority {} from user {}", authority_name, user_id)

    def soft_delete(self, user_id: str, actor: str, now: datetime) -> None:
        existing = self._user_repo.get(user_id)
        if existing is None:
            raise UserNotFoundError(user_id)
        if existing.deleted:
            logger.debug("User {} already deleted", user_id)
            return
        stamp = max(now, existing.created_date)
        self._commit(lambda: self._user_repo.soft_delete(user_id, actor, stamp))
        logger.info("User {} ({}) deleted by {}", user_id, existing.login, actor)

    def _create(self, candidate: UserRecord, actor: str, now: datetime) -> User:
        user = User(
            **self._mutable_fields(candidate),
            created_by=actor,
            created_date=now,
            last_modified_by=actor,
            last_modified_date=now,
        )
        return self._user_repo.create(user)

    def _update(self, candidate: UserRecord, actor: str, now: datetime) -> User:
        existing = self._require_active(candidate.id)
        updated = existing.model_copy(
            update={
                **self._mutable_fields(candidate),
                "last_modified_by": actor,
                "last_modified_date": max(now, existing.created_date),
            }
        )
        return self._user_repo.update(updated)

    def _require_active(self, user_id: str) -> User:
        existing = self._user_repo.get(user_id)
        if existing is None or existing.deleted:
            raise UserNotFoundError(user_id)
        return existing

    def _commit(self, operation):
        try:
            result = operation()
            self._db_session.commit()
            return result
        except IntegrityError as e:
            self._db_session.rollback()
            logger.warning("Store rejected write: {}", e.orig)
            raise ConflictError("login or email already in use") from e
        except Exception:
            self._db_session.rollback()
            raise

    @staticmethod
    def _mutable_fields(candidate: UserRecord) -> dict:
        return {
            "login": candidate.normalized_login,
            "email": candidate.normalized_email,
            "first_name": candidate.first_name,
            "last_name": candidate.last_name,
            "authorities": set(candidate.authorities),
            "salesforce_id": (candidate.salesforce_id or "").strip(),
            "parent_salesforce_id": (candidate.parent_salesforce_id or "").strip() or None,
            "main_contact": candidate.main_contact,
            "is_consortium_lead": candidate.is_consortium_lead,
        }
