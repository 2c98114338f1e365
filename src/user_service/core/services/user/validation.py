"""Field validation of candidate users against the identity store."""

from pydantic import BaseModel, ConfigDict

from src.user_service.core.security import KNOWN_AUTHORITIES
from src.user_service.entities.core.user.entity import User, UserRecord
from src.user_service.entities.core.user.repository import UserRepository

LOGIN_EMPTY = "Login should not be empty"
LOGIN_USED = "Login name already used!"
EMAIL_EMPTY = "Email should not be empty"
EMAIL_USED = "Email is already in use!"
SALESFORCE_ID_EMPTY = "Salesforce Id should not be empty"
PARENT_IS_SELF = "Parent Salesforce Id must differ from Salesforce Id"


class ValidationResult(BaseModel):
    """Per-field error messages for one candidate. Immutable."""

    model_config = ConfigDict(frozen=True)

    login_error: str | None = None
    email_error: str | None = None
    salesforce_id_error: str | None = None
    authorities_error: str | None = None
    parent_salesforce_id_error: str | None = None

    @property
    def is_valid(self) -> bool:
        return not self.errors()

    def errors(self) -> dict[str, str]:
        """Field name to message, for the fields that failed."""
        return {name: message for name, message in self if message is not None}

    def summary(self) -> str:
        return "; ".join(self.errors().values())


class UniquenessValidator:
    """Checks blank fields and login/email uniqueness for a candidate.

    Read-only: the store is queried, never written. Deleted users are not
    returned by the repository lookups and so never conflict. A match on the
    candidate's own id is the user re-saving itself and is not an error.
    """

    def __init__(self, user_repo: UserRepository) -> None:
        self._user_repo = user_repo

    def validate(self, candidate: UserRecord) -> ValidationResult:
        errors: dict[str, str] = {}

        login = candidate.normalized_login
        if not login:
            errors["login_error"] = LOGIN_EMPTY
        elif self._held_by_other(self._user_repo.find_by_login(login), candidate):
            errors["login_error"] = LOGIN_USED

        email = candidate.normalized_email
        if not email:
            errors["email_error"] = EMAIL_EMPTY
        elif self._held_by_other(self._user_repo.find_by_email(email), candidate):
            errors["email_error"] = EMAIL_USED

        salesforce_id = (candidate.salesforce_id or "").strip()
        if not salesforce_id:
            errors["salesforce_id_error"] = SALESFORCE_ID_EMPTY

        unknown = sorted(candidate.authorities - KNOWN_AUTHORITIES)
        if unknown:
            errors["authorities_error"] = f"Unknown authority: {', '.join(unknown)}"

        parent = (candidate.parent_salesforce_id or "").strip()
        if parent and parent == salesforce_id:
            errors["parent_salesforce_id_error"] = PARENT_IS_SELF

        return ValidationResult(**errors)

    @staticmethod
    def _held_by_other(existing: User | None, candidate: UserRecord) -> bool:
        if existing is None or existing.deleted:
            return False
        return candidate.id is None or existing.id != candidate.id
