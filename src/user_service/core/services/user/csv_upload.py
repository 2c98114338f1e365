"""Bulk user provisioning from CSV uploads.

Every data row runs the same path as a single create or update: validate,
check the member, upsert. Each row commits or fails on its own, so a bad row
never takes the rest of the file down with it and rows committed before a
failure stay committed. Rows are processed strictly in file order; two rows
claiming the same login resolve in favour of the first.

Recognised columns (header names are matched case-insensitively, unknown
columns are ignored):

    id, login, email, firstName, lastName, authorities, salesforceId,
    parentSalesforceId, mainContact, isConsortiumLead

``login``, ``email`` and ``salesforceId`` are required. A non-blank ``id``
turns the row into an update of that user.
"""

from __future__ import annotations

import csv
from typing import TYPE_CHECKING, TextIO

from loguru import logger
from pydantic import BaseModel, Field, computed_field
from sqlalchemy.exc import SQLAlchemyError

from src.user_service.core.security import parse_authorities
from src.user_service.core.services.user.errors import (
    ConflictError,
    CsvParseError,
    MemberDirectoryError,
    MemberNotFoundError,
    UserNotFoundError,
    UserValidationError,
)
from src.user_service.entities.core.user.entity import UserRecord
from src.user_service.runtime.context import get_config

if TYPE_CHECKING:
    from src.user_service.core.services.user.user_management import (
        UserManagementService,
    )

COLUMN_FIELDS = {
    "id": "id",
    "login": "login",
    "email": "email",
    "firstname": "first_name",
    "lastname": "last_name",
    "authorities": "authorities",
    "salesforceid": "salesforce_id",
    "parentsalesforceid": "parent_salesforce_id",
    "maincontact": "main_contact",
    "isconsortiumlead": "is_consortium_lead",
}
REQUIRED_COLUMNS = {"login": "login", "email": "email", "salesforce_id": "salesforceId"}
BOOLEAN_FIELDS = {"main_contact", "is_consortium_lead"}

_TRUE = {"true", "yes", "y", "1"}
_FALSE = {"false", "no", "n", "0", ""}


class RowOutcome(BaseModel):
    """Result of one CSV data row. ``row_index`` is 0-based."""

    row_index: int
    success: bool
    user_id: str | None = None
    login: str | None = None
    reason: str | None = None


class BatchReport(BaseModel):
    """Ordered outcomes of one upload."""

    outcomes: list[RowOutcome] = Field(default_factory=list)

    @computed_field
    @property
    def total_rows(self) -> int:
        return len(self.outcomes)

    @computed_field
    @property
    def success_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @computed_field
    @property
    def rejections(self) -> list[RowOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.success]


class UserCsvUploadProcessor:
    """Turns a CSV stream into users, one row at a time."""

    def __init__(self, service: UserManagementService) -> None:
        self._service = service
        upload_config = get_config().upload
        self._authority_delimiter = upload_config.authority_delimiter
        self._max_reason_length = upload_config.max_reason_length

    def process_csv(self, stream: TextIO, actor: str) -> BatchReport:
        report = BatchReport()
        reader = csv.reader(stream)

        try:
            header = next(reader)
        except StopIteration:
            logger.info("CSV upload by {} contained no header row", actor)
            return report
        except csv.Error as e:
            report.outcomes.append(self._reject(0, f"parse error: unreadable header: {e}"))
            return report

        columns = self._map_header(header)
        missing = [
            column for field, column in REQUIRED_COLUMNS.items() if field not in columns
        ]
        logger.info(
            "Processing CSV upload by {} with columns {}", actor, sorted(columns)
        )

        row_index = 0
        while True:
            try:
                values = next(reader)
            except StopIteration:
                break
            except csv.Error as e:
                report.outcomes.append(self._reject(row_index, f"parse error: {e}"))
                row_index += 1
                continue

            if not any(value.strip() for value in values):
                continue

            with logger.contextualize(upload_row=row_index):
                outcome = self._process_row(
                    row_index, values, len(header), columns, missing, actor
                )
            report.outcomes.append(outcome)
            row_index += 1

        logger.info(
            "CSV upload by {} finished: {} rows, {} created or updated, {} rejected",
            actor,
            report.total_rows,
            report.success_count,
            len(report.rejections),
        )
        return report

    def _process_row(
        self,
        row_index: int,
        values: list[str],
        width: int,
        columns: dict[str, int],
        missing: list[str],
        actor: str,
    ) -> RowOutcome:
        try:
            candidate = self._parse_row(values, width, columns, missing)
        except CsvParseError as e:
            return self._reject(row_index, f"parse error: {e}")

        try:
            user = self._service.save(candidate, actor)
        except UserValidationError as e:
            return self._reject(row_index, e.result.summary(), candidate.login)
        except (MemberNotFoundError, UserNotFoundError) as e:
            return self._reject(row_index, str(e), candidate.login)
        except ConflictError:
            return self._reject(row_index, "conflict", candidate.login)
        except MemberDirectoryError as e:
            return self._reject(row_index, self._truncate(str(e)), candidate.login)
        except SQLAlchemyError as e:
            self._service.rollback()
            logger.exception("Store error while saving row {}", row_index)
            return self._reject(
                row_index, self._truncate(f"store error: {type(e).__name__}"), candidate.login
            )

        return RowOutcome(
            row_index=row_index, success=True, user_id=user.id, login=user.login
        )

    def _parse_row(
        self,
        values: list[str],
        width: int,
        columns: dict[str, int],
        missing: list[str],
    ) -> UserRecord:
        if missing:
            raise CsvParseError(f"missing required column(s): {', '.join(missing)}")
        if any(value.strip() for value in values[width:]):
            raise CsvParseError(f"expected {width} fields, found {len(values)}")

        fields: dict[str, object] = {}
        for field, position in columns.items():
            if position >= len(values):
                if field in REQUIRED_COLUMNS:
                    raise CsvParseError(
                        f"expected {width} fields, found {len(values)}"
                    )
                continue
            raw = values[position].strip()
            if field == "authorities":
                fields[field] = parse_authorities(raw, self._authority_delimiter)
            elif field in BOOLEAN_FIELDS:
                fields[field] = self._parse_bool(field, raw)
            else:
                fields[field] = raw or None

        return UserRecord(**fields)

    @staticmethod
    def _map_header(header: list[str]) -> dict[str, int]:
        columns: dict[str, int] = {}
        for position, name in enumerate(header):
            field = COLUMN_FIELDS.get(name.strip().lower())
            if field is not None and field not in columns:
                columns[field] = position
        return columns

    @staticmethod
    def _parse_bool(field: str, raw: str) -> bool:
        value = raw.lower()
        if value in _TRUE:
            return True
        if value in _FALSE:
            return False
        raise CsvParseError(f"invalid boolean value {raw!r} for {field}")

    def _truncate(self, reason: str) -> str:
        return reason[: self._max_reason_length]

    @staticmethod
    def _reject(row_index: int, reason: str, login: str | None = None) -> RowOutcome:
        logger.warning("CSV row {} rejected: {}", row_index, reason)
        return RowOutcome(row_index=row_index, success=False, login=login, reason=reason)
