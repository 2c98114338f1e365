"""Unit tests for bulk CSV provisioning."""

import io

import pytest
from sqlalchemy.exc import OperationalError

from src.user_service.core.services import UserManagementService
from src.user_service.core.services.user.csv_upload import (
    BatchReport,
    RowOutcome,
    UserCsvUploadProcessor,
)
from src.user_service.core.services.user.validation import EMAIL_USED, LOGIN_USED
from src.user_service.runtime.config.config_data import ConfigData
from src.user_service.runtime.context import with_context
from tests.fixtures.dummies import UnavailableMemberDirectory
from tests.utils import CSV_HEADER, csv_text, make_record


def _upload(service: UserManagementService, text: str) -> BatchReport:
    return service.upload_users(io.StringIO(text, newline=""), "uploader")


class TestBatchReport:
    """Test the report model."""

    def test_counts_and_rejections(self):
        report = BatchReport(
            outcomes=[
                RowOutcome(row_index=0, success=True, user_id="u1"),
                RowOutcome(row_index=1, success=False, reason="conflict"),
            ]
        )

        assert report.total_rows == 2
        assert report.success_count == 1
        assert [r.row_index for r in report.rejections] == [1]

    def test_serialized_report_carries_counts(self):
        dumped = BatchReport().model_dump()

        assert dumped == {
            "outcomes": [],
            "total_rows": 0,
            "success_count": 0,
            "rejections": [],
        }

    def test_serialized_report_lists_rejected_rows(self, user_service):
        report = _upload(
            user_service,
            csv_text("login,email,salesforceId", "a,a@x.com,SF1", "a,b@x.com,SF1"),
        )

        rejections = report.model_dump()["rejections"]

        assert [r["row_index"] for r in rejections] == [1]
        assert rejections[0]["reason"] == LOGIN_USED


class TestCsvUpload:
    """Test row-by-row processing of uploads."""

    def test_duplicate_login_in_same_file(self, user_service):
        report = _upload(
            user_service,
            csv_text("login,email,salesforceId", "a,a@x.com,SF1", "a,b@x.com,SF1"),
        )

        assert report.total_rows == 2
        assert report.outcomes[0].success
        assert not report.outcomes[1].success
        assert report.outcomes[1].row_index == 1
        assert report.outcomes[1].reason == LOGIN_USED

    def test_one_bad_row_among_many(self, user_service, user_repo):
        rows = [f"user{i},user{i}@x.com,F{i},L{i},ROLE_USER,SF1," for i in range(6)]
        rows[3] = "user1,dup@x.com,F,L,ROLE_USER,SF1,"

        report = _upload(user_service, csv_text(CSV_HEADER, *rows))

        assert report.total_rows == 6
        assert report.success_count == 5
        assert [r.row_index for r in report.rejections] == [3]
        assert user_repo.count() == 5

    def test_rows_are_created_with_all_columns(self, user_service, clock):
        report = _upload(
            user_service,
            csv_text(
                "login,email,firstName,lastName,authorities,salesforceId,"
                "parentSalesforceId,mainContact,isConsortiumLead",
                "Jane,Jane@X.com,Jane,Doe,ROLE_USER|MEMBER,001A,001C,yes,false",
            ),
        )

        user = user_service.get_user(report.outcomes[0].user_id)
        assert user.login == "jane"
        assert user.email == "jane@x.com"
        assert user.authorities == {"ROLE_USER", "MEMBER"}
        assert user.parent_salesforce_id == "001C"
        assert user.main_contact is True
        assert user.is_consortium_lead is False
        assert user.created_by == "uploader"
        assert user.created_date == clock.now

    def test_rejection_reasons(self, user_service):
        user_service.create_user(make_record("taken", email="taken@x.com"), "admin")

        report = _upload(
            user_service,
            csv_text(
                "login,email,salesforceId,mainContact",
                ",,001A,",
                "new,taken@x.com,001A,",
                "other,other@x.com,SFMISSING,",
                "bad,bad@x.com,001A,maybe",
            ),
        )

        reasons = [outcome.reason for outcome in report.outcomes]
        assert reasons[0] == "Login should not be empty; Email should not be empty"
        assert reasons[1] == EMAIL_USED
        assert reasons[2] == "member not found: SFMISSING"
        assert reasons[3].startswith("parse error: invalid boolean value 'maybe'")
        assert report.success_count == 0

    def test_missing_required_column_rejects_every_row(self, user_service, user_repo):
        report = _upload(
            user_service, csv_text("login,email", "a,a@x.com", "b,b@x.com")
        )

        assert report.total_rows == 2
        assert all(
            r.reason == "parse error: missing required column(s): salesforceId"
            for r in report.rejections
        )
        assert user_repo.count() == 0

    def test_malformed_rows_are_parse_errors(self, user_service):
        report = _upload(
            user_service,
            csv_text(
                "login,email,salesforceId",
                "a,a@x.com,001A,extra",
                "b,b@x.com",
                "c,c@x.com,001A",
            ),
        )

        assert report.outcomes[0].reason == "parse error: expected 3 fields, found 4"
        assert report.outcomes[1].reason == "parse error: expected 3 fields, found 2"
        assert report.outcomes[2].success

    def test_blank_trailing_cells_are_accepted(self, user_service):
        report = _upload(
            user_service,
            csv_text("login,email,salesforceId", "a,a@x.com,001A,", "b,b@x.com,001A,,  "),
        )

        assert report.success_count == 2

    def test_unknown_columns_and_blank_lines_are_ignored(self, user_service):
        report = _upload(
            user_service,
            csv_text("Login,EMAIL,salesforceId,favouriteColour", "a,a@x.com,001A,blue", "", "b,b@x.com,001B,red"),
        )

        assert report.total_rows == 2
        assert report.success_count == 2

    def test_id_column_updates_existing_user(self, user_service):
        existing = user_service.create_user(make_record("alice", email="old@x.com"), "admin")

        report = _upload(
            user_service,
            csv_text(
                "id,login,email,salesforceId",
                f"{existing.id},alice,new@x.com,001A",
                "u404,ghost,ghost@x.com,001A",
            ),
        )

        assert report.outcomes[0].user_id == existing.id
        assert user_service.get_user("alice").email == "new@x.com"
        assert report.outcomes[1].reason == "not found: u404"

    def test_empty_upload(self, user_service):
        assert _upload(user_service, "").total_rows == 0

    def test_configured_delimiter(self, user_service):
        override = ConfigData()
        override.upload.authority_delimiter = ";"

        with with_context(override):
            report = _upload(
                user_service,
                csv_text("login,email,salesforceId,authorities", "a,a@x.com,001A,ROLE_USER;MEMBER"),
            )

        user = user_service.get_user("a")
        assert report.success_count == 1
        assert user.authorities == {"ROLE_USER", "MEMBER"}


class TestCsvUploadInfrastructureFailures:
    """Infrastructure failures reject the row and processing continues."""

    def test_directory_outage_for_one_row(self, session, clock, user_repo):
        directory = UnavailableMemberDirectory(members={"001A", "001B"}, down_for={"001B"})
        service = UserManagementService(session, directory, clock=clock)

        report = _upload(
            service,
            csv_text("login,email,salesforceId", "a,a@x.com,001A", "b,b@x.com,001B", "c,c@x.com,001A"),
        )

        assert [o.success for o in report.outcomes] == [True, False, True]
        assert report.outcomes[1].reason == "member directory timed out after 5.0s"
        assert user_repo.count() == 2

    def test_long_infrastructure_reasons_are_truncated(self, session, clock):
        override = ConfigData()
        override.upload.max_reason_length = 10
        service = UserManagementService(session, UnavailableMemberDirectory(), clock=clock)

        with with_context(override):
            report = _upload(service, csv_text("login,email,salesforceId", "a,a@x.com,001A"))

        assert report.outcomes[0].reason == "member dir"

    def test_store_error_rolls_back_and_continues(self, user_service, user_repo, monkeypatch):
        original_save = user_service.save
        calls = {"n": 0}

        def flaky_save(candidate, actor):
            calls["n"] += 1
            if calls["n"] == 1:
                raise OperationalError("INSERT", {}, Exception("database is locked"))
            return original_save(candidate, actor)

        monkeypatch.setattr(user_service, "save", flaky_save)

        report = _upload(
            user_service,
            csv_text("login,email,salesforceId", "a,a@x.com,001A", "b,b@x.com,001A"),
        )

        assert report.outcomes[0].reason == "store error: OperationalError"
        assert report.outcomes[1].success
        assert user_repo.count() == 1


@pytest.fixture
def processor(user_service):
    return UserCsvUploadProcessor(user_service)


def test_processor_reads_file_streams(processor, tmp_path):
    path = tmp_path / "users.csv"
    path.write_text(csv_text("login,email,salesforceId", "a,a@x.com,001A"), encoding="utf-8")

    with open(path, newline="", encoding="utf-8") as stream:
        report = processor.process_csv(stream, "uploader")

    assert report.success_count == 1
