"""Unit tests for the user management service."""

import pytest

from src.user_service.core.services.user.errors import (
    BadRequestError,
    ConflictError,
    MemberDirectoryError,
    MemberNotFoundError,
    UserNotFoundError,
    UserValidationError,
)
from src.user_service.core.services.user.validation import EMAIL_USED, LOGIN_USED
from src.user_service.core.services import UserManagementService
from tests.fixtures.dummies import UnavailableMemberDirectory
from tests.utils import make_record


class TestCreateUser:
    """Test user creation through validate, member check and upsert."""

    def test_create_user(self, user_service, clock):
        user = user_service.create_user(
            make_record("bob", email="bob@x.com", salesforce_id="SF1"), "admin"
        )

        assert user.login == "bob"
        assert user.created_by == "admin"
        assert user.created_date == clock.now

    def test_candidate_with_id_is_a_bad_request(self, user_service):
        with pytest.raises(BadRequestError, match="cannot already have an ID"):
            user_service.create_user(make_record(id="u1"), "admin")

    def test_missing_member_persists_nothing(self, user_service, user_repo):
        with pytest.raises(MemberNotFoundError) as exc_info:
            user_service.create_user(
                make_record("bob", email="bob@x.com", salesforce_id="SFMISSING"), "admin"
            )

        assert exc_info.value.salesforce_id == "SFMISSING"
        assert str(exc_info.value) == "member not found: SFMISSING"
        assert user_repo.count() == 0

    def test_duplicate_login_blocks_creation(self, user_service):
        user_service.create_user(make_record("alice"), "admin")

        with pytest.raises(UserValidationError) as exc_info:
            user_service.create_user(
                make_record("Alice", email="someone@example.com"), "admin"
            )

        assert exc_info.value.result.login_error == LOGIN_USED

    def test_duplicate_blocks_even_when_fields_are_present(self, user_service, user_repo):
        """A uniqueness error alone is enough to refuse the write."""
        user_service.create_user(make_record("alice"), "admin")

        with pytest.raises(UserValidationError) as exc_info:
            user_service.create_user(make_record("bob", email="alice@example.com"), "admin")

        assert exc_info.value.result.errors() == {"email_error": EMAIL_USED}
        assert user_repo.count() == 1

    def test_validation_runs_before_the_member_check(self, user_service, member_directory):
        with pytest.raises(UserValidationError):
            user_service.create_user(make_record(login=""), "admin")

        assert member_directory.lookups == []

    def test_directory_outage_is_reported(self, session, clock, user_repo):
        service = UserManagementService(session, UnavailableMemberDirectory(), clock=clock)

        with pytest.raises(MemberDirectoryError):
            service.create_user(make_record(), "admin")

        assert user_repo.count() == 0

    def test_recreate_login_after_delete(self, user_service):
        first = user_service.create_user(
            make_record("bob", email="bob@x.com", salesforce_id="SF1"), "admin"
        )
        user_service.delete_user(first.id, "admin")

        second = user_service.create_user(
            make_record("bob", email="bob@x.com", salesforce_id="SF1"), "admin"
        )

        assert second.id != first.id
        assert user_service.get_user("bob") == second


class TestUpdateUser:
    """Test user updates."""

    def test_update_email(self, user_service, clock):
        original = user_service.create_user(
            make_record("bob", email="old@x.com", salesforce_id="SF1"), "admin"
        )
        modified_at = clock.advance(hours=2)

        updated = user_service.update_user(
            make_record("bob", email="new@x.com", salesforce_id="SF1", id=original.id),
            "editor",
        )

        assert updated.email == "new@x.com"
        assert updated.created_date == original.created_date
        assert updated.last_modified_date == modified_at
        assert updated.last_modified_by == "editor"

    def test_resaving_unchanged_user_is_valid(self, user_service):
        user = user_service.create_user(make_record("alice"), "admin")

        again = user_service.update_user(make_record("alice", id=user.id), "admin")

        assert again == user

    def test_update_without_id_is_a_bad_request(self, user_service):
        with pytest.raises(BadRequestError):
            user_service.update_user(make_record(), "admin")

    def test_update_of_unknown_user(self, user_service, member_directory):
        with pytest.raises(UserNotFoundError):
            user_service.update_user(make_record(id="u404", salesforce_id="SFMISSING"), "admin")

        assert member_directory.lookups == []

    def test_unchanged_salesforce_id_skips_member_check(self, user_service, member_directory):
        user = user_service.create_user(make_record("alice"), "admin")
        member_directory.lookups.clear()

        user_service.update_user(make_record("alice", first_name="Al", id=user.id), "admin")

        assert member_directory.lookups == []

    def test_changed_salesforce_id_is_checked(self, user_service):
        user = user_service.create_user(make_record("alice"), "admin")

        with pytest.raises(MemberNotFoundError):
            user_service.update_user(
                make_record("alice", salesforce_id="SFMISSING", id=user.id), "admin"
            )

    def test_update_to_login_of_another_user(self, user_service):
        user_service.create_user(make_record("alice"), "admin")
        bob = user_service.create_user(make_record("bob"), "admin")

        with pytest.raises(UserValidationError):
            user_service.update_user(make_record("alice", id=bob.id), "admin")


class TestUniquenessProperties:
    """Active logins and emails stay unique across mixed operations."""

    def test_sequence_of_operations_keeps_logins_and_emails_unique(self, user_service, user_repo):
        operations = [
            make_record("alice"),
            make_record("bob"),
            make_record("ALICE", email="x@example.com"),
            make_record("carol", email="BOB@example.com"),
            make_record("dave"),
        ]
        for candidate in operations:
            try:
                user_service.create_user(candidate, "admin")
            except (UserValidationError, ConflictError):
                pass

        bob = user_service.get_user("bob")
        try:
            user_service.update_user(make_record("dave", id=bob.id), "admin")
        except UserValidationError:
            pass

        users, total = user_service.list_users(size=100)
        logins = [u.login for u in users]
        emails = [u.email for u in users]
        assert total == 3
        assert len(set(logins)) == len(logins)
        assert len(set(emails)) == len(emails)


class TestDeleteAndAuthorities:
    """Test soft delete and authority removal."""

    def test_delete_twice_leaves_same_state(self, user_service, user_repo, clock):
        user = user_service.create_user(make_record(), "admin")
        user_service.delete_user(user.id, "admin")
        once = user_repo.get(user.id)
        clock.advance(minutes=1)

        user_service.delete_user(user.id, "admin")

        assert user_repo.get(user.id) == once
        assert user_repo.get(user.id).last_modified_date == once.last_modified_date

    def test_delete_with_clock_behind_creation(self, user_service, user_repo, clock):
        user = user_service.create_user(make_record(), "admin")
        clock.advance(seconds=-30)

        user_service.delete_user(user.id, "admin")

        stored = user_repo.get(user.id)
        assert stored.last_modified_date >= stored.created_date

    def test_delete_unknown_user(self, user_service):
        with pytest.raises(UserNotFoundError):
            user_service.delete_user("u404", "admin")

    def test_remove_authority_without_grant_is_a_no_op(self, user_service, user_repo):
        user = user_service.create_user(make_record(authorities={"ROLE_USER"}), "admin")

        user_service.remove_authority(user.id, "ROLE_ADMIN")

        assert user_repo.get(user.id).authorities == {"ROLE_USER"}


class TestQueries:
    """Test the read operations."""

    def test_get_user_by_login_or_id(self, user_service):
        user = user_service.create_user(make_record("alice"), "admin")

        assert user_service.get_user("alice") == user
        assert user_service.get_user(user.id) == user
        assert user_service.get_user("nobody") is None

    def test_list_users_pages(self, user_service):
        for login in ("carol", "alice", "bob"):
            user_service.create_user(make_record(login), "admin")

        users, total = user_service.list_users(page=1, size=2)

        assert [u.login for u in users] == ["carol"]
        assert total == 3

    def test_list_users_by_salesforce_id(self, user_service):
        user_service.create_user(make_record("alice", salesforce_id="001A"), "admin")
        user_service.create_user(make_record("bob", salesforce_id="001B"), "admin")

        assert [u.login for u in user_service.list_users_by_salesforce_id("001A")] == ["alice"]

    def test_list_authorities(self, user_service):
        assert user_service.list_authorities() == [
            "CONSORTIUM_LEAD",
            "MEMBER",
            "ROLE_ADMIN",
            "ROLE_ANONYMOUS",
            "ROLE_USER",
        ]
