"""Tests for the optimistic-lock cascade delete."""

import logging
from datetime import datetime

import pytest

from tests.helpers.fake_executor import FakeDatabaseService
from tests.helpers.records import count_rows, insert_pets, insert_user
from usersync.deleter import (
    DeleteRequest,
    DeleteState,
    DeleteWorkflow,
    UserDeleter,
    can_transition,
    ensure_transition,
    is_terminal,
)
from usersync.errors import ConfigurationError, DataIntegrityError, IllegalTransitionError
from usersync.messages import MSG_DELETED, MSG_STALE_OR_MISSING, MsgType

TOKEN = datetime(2025, 1, 1, 12, 0)
HEADER_DELETE = "DELETE FROM t_user WHERE"
CASCADE_DELETE = "DELETE FROM t_user_pet WHERE"


class TestStateMachine:
    def test_allowed_path(self):
        assert can_transition(DeleteState.START, DeleteState.HEADER_DELETE_ATTEMPTED)
        assert can_transition(DeleteState.HEADER_DELETE_ATTEMPTED, DeleteState.ABORTED)
        assert can_transition(DeleteState.HEADER_DELETE_ATTEMPTED, DeleteState.CASCADE_DELETED)

    def test_cascade_never_reachable_from_start_or_aborted(self):
        assert not can_transition(DeleteState.START, DeleteState.CASCADE_DELETED)
        assert not can_transition(DeleteState.ABORTED, DeleteState.CASCADE_DELETED)
        with pytest.raises(IllegalTransitionError):
            ensure_transition(DeleteState.ABORTED, DeleteState.CASCADE_DELETED)

    def test_terminal_states(self):
        assert is_terminal(DeleteState.ABORTED)
        assert is_terminal(DeleteState.CASCADE_DELETED)
        assert not is_terminal(DeleteState.HEADER_DELETE_ATTEMPTED)


class TestWorkflowWithFake:
    def test_success_runs_both_phases(self):
        fake = FakeDatabaseService().script(HEADER_DELETE, 1).script(CASCADE_DELETE, 3)
        response = UserDeleter(fake).delete(DeleteRequest("U001", TOKEN))

        assert not response.has_error
        assert [m.code for m in response.messages] == [MSG_DELETED]
        assert response.messages[0].params == ("U001",)
        assert fake.executed(HEADER_DELETE)[0][1] == ("U001", TOKEN)
        assert fake.executed(CASCADE_DELETE)[0][1] == ("U001",)
        assert fake.commits == 1

    def test_stale_token_never_cascades(self):
        fake = FakeDatabaseService().script(HEADER_DELETE, 0)
        response = UserDeleter(fake).delete(DeleteRequest("U001", TOKEN))

        assert response.has_error
        [error] = response.errors_for("user_id")
        assert error.type is MsgType.ERROR
        assert error.code == MSG_STALE_OR_MISSING
        assert error.params == ("U001",)
        assert fake.executed(CASCADE_DELETE) == []

    def test_cascade_with_zero_dependents_still_succeeds(self):
        fake = FakeDatabaseService().script(HEADER_DELETE, 1)
        response = UserDeleter(fake).delete(DeleteRequest("U001", TOKEN))
        assert not response.has_error
        assert len(fake.executed(CASCADE_DELETE)) == 1

    def test_multiple_header_rows_is_integrity_error(self):
        fake = FakeDatabaseService().script(HEADER_DELETE, 2)
        with pytest.raises(DataIntegrityError):
            UserDeleter(fake).delete(DeleteRequest("U001", TOKEN))
        assert fake.executed(CASCADE_DELETE) == []
        assert fake.rollbacks == 1

    def test_dependents_refused_before_header_delete(self):
        fake = FakeDatabaseService()
        workflow = DeleteWorkflow(fake, DeleteRequest("U001", TOKEN))
        with fake.transaction():
            with pytest.raises(IllegalTransitionError):
                workflow.delete_dependents()
        assert fake.statements == []

    def test_dependents_refused_after_abort(self):
        fake = FakeDatabaseService().script(HEADER_DELETE, 0)
        workflow = DeleteWorkflow(fake, DeleteRequest("U001", TOKEN))
        with fake.transaction():
            assert workflow.delete_header() is False
            assert workflow.state is DeleteState.ABORTED
            with pytest.raises(IllegalTransitionError):
                workflow.delete_dependents()
        assert fake.executed(CASCADE_DELETE) == []

    def test_header_delete_not_repeatable(self):
        fake = FakeDatabaseService().script(HEADER_DELETE, 1)
        workflow = DeleteWorkflow(fake, DeleteRequest("U001", TOKEN))
        with fake.transaction():
            workflow.delete_header()
            with pytest.raises(IllegalTransitionError):
                workflow.delete_header()

    def test_cascade_count_logged_in_verbose_mode(self, caplog):
        fake = FakeDatabaseService().script(HEADER_DELETE, 1).script(CASCADE_DELETE, 4)
        with caplog.at_level(logging.DEBUG, logger="usersync.deleter"):
            response = UserDeleter(fake).delete(DeleteRequest("U001", TOKEN))
        assert "deleted count=4" in caplog.text
        assert "4" not in str(response.to_dict())


class TestDeleteRequest:
    def test_parse_token(self):
        request = DeleteRequest.parse("U001", "2025-01-01 12:00:00")
        assert request.concurrency_token == TOKEN

    @pytest.mark.parametrize(
        "identifier,token", [("", "2025-01-01T12:00:00"), ("U001", ""), (None, None)]
    )
    def test_missing_values(self, identifier, token):
        with pytest.raises(ConfigurationError, match="required"):
            DeleteRequest.parse(identifier, token)

    def test_bad_token(self):
        with pytest.raises(ConfigurationError, match="upd_ts"):
            DeleteRequest.parse("U001", "not-a-time")


class TestDeleteAgainstStore:
    def test_delete_removes_user_and_pets(self, user_db):
        insert_user(user_db, "u1", upd_ts="2024-01-01T00:00:00")
        insert_pets(user_db, "u1", 3)
        insert_user(user_db, "u2")
        insert_pets(user_db, "u2", 1)

        request = DeleteRequest.parse("u1", "2024-01-01T00:00:00")
        response = UserDeleter(user_db).delete(request)

        assert not response.has_error
        assert count_rows(user_db, "t_user", "WHERE user_id = ?", ("u1",)) == 0
        assert count_rows(user_db, "t_user_pet", "WHERE user_id = ?", ("u1",)) == 0
        assert count_rows(user_db, "t_user_pet", "WHERE user_id = ?", ("u2",)) == 1

    def test_second_delete_with_same_token_rejected(self, user_db):
        insert_user(user_db, "u1", upd_ts="2024-01-01T00:00:00")
        insert_pets(user_db, "u1", 2)
        request = DeleteRequest.parse("u1", "2024-01-01T00:00:00")

        assert not UserDeleter(user_db).delete(request).has_error
        again = UserDeleter(user_db).delete(request)

        assert again.has_error
        assert again.errors_for("user_id")[0].code == MSG_STALE_OR_MISSING
        assert count_rows(user_db, "t_user_pet") == 0

    def test_stale_token_keeps_user_and_pets(self, user_db):
        insert_user(user_db, "U001", upd_ts="2025-01-01T12:00:00")
        insert_pets(user_db, "U001", 2)

        request = DeleteRequest.parse("U001", "2024-12-31T23:59:59")
        response = UserDeleter(user_db).delete(request)

        assert response.has_error
        assert count_rows(user_db, "t_user") == 1
        assert count_rows(user_db, "t_user_pet") == 2

    def test_orphan_pets_untouched_when_user_missing(self, user_db):
        insert_pets(user_db, "U009", 2)
        response = UserDeleter(user_db).delete(DeleteRequest("U009", TOKEN))
        assert response.has_error
        assert count_rows(user_db, "t_user_pet") == 2
