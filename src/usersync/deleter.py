"""Optimistic-lock delete of a user followed by a cascade delete of its pets.

The workflow is a small state machine:

    START -> HEADER_DELETE_ATTEMPTED -> ABORTED
                                     -> CASCADE_DELETED

The cascade can only be reached from a header delete that removed exactly
one row, so a stale or unknown token never touches the pet rows.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from usersync import statements
from usersync.errors import (
    ConfigurationError,
    DataIntegrityError,
    IllegalTransitionError,
    RecordValidationError,
)
from usersync.messages import MSG_DELETED, MSG_STALE_OR_MISSING, MsgType, Response
from usersync.schema import PET_SCHEMA, USER_SCHEMA, RecordSchema
from usersync.service import DatabaseService

logger = logging.getLogger(__name__)


class DeleteState(str, Enum):
    START = "start"
    HEADER_DELETE_ATTEMPTED = "header_delete_attempted"
    ABORTED = "aborted"
    CASCADE_DELETED = "cascade_deleted"


_ALLOWED: set[tuple[DeleteState, DeleteState]] = {
    (DeleteState.START, DeleteState.HEADER_DELETE_ATTEMPTED),
    (DeleteState.HEADER_DELETE_ATTEMPTED, DeleteState.ABORTED),
    (DeleteState.HEADER_DELETE_ATTEMPTED, DeleteState.CASCADE_DELETED),
}

_TERMINAL: set[DeleteState] = {DeleteState.ABORTED, DeleteState.CASCADE_DELETED}


def is_terminal(state: DeleteState) -> bool:
    return state in _TERMINAL


def can_transition(src: DeleteState, dst: DeleteState) -> bool:
    if src in _TERMINAL:
        return False
    return (src, dst) in _ALLOWED


def ensure_transition(src: DeleteState, dst: DeleteState) -> None:
    if not can_transition(src, dst):
        raise IllegalTransitionError(f"Illegal transition: {src.value} -> {dst.value}")


@dataclass(frozen=True)
class DeleteRequest:
    identifier: str
    concurrency_token: datetime

    @classmethod
    def parse(cls, identifier: str | None, token: str | datetime | None) -> "DeleteRequest":
        """Build a request from raw input, e.g. CLI arguments."""
        if identifier is None or identifier.strip() == "":
            raise ConfigurationError("'user_id' is required.")
        if token is None or (isinstance(token, str) and token.strip() == ""):
            raise ConfigurationError("'upd_ts' is required.")
        if isinstance(token, str):
            try:
                token = USER_SCHEMA.field(USER_SCHEMA.version_field).decode(token)
            except RecordValidationError as e:
                raise ConfigurationError(str(e)) from e
        return cls(identifier, token)


class DeleteWorkflow:
    """One delete invocation. Not reusable once it reaches a terminal state."""

    def __init__(
        self,
        service: DatabaseService,
        request: DeleteRequest,
        parent: RecordSchema = USER_SCHEMA,
        dependent: RecordSchema = PET_SCHEMA,
    ):
        self._service = service
        self._request = request
        self._parent = parent
        self._dependent = dependent
        self.state = DeleteState.START
        self.header_count: int | None = None
        self.cascade_count: int | None = None

    def _advance(self, dst: DeleteState) -> None:
        ensure_transition(self.state, dst)
        logger.debug("Delete %s: %s -> %s", self._request.identifier, self.state.value, dst.value)
        self.state = dst

    def delete_header(self) -> bool:
        """Phase 1: delete the parent row if its version still matches."""
        self._advance(DeleteState.HEADER_DELETE_ATTEMPTED)
        ph = self._service.placeholder
        stmt = statements.delete_versioned(self._parent, ph)
        params = {
            self._parent.primary_key[0]: self._request.identifier,
            self._parent.version_field: self._request.concurrency_token,
        }
        count = self._service.execute(stmt.sql, stmt.bind(params))
        if count > 1:
            raise DataIntegrityError(
                f"Multiple records were deleted. table={self._parent.table} "
                f"user_id={self._request.identifier} count={count}"
            )
        self.header_count = count
        if count == 0:
            self._advance(DeleteState.ABORTED)
            return False
        return True

    def delete_dependents(self) -> int:
        """Phase 2: delete every dependent row of the parent, however many."""
        if self.header_count != 1:
            raise IllegalTransitionError(
                "Dependents can only be deleted after the header delete removed one row"
            )
        self._advance(DeleteState.CASCADE_DELETED)
        key = self._parent.primary_key[0]
        stmt = statements.delete_where(self._dependent, (key,), self._service.placeholder)
        self.cascade_count = self._service.execute(
            stmt.sql, stmt.bind({key: self._request.identifier})
        )
        logger.debug("deleted count=%d", self.cascade_count)
        return self.cascade_count


class UserDeleter:
    """Deletes a user and its pets, guarded by the user's upd_ts."""

    def __init__(self, service: DatabaseService):
        self._service = service

    def delete(self, request: DeleteRequest) -> Response:
        response = Response()
        workflow = DeleteWorkflow(self._service, request)

        with self._service.transaction():
            if not workflow.delete_header():
                response.put(
                    MsgType.ERROR, MSG_STALE_OR_MISSING, [request.identifier], field="user_id"
                )
                logger.info(
                    "Delete rejected: stale or missing record. user_id=%s", request.identifier
                )
                return response
            workflow.delete_dependents()

        response.put(MsgType.INFO, MSG_DELETED, [request.identifier])
        logger.info("Deleted user_id=%s", request.identifier)
        return response
