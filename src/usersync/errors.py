"""Error taxonomy for export, import and delete operations."""


class SyncError(Exception):
    """Base class for every error raised by usersync."""


class ConfigurationError(SyncError, ValueError):
    """A required parameter is missing or unusable."""


class PathStateError(SyncError):
    """The file system is not in the state an operation requires."""


class DataFileError(SyncError):
    """A data file could not be read, written or decoded."""

    def __init__(self, message: str, line_no: int | None = None):
        if line_no is not None:
            message = f"{message} (line {line_no})"
        super().__init__(message)
        self.line_no = line_no


class RecordValidationError(DataFileError):
    """A field value does not satisfy its schema definition."""

    def __init__(self, field: str, message: str, line_no: int | None = None):
        super().__init__(f"{field}: {message}", line_no)
        self.field = field


class DataIntegrityError(SyncError):
    """A statement scoped to one key affected more than one row."""


class IllegalTransitionError(SyncError):
    """A delete workflow tried to move between states it may not."""
