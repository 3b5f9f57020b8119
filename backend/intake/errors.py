"""Error taxonomy shared by the record store, services and routers."""


class IntakeError(Exception):
    """Base class for errors with a user-facing message."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(IntakeError, ValueError):
    """Raised when a submission or a day key is malformed."""

    status_code = 400

    def __init__(self, message: str, missing: list[str] | None = None):
        super().__init__(message)
        self.missing = list(missing or [])


class StorageError(IntakeError, RuntimeError):
    """Raised when a partition cannot be read, decoded or written."""

    status_code = 500


class NotFoundError(IntakeError, LookupError):
    """Raised when a day partition does not exist."""

    status_code = 404
