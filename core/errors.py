class AppError(Exception):
    """Base exception for the offline sync layer."""


class StorageError(AppError):
    """The local operation store could not be opened, read or written."""


class OperationNotFoundError(AppError, KeyError):
    """No queued operation exists under the requested id."""

    def __init__(self, operation_id: str) -> None:
        super().__init__(operation_id)
        self.operation_id = operation_id

    def __str__(self) -> str:
        return f"Operation not found: {self.operation_id}"


class InvalidOperationError(AppError, ValueError):
    """An operation lacks the target ids or payload fields its type needs."""


class InvalidTransitionError(AppError):
    """A record was asked to move along an edge its state machine lacks."""


class ConfigError(AppError, ValueError):
    """A configuration value is out of range."""


class ExecutionError(AppError):
    """Applying an operation against the remote store failed."""


class RemoteError(ExecutionError):
    """The remote document store rejected a request."""


class NotAuthenticatedError(ExecutionError):
    """No signed-in user is available to attribute the write to."""

    def __init__(self, message: str = "User not authenticated") -> None:
        super().__init__(message)
