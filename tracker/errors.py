class TrackerError(Exception):
    """Base for every error shown to the user as a notification."""

    kind = "tracker_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __eq__(self, other) -> bool:
        return type(self) is type(other) and self.message == other.message

    def __hash__(self) -> int:
        return hash((self.kind, self.message))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class AuthenticationRequired(TrackerError):
    kind = "authentication_required"

    def __init__(self, message: str = "You must be logged in to add expenses"):
        super().__init__(message)


class ValidationFailed(TrackerError):
    kind = "validation_failed"

    def __init__(self, message: str, field: str = ""):
        super().__init__(message)
        self.field = field


class StoreOperationFailed(TrackerError):
    kind = "store_operation_failed"

    def __init__(self, message: str, operation: str = ""):
        super().__init__(message)
        self.operation = operation
