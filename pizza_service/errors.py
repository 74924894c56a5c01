from __future__ import annotations


class StatusCodeError(Exception):
    """A business-rule failure that maps onto an HTTP status."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = str(message)
        if status_code is not None:
            self.status_code = int(status_code)


class ValidationFailed(StatusCodeError):
    status_code = 400


class Unauthorized(StatusCodeError):
    """The requester is known but not allowed to do this."""

    status_code = 403

    def __init__(self, message: str = "unauthorized"):
        super().__init__(message)


class NotFound(StatusCodeError):
    status_code = 404


class UnknownUser(NotFound):
    """No account matches, or the password did not verify.

    Both cases share one error so callers cannot probe which emails exist.
    """

    def __init__(self, message: str = "unknown user"):
        super().__init__(message)


class NoIdFound(NotFound):
    def __init__(self, message: str = "No ID found"):
        super().__init__(message)


class AlreadyExists(StatusCodeError):
    status_code = 409


class UnableToDelete(StatusCodeError):
    """A multi-step delete failed and was rolled back. The cause is chained."""

    status_code = 500
