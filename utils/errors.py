class SwapError(Exception):
    """Base class for errors a resource turns into a client response."""
    status_code = 400

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(SwapError):
    status_code = 400


class NotFoundError(SwapError):
    """Absent, or present but not visible to the caller."""
    status_code = 404
