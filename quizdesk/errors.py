class QuizDeskError(Exception):
    """Base class for failures surfaced by the service layer."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class NotFoundError(QuizDeskError, LookupError):
    """A referenced user, subject, module or quiz does not exist."""

    status_code = 404


class ConflictError(QuizDeskError, ValueError):
    """Duplicate email, duplicate join, inactive quiz or a stale subject write."""

    status_code = 409


class UnauthorizedError(QuizDeskError, PermissionError):
    """Credential mismatch or wrong role for the requested dashboard."""

    status_code = 401


class ValidationError(QuizDeskError, ValueError):
    """Missing required fields or a malformed question set."""

    status_code = 400


class StoreUnavailableError(QuizDeskError):
    """The database could not be reached."""

    status_code = 500
