"""
Error taxonomy shared by the services, the HTTP layer and the CLI.

Services raise these exceptions; routes never build error responses by
hand. The FastAPI handler in main.py turns them into JSON bodies using the
status_code attached to each class.
"""


class SchoolTalkError(Exception):
    """Base class for every error raised by the account and roster services."""

    status_code = 500
    retryable = False

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.__class__.__name__)
        self.detail = detail or self.__class__.__name__

    def to_dict(self) -> dict:
        return {
            "error": self.__class__.__name__,
            "detail": self.detail,
            "retryable": self.retryable,
        }


class NotFound(SchoolTalkError):
    """Account, roster or student record is absent."""
    status_code = 404


class AlreadyExists(SchoolTalkError):
    """An account with this identifier is already registered."""
    status_code = 409


class DuplicateCode(SchoolTalkError):
    """The account's roster already holds a student with this code."""
    status_code = 409


class InvalidArgument(SchoolTalkError):
    """Malformed input, rejected before any store call."""
    status_code = 400


class InvalidTransition(InvalidArgument):
    """A session step was requested from a state that does not allow it."""


class VerificationFailed(SchoolTalkError):
    """The supplied secret does not match the stored verifier."""
    status_code = 401


class StorageUnavailable(SchoolTalkError):
    """Transient backend failure. The caller may retry the same request."""
    status_code = 503
    retryable = True
