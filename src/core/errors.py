"""
Error taxonomy shared by the persistence gateway, the stream endpoints and the API.

Each error carries the HTTP status it maps to. StreamFailure has no class here:
once streaming has begun the status line is already sent, so failures are
reported in-band as an error frame instead.
"""


class SnowbasinError(Exception):
    """Base class for all Snowbasin errors."""

    status_code: int = 500
    default_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(SnowbasinError):
    """No caller identity on a request that needs one."""

    status_code = 401
    default_message = "Unauthorized"


class BadRequest(SnowbasinError):
    """A required field is missing or malformed."""

    status_code = 400
    default_message = "Bad Request"


class NotFound(SnowbasinError):
    """The chat does not exist or is not owned by the caller."""

    status_code = 404
    default_message = "Chat not found"


class UpstreamFailure(SnowbasinError):
    """Model API or storage failed before streaming started."""

    status_code = 500
    default_message = "Internal Server Error"


class StorageError(UpstreamFailure):
    """The relational store rejected or failed an operation."""
