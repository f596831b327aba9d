"""Error taxonomy for Polarion access."""


class PolarionError(Exception):
    """Base class for failures talking to Polarion."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ConfigError(PolarionError):
    """Service URL, credentials or token are missing."""


class AuthError(PolarionError):
    """The service rejected the credentials (401) or the access (403)."""


class NotFoundError(PolarionError):
    """The requested resource does not exist (404)."""


class TransportError(PolarionError):
    """Network failure, unexpected status or unparseable payload."""
