class OllieError(Exception):
    """Base class for every error raised by ollie."""


class TransportError(OllieError):
    """The HTTP exchange failed while sending or while waiting for bytes.

    Fatal for the current update; the transcript is left untouched.
    """


class BackendHTTPError(TransportError):
    """The backend answered with a non-success HTTP status."""

    def __init__(self, status_code: int, detail: str = ""):
        self.status_code = status_code
        self.detail = detail
        message = f"HTTP {status_code}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class SerializationError(OllieError):
    """A request body could not be serialized to JSON."""


class SessionBusyError(OllieError):
    """An update was started while another one is still in flight."""
