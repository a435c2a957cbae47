"""Exception hierarchy shared by the client measurement core and the server."""


class SpeedtestError(Exception):
    """Base class for every measurement failure."""


class TransportError(SpeedtestError):
    """A request or connection failed (refused, reset, timed out, non-2xx)."""


class ProtocolError(SpeedtestError):
    """A response body was missing or invalid where one was required."""


class EmptyUploadError(SpeedtestError):
    """The upload receiver was given no body."""


class SessionBusyError(SpeedtestError):
    """A measurement run was requested while another one is still active."""


def check_status(status: int, what: str) -> None:
    """Raise :class:`TransportError` unless *status* is a 2xx code."""
    if not 200 <= status < 300:
        raise TransportError(f"{what} request failed with status {status}")
