"""Exception hierarchy for wa-link."""


class WaLinkError(Exception):
    """Base exception for all wa-link errors."""


class NotConnectedError(WaLinkError):
    """The messaging session is not open."""

    def __init__(self, message: str = "Not connected to WhatsApp") -> None:
        """Initialize with a default message matching the wire error."""
        super().__init__(message)


class SessionError(WaLinkError):
    """The session connector rejected an operation (bad recipient, missing file, protocol failure)."""


class ProtocolError(WaLinkError):
    """Wire data could not be decoded into a Command or Response."""


class DaemonStartError(WaLinkError):
    """The daemon could not be started or did not become ready in time."""


class ConnectorLoadError(WaLinkError):
    """The configured session connector could not be imported or built."""


class InvalidRequestError(WaLinkError):
    """A command is missing a required parameter or carries one of the wrong type."""
