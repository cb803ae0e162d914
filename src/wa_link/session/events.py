"""Events published by a session connector onto the daemon's event channel."""

from dataclasses import dataclass
from enum import StrEnum

from wa_link.session.models import MessageRecord


class DisconnectReason(StrEnum):
    """Why the external session closed."""

    LOGGED_OUT = "logged_out"  # credentials revoked on the phone
    CONNECTION_REPLACED = "connection_replaced"  # another client took over the session
    TIMED_OUT = "timed_out"
    CONNECTION_CLOSED = "connection_closed"  # socket closed by the network
    CONNECTION_LOST = "connection_lost"
    RESTART_REQUIRED = "restart_required"
    BAD_SESSION = "bad_session"
    CONNECT_FAILED = "connect_failed"  # connect() itself raised
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class ConnectionOpened:
    """The session is live and authenticated as ``user``."""

    user: str


@dataclass(frozen=True, slots=True)
class ConnectionClosed:
    """The session closed for ``reason``."""

    reason: DisconnectReason


@dataclass(frozen=True, slots=True)
class MessageReceived:
    """A message was observed on the session (inbound, or our own from another device)."""

    message: MessageRecord


SessionEvent = ConnectionOpened | ConnectionClosed | MessageReceived


# Reasons worth a reconnect; anything else stops the daemon
DEFAULT_TRANSIENT_DISCONNECTS = frozenset({DisconnectReason.TIMED_OUT, DisconnectReason.CONNECTION_CLOSED})
