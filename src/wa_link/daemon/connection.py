"""Connection manager: owns the session connector and its reconnection state machine.

State flow::

    disconnected -> connecting -> open
    open -> disconnected -> (backoff) -> connecting    transient disconnect
    open -> disconnected, run() returns                terminal disconnect
    close() -> closing -> disconnected, run() returns  at the next close event

All outbound operations go through this class; nothing else holds the connector.
"""

import asyncio
import logging
import time
from collections.abc import Collection
from enum import StrEnum
from pathlib import Path

from wa_link.daemon.cache import MessageCache
from wa_link.errors import NotConnectedError, SessionError
from wa_link.session.connector import SessionConnector
from wa_link.session.events import (
    DEFAULT_TRANSIENT_DISCONNECTS,
    ConnectionClosed,
    ConnectionOpened,
    DisconnectReason,
    MessageReceived,
    SessionEvent,
)
from wa_link.session.jid import normalize_jid, resolve_chat
from wa_link.session.models import Group, Media, MessageRecord

logger = logging.getLogger(__name__)

DEFAULT_RECONNECT_DELAY = 5.0


class ConnectionState(StrEnum):
    """Lifecycle of the external session as seen by the daemon."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"


def is_transient(reason: DisconnectReason, transient: Collection[DisconnectReason] = DEFAULT_TRANSIENT_DISCONNECTS) -> bool:
    """Whether a disconnect should be retried. Reasons outside ``transient`` are terminal."""
    return reason in transient


class ConnectionManager:
    """Single owner of the external session."""

    def __init__(
        self,
        connector: SessionConnector,
        cache: MessageCache,
        *,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        transient_disconnects: Collection[DisconnectReason] = DEFAULT_TRANSIENT_DISCONNECTS,
    ) -> None:
        """Initialize the manager in the ``disconnected`` state.

        Args:
            connector: Session connector to drive.
            cache: Receives every observed and sent message.
            reconnect_delay: Seconds to wait after a transient disconnect.
            transient_disconnects: Reasons that are retried; all others stop the manager.

        """
        self._connector = connector
        self._cache = cache
        self._reconnect_delay = reconnect_delay
        self._transient = frozenset(transient_disconnects)
        self._events: asyncio.Queue[SessionEvent] = asyncio.Queue()
        self._state = ConnectionState.DISCONNECTED
        self._state_changed = asyncio.Event()
        self._own_jid: str | None = None
        self._user: str | None = None
        self._closed = False
        self.reconnect_count = 0
        self.last_disconnect: DisconnectReason | None = None

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def is_open(self) -> bool:
        """True when commands can use the session."""
        return self._state is ConnectionState.OPEN

    @property
    def user(self) -> str | None:
        """Session user id while the session is open, otherwise None."""
        return self._user

    @property
    def own_jid(self) -> str | None:
        """Own JID (device suffix stripped) from the last open; kept across disconnects for cache reads."""
        return self._own_jid

    async def run(self) -> DisconnectReason:
        """Connect and consume session events until a terminal disconnect. Return its reason."""
        if not await self._connect():
            return DisconnectReason.CONNECT_FAILED

        while True:
            event = await self._events.get()
            match event:
                case ConnectionOpened(user=user):
                    if self._closed:
                        continue
                    self._user = user
                    self._own_jid = normalize_jid(user)
                    self._set_state(ConnectionState.OPEN)
                    logger.info("Session open as %s", self._own_jid)
                case ConnectionClosed(reason=reason):
                    self.last_disconnect = reason
                    if self._closed:
                        return reason
                    self._set_state(ConnectionState.DISCONNECTED)
                    if not is_transient(reason, self._transient):
                        logger.warning("Session closed (%s), not reconnecting", reason)
                        return reason
                    logger.info("Session closed (%s), reconnecting in %ss", reason, self._reconnect_delay)
                    await asyncio.sleep(self._reconnect_delay)
                    self.reconnect_count += 1
                    if not await self._connect():
                        return DisconnectReason.CONNECT_FAILED
                case MessageReceived(message=message):
                    self._cache.record(message)

    async def close(self) -> None:
        """Close the session for good. Safe to call in any state; run() stops at the next close event."""
        self._closed = True
        self._set_state(ConnectionState.CLOSING)
        try:
            await self._connector.close()
        except Exception:
            logger.exception("Error closing session")
        finally:
            self._set_state(ConnectionState.DISCONNECTED)

    async def wait_for_state(self, state: ConnectionState) -> None:
        """Block until the manager reaches ``state``."""
        while self._state is not state:
            changed = self._state_changed
            await changed.wait()

    # --- Outbound operations ---

    async def send(self, chat: str, text: str, *, file: str | None = None, reply_id: str | None = None) -> str:
        """Send a message (optionally with a file) and return its id.

        Raises:
            NotConnectedError: The session is not open.
            SessionError: Bad chat, missing file, or the connector rejected the message.

        """
        self._require_open()
        jid = self.resolve(chat)
        media = Media.from_path(Path(file).expanduser()) if file else None
        message_id = await self._connector.send_message(jid, text, media=media, reply_to=reply_id)
        self._cache.record(
            MessageRecord(
                id=message_id, chat=jid, from_me=True, timestamp=int(time.time()), text=text, has_media=media is not None
            )
        )
        return message_id

    async def edit(self, chat: str, message_id: str, text: str) -> None:
        """Edit one of our messages."""
        self._require_open()
        await self._connector.edit_message(self.resolve(chat), message_id, text)

    async def delete(self, chat: str, message_id: str) -> None:
        """Delete one of our messages for everyone."""
        self._require_open()
        await self._connector.delete_message(self.resolve(chat), message_id)

    async def react(self, chat: str, message_id: str, emoji: str) -> None:
        """React to a message; an empty emoji removes the reaction."""
        self._require_open()
        await self._connector.react(self.resolve(chat), message_id, emoji)

    async def groups(self, limit: int) -> list[Group]:
        """Return up to ``limit`` groups the session participates in."""
        self._require_open()
        groups = await self._connector.list_groups()
        return groups[: max(limit, 0)]

    def resolve(self, chat: str) -> str:
        """Resolve a chat argument to a JID using the session's own JID.

        Raises:
            NotConnectedError: ``me`` was requested before the session ever opened.
            SessionError: The chat cannot be turned into a JID.

        """
        try:
            return resolve_chat(chat, self._own_jid)
        except ValueError as e:
            if chat == "me":
                raise NotConnectedError from None
            raise SessionError(str(e)) from None

    # --- Private helpers ---

    async def _connect(self) -> bool:
        """Ask the connector to (re)connect. Return False if it failed outright."""
        self._set_state(ConnectionState.CONNECTING)
        try:
            await self._connector.connect(self._events)
        except Exception:
            logger.exception("Session connect failed")
            self.last_disconnect = DisconnectReason.CONNECT_FAILED
            self._set_state(ConnectionState.DISCONNECTED)
            return False
        return True

    def _require_open(self) -> None:
        if self._state is not ConnectionState.OPEN:
            raise NotConnectedError

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        logger.debug("Connection state %s -> %s", self._state, state)
        self._state = state
        if state is not ConnectionState.OPEN:
            self._user = None
        self._state_changed.set()
        self._state_changed = asyncio.Event()
