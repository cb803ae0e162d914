"""In-process session connector that answers locally without a network.

Selected explicitly for development (``connector = "wa_link.session.loopback:create"``)
and used by the test suite. The ``open``, ``drop`` and ``deliver`` methods
inject session events the way a real messaging library would.
"""

import asyncio
import itertools
import logging
import time

from wa_link.config import Config
from wa_link.errors import SessionError
from wa_link.session.connector import SessionConnector
from wa_link.session.events import ConnectionClosed, ConnectionOpened, DisconnectReason, MessageReceived, SessionEvent
from wa_link.session.jid import normalize_jid
from wa_link.session.models import Group, Media, MessageRecord

logger = logging.getLogger(__name__)

DEFAULT_USER = "10000000000:1@s.whatsapp.net"


class LoopbackConnector(SessionConnector):
    """Session connector that keeps everything in memory."""

    def __init__(self, user: str = DEFAULT_USER, *, auto_open: bool = True, groups: list[Group] | None = None) -> None:
        """Initialize the loopback session.

        Args:
            user: Session user id reported on open (may carry a device suffix).
            auto_open: Report the session as open as soon as ``connect`` is called.
            groups: Groups returned by ``list_groups``.

        """
        self._user_id = user
        self._auto_open = auto_open
        self._groups = list(groups or [])
        self._events: asyncio.Queue[SessionEvent] | None = None
        self._connected = False
        self._ids = itertools.count(1)
        self.connect_count = 0
        self.sent: list[MessageRecord] = []
        self.edits: list[tuple[str, str, str]] = []
        self.deletes: list[tuple[str, str]] = []
        self.reactions: list[tuple[str, str, str]] = []

    @property
    def user(self) -> str | None:
        """Session user id while connected."""
        return self._user_id if self._connected else None

    async def connect(self, events: asyncio.Queue[SessionEvent]) -> None:
        """Attach to the event channel and open immediately when ``auto_open`` is set."""
        self._events = events
        self.connect_count += 1
        logger.debug("Loopback connect #%d", self.connect_count)
        if self._auto_open:
            self.open()

    async def close(self) -> None:
        """Mark the session closed."""
        self._connected = False

    # --- Event injection ---

    def open(self) -> None:
        """Report the session as live."""
        self._connected = True
        self._emit(ConnectionOpened(user=self._user_id))

    def drop(self, reason: DisconnectReason) -> None:
        """Report the session as closed for ``reason``."""
        self._connected = False
        self._emit(ConnectionClosed(reason=reason))

    def deliver(self, chat: str, text: str, *, from_me: bool = False, has_media: bool = False) -> MessageRecord:
        """Report an observed message in ``chat`` and return it."""
        record = MessageRecord(
            id=self._new_id(), chat=chat, from_me=from_me, timestamp=int(time.time()), text=text, has_media=has_media
        )
        self._emit(MessageReceived(message=record))
        return record

    # --- Outbound operations ---

    async def send_message(self, jid: str, text: str, *, media: Media | None = None, reply_to: str | None = None) -> str:
        """Record the message and return a fresh id."""
        self._require_connected()
        message_id = self._new_id()
        self.sent.append(
            MessageRecord(
                id=message_id, chat=jid, from_me=True, timestamp=int(time.time()), text=text, has_media=media is not None
            )
        )
        return message_id

    async def edit_message(self, jid: str, message_id: str, text: str) -> None:
        """Record the edit."""
        self._require_connected()
        self.edits.append((jid, message_id, text))

    async def delete_message(self, jid: str, message_id: str) -> None:
        """Record the deletion."""
        self._require_connected()
        self.deletes.append((jid, message_id))

    async def react(self, jid: str, message_id: str, emoji: str) -> None:
        """Record the reaction."""
        self._require_connected()
        self.reactions.append((jid, message_id, emoji))

    async def list_groups(self) -> list[Group]:
        """Return the configured groups."""
        self._require_connected()
        return list(self._groups)

    @property
    def own_jid(self) -> str:
        """Own JID without the device suffix."""
        return normalize_jid(self._user_id)

    def _new_id(self) -> str:
        return f"LB{next(self._ids):010X}"

    def _require_connected(self) -> None:
        if not self._connected:
            raise SessionError("Connection closed")

    def _emit(self, event: SessionEvent) -> None:
        if self._events is None:
            msg = "connect() has not been called."
            raise RuntimeError(msg)
        self._events.put_nowait(event)


def create(cfg: Config) -> LoopbackConnector:  # noqa: ARG001
    """Connector factory for ``connector = "wa_link.session.loopback:create"``."""
    return LoopbackConnector()
