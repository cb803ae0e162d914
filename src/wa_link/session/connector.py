"""Abstract interface over the messaging library that holds the external session."""

import asyncio
from abc import ABC, abstractmethod

from wa_link.session.events import SessionEvent
from wa_link.session.models import Group, Media


class SessionConnector(ABC):
    """One external messaging session.

    ``connect`` starts the session and must report its progress by putting
    events on the given queue: ``ConnectionOpened`` once the session is live,
    ``ConnectionClosed`` whenever it drops, ``MessageReceived`` for every
    observed message. Outbound operations raise ``SessionError`` when the
    remote side rejects them.
    """

    @property
    @abstractmethod
    def user(self) -> str | None:
        """Session user id as reported by the service, or None before the session opens."""
        ...

    @abstractmethod
    async def connect(self, events: asyncio.Queue[SessionEvent]) -> None:
        """Start (or restart) the session and publish its events onto ``events``."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """End the session. Must be safe to call when not connected."""
        ...

    @abstractmethod
    async def send_message(self, jid: str, text: str, *, media: Media | None = None, reply_to: str | None = None) -> str:
        """Send a text (or a media file captioned with ``text``) and return the new message id."""
        ...

    @abstractmethod
    async def edit_message(self, jid: str, message_id: str, text: str) -> None:
        """Replace the text of one of our own messages."""
        ...

    @abstractmethod
    async def delete_message(self, jid: str, message_id: str) -> None:
        """Delete one of our own messages for everyone."""
        ...

    @abstractmethod
    async def react(self, jid: str, message_id: str, emoji: str) -> None:
        """React to a message; an empty ``emoji`` removes our reaction."""
        ...

    @abstractmethod
    async def list_groups(self) -> list[Group]:
        """Return the groups the session participates in."""
        ...
