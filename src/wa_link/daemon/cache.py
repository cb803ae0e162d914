"""Bounded in-memory cache of recently observed messages, snapshotted to disk.

The cache only sees messages while the daemon runs. It answers "recent
messages" queries without a history replay and is not an authoritative store:
losing the delta since the last flush is acceptable.
"""

import contextlib
import json
import logging
import os
from collections import deque
from pathlib import Path

from wa_link.session.models import MessageRecord

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100

EMPTY_NOTE = "No messages cached yet. Only messages seen since the daemon started are available."


class MessageCache:
    """Per-conversation ring buffers of message records."""

    def __init__(self, path: Path, capacity: int = DEFAULT_CAPACITY) -> None:
        """Initialize an empty cache.

        Args:
            path: Snapshot file.
            capacity: Maximum records kept per conversation; the oldest is evicted first.

        """
        self._path = path
        self._capacity = capacity
        self._chats: dict[str, deque[MessageRecord]] = {}
        self._dirty = False

    @property
    def capacity(self) -> int:
        """Maximum records kept per conversation."""
        return self._capacity

    @property
    def dirty(self) -> bool:
        """True when records were added since the last load or flush."""
        return self._dirty

    def chats(self) -> list[str]:
        """Conversation ids with at least one cached record."""
        return list(self._chats)

    def record(self, message: MessageRecord) -> None:
        """Append a record to its conversation, evicting the oldest beyond capacity."""
        self._buffer(message.chat).append(message)
        self._dirty = True

    def read(self, chat: str, limit: int) -> list[MessageRecord]:
        """Return up to ``limit`` most recent records for ``chat``, newest first."""
        if limit <= 0:
            return []
        buffer = self._chats.get(chat)
        if not buffer:
            return []
        result: list[MessageRecord] = []
        for message in reversed(buffer):
            if len(result) >= limit:
                break
            result.append(message)
        return result

    # --- Persistence ---

    def load(self) -> None:
        """Replace the contents with the on-disk snapshot, if any.

        A missing snapshot leaves the cache empty; a corrupt one is logged and ignored.
        """
        self._chats.clear()
        self._dirty = False
        if not self._path.exists():
            return
        try:
            snapshot = json.loads(self._path.read_text())
        except (OSError, json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Ignoring unreadable cache snapshot %s", self._path, exc_info=True)
            return
        if not isinstance(snapshot, dict):
            logger.warning("Ignoring cache snapshot %s: not a JSON object", self._path)
            return

        loaded = 0
        for chat, items in snapshot.items():
            if not isinstance(items, list):
                continue
            buffer = self._buffer(str(chat))
            for item in items[-self._capacity :]:
                try:
                    buffer.append(MessageRecord.from_dict(item))
                except (KeyError, TypeError, ValueError, AttributeError):
                    continue
                loaded += 1
        logger.info("Loaded %d cached messages across %d chats", loaded, len(self._chats))

    def flush(self) -> bool:
        """Write the whole cache to disk atomically if it changed. Return True if written."""
        if not self._dirty:
            return False
        snapshot = {chat: [m.to_dict() for m in buffer] for chat, buffer in self._chats.items()}
        data = json.dumps(snapshot).encode()
        tmp_path = self._path.with_suffix(".tmp")
        # Owner-only regardless of umask: message text is private
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        try:
            os.write(fd, data)
        finally:
            os.close(fd)
        tmp_path.replace(self._path)
        self._dirty = False
        return True

    def discard(self) -> None:
        """Delete the on-disk snapshot."""
        with contextlib.suppress(OSError):
            self._path.unlink()

    def _buffer(self, chat: str) -> deque[MessageRecord]:
        buffer = self._chats.get(chat)
        if buffer is None:
            buffer = deque(maxlen=self._capacity)
            self._chats[chat] = buffer
        return buffer
