"""Data models shared by the session connector, the daemon and the message cache."""

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any

from wa_link.errors import SessionError

_IMAGE_SUFFIXES = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp"})
_VIDEO_SUFFIXES = frozenset({".mp4", ".mov", ".avi"})


@dataclass(frozen=True, slots=True)
class MessageRecord:
    """One observed message as kept in the message cache."""

    id: str
    chat: str  # normalized JID of the conversation
    from_me: bool
    timestamp: int  # epoch seconds
    text: str
    has_media: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire / snapshot shape."""
        return {
            "id": self.id,
            "chat": self.chat,
            "fromMe": self.from_me,
            "timestamp": self.timestamp,
            "text": self.text,
            "hasMedia": self.has_media,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "MessageRecord":
        """Deserialize from the wire / snapshot shape.

        Raises:
            KeyError: A required field is missing.

        """
        return MessageRecord(
            id=str(data["id"]),
            chat=str(data["chat"]),
            from_me=bool(data.get("fromMe", False)),
            timestamp=int(data.get("timestamp", 0)),
            text=str(data.get("text", "")),
            has_media=bool(data.get("hasMedia", False)),
        )


@dataclass(frozen=True, slots=True)
class Group:
    """A group conversation the session participates in."""

    id: str
    name: str


class MediaKind(StrEnum):
    """How an attached file is sent."""

    IMAGE = "image"
    VIDEO = "video"
    DOCUMENT = "document"


@dataclass(frozen=True, slots=True)
class Media:
    """A local file attached to an outgoing message."""

    path: Path
    kind: MediaKind

    @property
    def file_name(self) -> str:
        """File name shown to the recipient for documents."""
        return self.path.name

    @staticmethod
    def from_path(path: Path) -> "Media":
        """Build a Media attachment, choosing the kind by file extension.

        Raises:
            SessionError: The file does not exist.

        """
        if not path.is_file():
            raise SessionError(f"File not found: {path}")
        suffix = path.suffix.lower()
        if suffix in _IMAGE_SUFFIXES:
            kind = MediaKind.IMAGE
        elif suffix in _VIDEO_SUFFIXES:
            kind = MediaKind.VIDEO
        else:
            kind = MediaKind.DOCUMENT
        return Media(path=path, kind=kind)
