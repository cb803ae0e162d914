"""Tests for session data models."""

import pytest

from wa_link.errors import SessionError
from wa_link.session.models import Media, MediaKind, MessageRecord


class TestMessageRecord:
    """Wire shape of cached messages."""

    def test_to_dict_keys(self):
        """Field names use the wire spelling."""
        record = MessageRecord(id="A1", chat="1@s.whatsapp.net", from_me=True, timestamp=1700000000, text="hi", has_media=True)
        assert record.to_dict() == {
            "id": "A1",
            "chat": "1@s.whatsapp.net",
            "fromMe": True,
            "timestamp": 1700000000,
            "text": "hi",
            "hasMedia": True,
        }

    def test_from_dict_defaults(self):
        """Only id and chat are required."""
        record = MessageRecord.from_dict({"id": "A1", "chat": "1@s.whatsapp.net"})
        assert record.from_me is False
        assert record.timestamp == 0
        assert record.text == ""
        assert record.has_media is False

    def test_from_dict_missing_id(self):
        """A record without an id is rejected."""
        with pytest.raises(KeyError):
            MessageRecord.from_dict({"chat": "1@s.whatsapp.net"})


class TestMedia:
    """Media.from_path() kind detection."""

    @pytest.mark.parametrize(
        ("name", "kind"),
        [("a.JPG", MediaKind.IMAGE), ("b.webp", MediaKind.IMAGE), ("c.mp4", MediaKind.VIDEO), ("d.pdf", MediaKind.DOCUMENT)],
    )
    def test_kind_by_extension(self, tmp_path, name, kind):
        """The extension picks image, video or document."""
        path = tmp_path / name
        path.write_bytes(b"data")
        media = Media.from_path(path)
        assert media.kind is kind
        assert media.file_name == name

    def test_missing_file(self, tmp_path):
        """A missing file is a session error."""
        with pytest.raises(SessionError, match="File not found"):
            Media.from_path(tmp_path / "nope.png")
