"""Tests for the bounded per-chat message cache."""

import json
import stat
from pathlib import Path

from wa_link.daemon.cache import MessageCache
from wa_link.session.models import MessageRecord

CHAT = "15550001111@s.whatsapp.net"
OTHER = "120363000000000000@g.us"

# Never flushed in the in-memory tests
UNUSED_PATH = Path("/nonexistent/cache.json")


def _msg(n: int, chat: str = CHAT) -> MessageRecord:
    return MessageRecord(id=f"m{n}", chat=chat, from_me=n % 2 == 0, timestamp=1_700_000_000 + n, text=f"text {n}")


class TestRecordAndRead:
    """record() / read() semantics."""

    def test_newest_first(self):
        """read() returns the most recent records first."""
        cache = MessageCache(UNUSED_PATH)
        for n in range(5):
            cache.record(_msg(n))
        assert [m.id for m in cache.read(CHAT, 3)] == ["m4", "m3", "m2"]

    def test_capacity_evicts_oldest(self):
        """Only the newest ``capacity`` records survive per chat."""
        cache = MessageCache(UNUSED_PATH, capacity=100)
        for n in range(150):
            cache.record(_msg(n))
        result = cache.read(CHAT, 1000)
        assert len(result) == 100
        assert result[0].id == "m149"
        assert result[-1].id == "m50"

    def test_chats_are_independent(self):
        """Each chat has its own buffer."""
        cache = MessageCache(UNUSED_PATH, capacity=2)
        cache.record(_msg(1, OTHER))
        for n in range(5):
            cache.record(_msg(n))
        assert [m.id for m in cache.read(OTHER, 10)] == ["m1"]
        assert sorted(cache.chats()) == sorted([CHAT, OTHER])

    def test_unknown_chat(self):
        """A chat never seen reads as empty."""
        cache = MessageCache(UNUSED_PATH)
        assert cache.read(CHAT, 10) == []

    def test_non_positive_limit(self):
        """A limit of zero returns nothing."""
        cache = MessageCache(UNUSED_PATH)
        cache.record(_msg(1))
        assert cache.read(CHAT, 0) == []

    def test_record_marks_dirty(self):
        """Recording makes the cache dirty."""
        cache = MessageCache(UNUSED_PATH)
        assert cache.dirty is False
        cache.record(_msg(1))
        assert cache.dirty is True


class TestPersistence:
    """flush() / load() / discard()."""

    def test_flush_then_load(self, tmp_path):
        """A flushed snapshot is restored by a fresh cache."""
        path = tmp_path / "cache.json"
        cache = MessageCache(path)
        for n in range(3):
            cache.record(_msg(n))
        assert cache.flush() is True
        assert cache.dirty is False

        restored = MessageCache(path)
        restored.load()
        assert restored.read(CHAT, 10) == cache.read(CHAT, 10)

    def test_flush_skipped_when_clean(self, tmp_path):
        """Nothing is written when nothing changed."""
        path = tmp_path / "cache.json"
        cache = MessageCache(path)
        assert cache.flush() is False
        assert not path.exists()

    def test_snapshot_is_owner_only(self, tmp_path):
        """The snapshot file is created with 0600 permissions."""
        path = tmp_path / "cache.json"
        cache = MessageCache(path)
        cache.record(_msg(1))
        cache.flush()
        assert stat.S_IMODE(path.stat().st_mode) == 0o600
        assert not (tmp_path / "cache.tmp").exists()

    def test_load_missing_file(self, tmp_path):
        """A missing snapshot leaves the cache empty."""
        cache = MessageCache(tmp_path / "cache.json")
        cache.load()
        assert cache.chats() == []

    def test_load_corrupt_file(self, tmp_path):
        """An unreadable snapshot is ignored."""
        path = tmp_path / "cache.json"
        path.write_text("{not json")
        cache = MessageCache(path)
        cache.load()
        assert cache.chats() == []

    def test_load_skips_bad_entries(self, tmp_path):
        """Malformed records are skipped, valid ones kept."""
        path = tmp_path / "cache.json"
        path.write_text(json.dumps({CHAT: [{"text": "no id"}, _msg(7).to_dict()], OTHER: "nope"}))
        cache = MessageCache(path)
        cache.load()
        assert [m.id for m in cache.read(CHAT, 10)] == ["m7"]
        assert cache.read(OTHER, 10) == []

    def test_load_truncates_to_capacity(self, tmp_path):
        """A snapshot larger than the capacity keeps its newest records."""
        path = tmp_path / "cache.json"
        path.write_text(json.dumps({CHAT: [_msg(n).to_dict() for n in range(10)]}))
        cache = MessageCache(path, capacity=3)
        cache.load()
        assert [m.id for m in cache.read(CHAT, 10)] == ["m9", "m8", "m7"]

    def test_discard(self, tmp_path):
        """discard() deletes the snapshot and tolerates its absence."""
        path = tmp_path / "cache.json"
        path.write_text("{}")
        cache = MessageCache(path)
        cache.discard()
        assert not path.exists()
        cache.discard()
