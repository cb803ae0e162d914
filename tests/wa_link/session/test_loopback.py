"""Tests for the in-memory loopback connector."""

import asyncio

import pytest

from wa_link.errors import SessionError
from wa_link.session.events import ConnectionClosed, ConnectionOpened, DisconnectReason, MessageReceived
from wa_link.session.loopback import DEFAULT_USER, LoopbackConnector


class TestLoopbackConnector:
    """Event injection and outbound bookkeeping."""

    @pytest.mark.asyncio
    async def test_events(self):
        """open, deliver and drop publish the matching events."""
        events: asyncio.Queue = asyncio.Queue()
        connector = LoopbackConnector(auto_open=False)
        await connector.connect(events)
        assert connector.user is None
        connector.open()
        record = connector.deliver("1@s.whatsapp.net", "hi")
        connector.drop(DisconnectReason.TIMED_OUT)
        assert events.get_nowait() == ConnectionOpened(user=DEFAULT_USER)
        assert events.get_nowait() == MessageReceived(message=record)
        assert events.get_nowait() == ConnectionClosed(reason=DisconnectReason.TIMED_OUT)
        assert connector.user is None

    @pytest.mark.asyncio
    async def test_auto_open(self):
        """With auto_open the session is live right after connect."""
        events: asyncio.Queue = asyncio.Queue()
        connector = LoopbackConnector()
        await connector.connect(events)
        assert connector.user == DEFAULT_USER
        assert connector.connect_count == 1
        assert isinstance(events.get_nowait(), ConnectionOpened)

    @pytest.mark.asyncio
    async def test_operations_need_connection(self):
        """Outbound operations fail while closed."""
        connector = LoopbackConnector()
        with pytest.raises(SessionError, match="Connection closed"):
            await connector.send_message("1@s.whatsapp.net", "hi")

    @pytest.mark.asyncio
    async def test_unique_ids(self):
        """Every sent message gets a fresh id."""
        connector = LoopbackConnector()
        await connector.connect(asyncio.Queue())
        first = await connector.send_message("1@s.whatsapp.net", "a")
        second = await connector.send_message("1@s.whatsapp.net", "b")
        assert first != second
        assert [m.text for m in connector.sent] == ["a", "b"]

    def test_emit_before_connect(self):
        """Injecting events before connect() is a programming error."""
        with pytest.raises(RuntimeError):
            LoopbackConnector().open()
