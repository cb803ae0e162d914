"""Tests for the synchronous daemon client against scripted sockets."""

import asyncio
import contextlib
import json
from collections.abc import AsyncIterator, Awaitable, Callable

import pytest

from wa_link.daemon import client as client_module
from wa_link.daemon.client import DaemonClient
from wa_link.daemon.protocol import Command
from wa_link.errors import DaemonStartError

Handler = Callable[[asyncio.StreamReader, asyncio.StreamWriter], Awaitable[None]]


@contextlib.asynccontextmanager
async def _fake_daemon(cfg, handler: Handler) -> AsyncIterator[None]:
    server = await asyncio.start_unix_server(handler, path=str(cfg.daemon_sock_path))
    try:
        yield
    finally:
        server.close()
        await server.wait_closed()


def _replying(reply: bytes, received: list[dict] | None = None) -> Handler:
    async def handler(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        line = await reader.readline()
        if received is not None:
            received.append(json.loads(line))
        writer.write(reply)
        await writer.drain()
        writer.close()

    return handler


class TestTransportErrors:
    """Transport failures come back as error responses."""

    def test_not_running(self, cfg):
        """No socket means no daemon."""
        resp = DaemonClient(cfg).ping()
        assert resp.ok is False
        assert resp.error == "Daemon is not running"

    @pytest.mark.asyncio
    async def test_invalid_reply(self, cfg):
        """A reply that is not a JSON object is reported."""
        async with _fake_daemon(cfg, _replying(b"garbage\n")):
            resp = await asyncio.to_thread(DaemonClient(cfg).ping)
        assert resp.error == "Invalid response from daemon"

    @pytest.mark.asyncio
    async def test_closed_without_reply(self, cfg):
        """A connection closed before any reply is reported."""
        async with _fake_daemon(cfg, _replying(b"")):
            resp = await asyncio.to_thread(DaemonClient(cfg).ping)
        assert resp.error == "Connection closed"

    @pytest.mark.asyncio
    async def test_timeout(self, cfg):
        """A daemon that never answers times out."""

        async def silent(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
            await reader.read()
            writer.close()

        impatient = cfg.model_copy(update={"request_timeout": 0.2})
        async with _fake_daemon(cfg, silent):
            resp = await asyncio.to_thread(DaemonClient(impatient).ping)
        assert resp.error == "Timeout waiting for daemon response"

    @pytest.mark.asyncio
    async def test_timeout_bounds_whole_reply(self, cfg):
        """A reply trickling in a byte at a time still times out."""

        async def trickle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
            await reader.readline()
            with contextlib.suppress(ConnectionError):
                writer.write(b"{")
                for _ in range(50):
                    if writer.is_closing():
                        break
                    await asyncio.sleep(0.1)
                    writer.write(b" ")
                    await writer.drain()
            writer.close()

        impatient = cfg.model_copy(update={"request_timeout": 0.3})
        async with _fake_daemon(cfg, trickle):
            resp = await asyncio.to_thread(DaemonClient(impatient).ping)
        assert resp.error == "Timeout waiting for daemon response"


class TestCommands:
    """Commands on the wire and responses off it."""

    @pytest.mark.asyncio
    async def test_success_and_error_replies(self, cfg):
        """Result fields and error text are decoded."""
        async with _fake_daemon(cfg, _replying(b'{"ok": true, "connected": false}\n')):
            resp = await asyncio.to_thread(DaemonClient(cfg).send, Command("ping"))
        assert resp.ok is True
        assert resp.data == {"connected": False}

        async with _fake_daemon(cfg, _replying(b'{"error": "Not connected to WhatsApp"}\n')):
            resp = await asyncio.to_thread(DaemonClient(cfg).send, Command("chats"))
        assert resp.ok is False
        assert resp.error == "Not connected to WhatsApp"

    @pytest.mark.asyncio
    async def test_send_message_params(self, cfg, monkeypatch):
        """Optional send parameters are only put on the wire when given."""
        monkeypatch.setattr(client_module, "ensure_daemon", lambda _cfg: None)
        received: list[dict] = []
        client = DaemonClient(cfg)
        async with _fake_daemon(cfg, _replying(b'{"ok": true, "id": "X"}\n', received)):
            await asyncio.to_thread(client.send_message, "me", "hi")
            await asyncio.to_thread(client.send_message, "me", "", file="/tmp/a.png", reply_id="R1")
        assert received == [
            {"action": "send", "chat": "me", "message": "hi"},
            {"action": "send", "chat": "me", "message": "", "file": "/tmp/a.png", "replyId": "R1"},
        ]

    @pytest.mark.asyncio
    async def test_read_params(self, cfg, monkeypatch):
        """read carries the chat and limit."""
        monkeypatch.setattr(client_module, "ensure_daemon", lambda _cfg: None)
        received: list[dict] = []
        async with _fake_daemon(cfg, _replying(b'{"ok": true, "messages": []}\n', received)):
            resp = await asyncio.to_thread(DaemonClient(cfg).read, "me", 3)
        assert received == [{"action": "read", "chat": "me", "limit": 3}]
        assert resp.data == {"messages": []}

    def test_execute_start_failure(self, cfg, monkeypatch):
        """execute() propagates a failed daemon start."""

        def fail(_cfg):
            raise DaemonStartError("Daemon failed to start within 5s.")

        monkeypatch.setattr(client_module, "ensure_daemon", fail)
        with pytest.raises(DaemonStartError):
            DaemonClient(cfg).chats(5)
