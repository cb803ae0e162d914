"""Asyncio Unix socket server: the daemon loop.

Owns the session (through the connection manager), the message cache and the
idle timer, and dispatches JSON-line commands from CLI clients.
"""

import asyncio
import contextlib
import logging
import os
import signal
import time

from mm_clikit import write_pid_file

from wa_link.config import Config
from wa_link.daemon.cache import EMPTY_NOTE, MessageCache
from wa_link.daemon.connection import ConnectionManager
from wa_link.daemon.idle import IdleSupervisor
from wa_link.daemon.process import acquire_daemon_lock, clear_stale, read_pid, release_daemon_lock, remove_own_files
from wa_link.daemon.protocol import MAX_LINE_BYTES, Command, Response, decode_command, encode_response
from wa_link.errors import ConnectorLoadError, InvalidRequestError, NotConnectedError, ProtocolError, WaLinkError
from wa_link.session.connector import SessionConnector
from wa_link.session.loader import load_connector

logger = logging.getLogger(__name__)

# Actions that need an open session; everything else is answered in any state
SESSION_ACTIONS = frozenset({"send", "edit", "delete", "react", "chats"})

DEFAULT_CHATS_LIMIT = 20
DEFAULT_READ_LIMIT = 10

# Delay between answering "stop" and shutting down, so the reply reaches the client first
_STOP_DELAY = 0.1


class DaemonServer:
    """Background daemon holding the messaging session open for CLI clients."""

    def __init__(self, cfg: Config, connector: SessionConnector | None = None) -> None:
        """Initialize the daemon server.

        Args:
            cfg: Application configuration.
            connector: Session connector to use; built from ``cfg.connector`` when omitted.

        """
        self._cfg = cfg
        self._cache = MessageCache(cfg.cache_path, cfg.cache_capacity)
        self._connection = ConnectionManager(
            connector if connector is not None else load_connector(cfg.connector, cfg),
            self._cache,
            reconnect_delay=cfg.reconnect_delay,
            transient_disconnects=cfg.transient_disconnects,
        )
        self._idle = IdleSupervisor(cfg.idle_timeout, self.request_shutdown)
        self._server: asyncio.AbstractServer | None = None
        self._writers: set[asyncio.StreamWriter] = set()  # open client connections, closed on shutdown
        self._stop_requested = asyncio.Event()
        self._started_at: float | None = None
        self._sock_inode: int | None = None

    @property
    def connection(self) -> ConnectionManager:
        """Connection manager driving the session."""
        return self._connection

    @property
    def cache(self) -> MessageCache:
        """Message cache."""
        return self._cache

    @property
    def uptime(self) -> float:
        """Seconds since the daemon started listening."""
        if self._started_at is None:
            return 0.0
        return time.monotonic() - self._started_at

    async def run(self) -> bool:
        """Listen and serve until shutdown.

        Returns False without touching the liveness record when another daemon
        holds the lock; True after a full start/shutdown cycle.
        """
        cfg = self._cfg
        cfg.data_dir.mkdir(parents=True, exist_ok=True)
        lock_fd = acquire_daemon_lock(cfg)
        if lock_fd is None:
            logger.info("Daemon already running (pid %s)", read_pid(cfg.daemon_pid_path))
            return False
        try:
            await self._serve()
        finally:
            release_daemon_lock(lock_fd)
        return True

    async def _serve(self) -> None:
        """Bind the socket, publish the liveness record and serve until shutdown. Runs under the daemon lock."""
        cfg = self._cfg
        clear_stale(cfg)
        self._cache.load()

        # Restrict umask before socket creation to prevent TOCTOU permission window
        old_umask = os.umask(0o077)
        try:
            self._server = await asyncio.start_unix_server(
                self._handle_client, path=str(cfg.daemon_sock_path), limit=MAX_LINE_BYTES
            )
        finally:
            os.umask(old_umask)
        cfg.daemon_sock_path.chmod(0o600)
        self._sock_inode = cfg.daemon_sock_path.stat().st_ino
        write_pid_file(cfg.daemon_pid_path)
        self._started_at = time.monotonic()
        logger.info("Daemon listening on %s (pid %d)", cfg.daemon_sock_path, os.getpid())

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self.request_shutdown)

        self._idle.reset()
        connection_task = asyncio.create_task(self._connection.run())
        flush_task = asyncio.create_task(self._flush_periodically())
        stop_task = asyncio.create_task(self._stop_requested.wait())
        try:
            done, _ = await asyncio.wait({connection_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
            if connection_task in done:
                self._log_session_end(connection_task)
        finally:
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.remove_signal_handler(sig)
            for task in (connection_task, flush_task, stop_task):
                task.cancel()
            await asyncio.gather(connection_task, flush_task, stop_task, return_exceptions=True)
            await self._shutdown()

    def request_shutdown(self) -> None:
        """Ask the daemon to shut down. Safe to call repeatedly and from signal handlers."""
        self._stop_requested.set()

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        """Serve one client connection: one response per newline-terminated command, in order."""
        self._writers.add(writer)
        try:
            while True:
                try:
                    line = await reader.readline()
                except ValueError:
                    # readline() reports a line longer than the stream limit as ValueError
                    logger.warning("Request longer than %d bytes, closing connection", MAX_LINE_BYTES)
                    writer.write(encode_response(Response.fail("Request too large")))
                    await writer.drain()
                    break
                if not line.endswith(b"\n"):
                    # EOF, possibly after an unterminated fragment
                    break
                if not line.strip():
                    continue
                resp = await self._process_line(line)
                writer.write(encode_response(resp))
                await writer.drain()
        except ConnectionError:
            logger.debug("Client went away")
        finally:
            self._writers.discard(writer)
            writer.close()
            with contextlib.suppress(ConnectionError):
                await writer.wait_closed()

    async def _process_line(self, line: bytes) -> Response:
        """Decode one command line and dispatch it."""
        try:
            command = decode_command(line)
        except ProtocolError as e:
            logger.debug("Malformed request: %r", line[:200])
            return Response.fail(str(e))

        self._idle.reset()
        logger.debug("Command: %s", command.action)
        try:
            return await self._dispatch(command)
        except Exception as e:
            logger.exception("Error handling %s", command.action)
            return Response.fail(str(e) or type(e).__name__)

    async def _dispatch(self, command: Command) -> Response:
        """Route a command to the connection manager or the cache."""
        conn = self._connection
        params = command.params
        if command.action in SESSION_ACTIONS and not conn.is_open:
            return Response.fail(str(NotConnectedError()))

        try:
            match command.action:
                case "ping":
                    return Response.success({"connected": conn.is_open})
                case "status":
                    return Response.success(
                        {
                            "connected": conn.is_open,
                            "state": conn.state.value,
                            "user": conn.user,
                            "uptime": round(self.uptime, 1),
                        }
                    )
                case "send":
                    chat = _require_str(params, "chat")
                    text = _optional_str(params, "message") or ""
                    file = _optional_str(params, "file")
                    if not text and not file:
                        return Response.fail("Missing 'message' parameter.")
                    message_id = await conn.send(chat, text, file=file, reply_id=_optional_str(params, "replyId"))
                    return Response.success({"id": message_id})
                case "edit":
                    await conn.edit(
                        _require_str(params, "chat"), _require_str(params, "messageId"), _require_str(params, "newText")
                    )
                    return Response.success()
                case "delete":
                    await conn.delete(_require_str(params, "chat"), _require_str(params, "messageId"))
                    return Response.success()
                case "react":
                    emoji = _optional_str(params, "emoji") or ""
                    await conn.react(_require_str(params, "chat"), _require_str(params, "messageId"), emoji)
                    return Response.success()
                case "chats":
                    groups = await conn.groups(_limit(params, DEFAULT_CHATS_LIMIT))
                    return Response.success({"chats": [{"id": g.id, "name": g.name} for g in groups]})
                case "read":
                    jid = conn.resolve(_require_str(params, "chat"))
                    messages = self._cache.read(jid, _limit(params, DEFAULT_READ_LIMIT))
                    data: dict[str, object] = {"messages": [m.to_dict() for m in messages]}
                    if not messages:
                        data["note"] = EMPTY_NOTE
                    return Response.success(data)
                case "stop":
                    asyncio.get_running_loop().call_later(_STOP_DELAY, self.request_shutdown)
                    return Response.success({"message": "Daemon stopping"})
                case _:
                    return Response.fail(f"Unknown action: {command.action}")
        except WaLinkError as e:
            return Response.fail(str(e))

    async def _flush_periodically(self) -> None:
        """Snapshot the message cache every ``cache_flush_interval`` seconds."""
        while True:
            await asyncio.sleep(self._cfg.cache_flush_interval)
            try:
                if self._cache.flush():
                    logger.debug("Message cache flushed")
            except OSError:
                logger.exception("Failed to write message cache")

    def _log_session_end(self, task: asyncio.Task[object]) -> None:
        """Log why the connection manager stopped."""
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Connection manager crashed, shutting down", exc_info=exc)
        else:
            logger.warning("Session ended (%s), shutting down", task.result())

    async def _shutdown(self) -> None:
        """Clean shutdown: close the session and server, persist the cache, remove our socket and PID file."""
        logger.info("Shutting down daemon.")
        self._idle.cancel()
        await self._connection.close()
        if self._server is not None:
            self._server.close()
            for writer in list(self._writers):
                writer.close()
            await self._server.wait_closed()
        self._persist_cache()
        remove_own_files(self._cfg, self._sock_inode)

    def _persist_cache(self) -> None:
        """Flush the cache on shutdown, or delete the snapshot when persistence is off."""
        if not self._cfg.persist_cache:
            self._cache.discard()
            return
        try:
            self._cache.flush()
        except OSError:
            logger.exception("Failed to write message cache")


def _require_str(params: dict[str, object], name: str) -> str:
    """Return a required string parameter (numbers are accepted and stringified).

    Raises:
        InvalidRequestError: Missing, empty or of the wrong type.

    """
    value = _optional_str(params, name)
    if not value:
        raise InvalidRequestError(f"Missing '{name}' parameter.")
    return value


def _optional_str(params: dict[str, object], name: str) -> str | None:
    """Return an optional string parameter, or None when absent or null."""
    value = params.get(name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, str | int):
        raise InvalidRequestError(f"Invalid '{name}' parameter.")
    return str(value)


def _limit(params: dict[str, object], default: int) -> int:
    """Return the ``limit`` parameter, or ``default`` when it is absent or zero."""
    value = params.get("limit")
    if isinstance(value, str) and value.isdigit():
        value = int(value)
    if value is None or value == 0:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidRequestError("Invalid 'limit' parameter.")
    return value


def run_server(cfg: Config) -> None:
    """Entry point: create server and run the asyncio event loop.

    Raises:
        ConnectorLoadError: No usable session connector is configured.

    """
    try:
        server = DaemonServer(cfg)
    except ConnectorLoadError:
        logger.exception("Daemon not started")
        raise
    asyncio.run(server.run())
