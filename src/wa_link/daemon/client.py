"""Synchronous client for CLI → daemon communication."""

import socket
import time

from wa_link.config import Config
from wa_link.daemon.process import ensure_daemon
from wa_link.daemon.protocol import Command, Response, decode_response, encode_command
from wa_link.errors import ProtocolError

# Read buffer size
_BUFSIZE = 65536


def _recv_line(s: socket.socket, deadline: float) -> bytes:
    """Read from socket until the first newline (protocol framing delimiter) or connection close.

    Raises:
        TimeoutError: ``deadline`` (a ``time.monotonic`` value) passes before the line is complete.

    """
    chunks: list[bytes] = []
    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise TimeoutError
        s.settimeout(remaining)
        chunk = s.recv(_BUFSIZE)
        if not chunk:
            break
        chunks.append(chunk)
        if b"\n" in chunk:
            break
    line, _, _ = b"".join(chunks).partition(b"\n")
    return line


class DaemonClient:
    """Synchronous client that talks to the daemon over a Unix socket.

    Every call opens one connection, sends one command, reads one response
    and closes. Transport problems come back as error responses rather than
    exceptions, so callers only ever deal with ``Response``.
    """

    def __init__(self, cfg: Config) -> None:
        """Initialize client with configuration.

        Args:
            cfg: Application configuration (provides socket path and timeouts).

        """
        self._cfg = cfg

    def send(self, command: Command) -> Response:
        """Send a command to a running daemon and return the response.

        The whole exchange, not each socket read, is bounded by ``request_timeout``.
        """
        deadline = time.monotonic() + self._cfg.request_timeout
        try:
            with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as s:
                s.settimeout(self._cfg.request_timeout)
                s.connect(str(self._cfg.daemon_sock_path))
                s.sendall(encode_command(command))
                data = _recv_line(s, deadline)
        except TimeoutError:
            return Response.fail("Timeout waiting for daemon response")
        except (FileNotFoundError, ConnectionRefusedError):
            return Response.fail("Daemon is not running")
        except OSError as e:
            return Response.fail(f"Daemon connection failed: {e}")

        if not data.strip():
            return Response.fail("Connection closed")
        try:
            return decode_response(data)
        except ProtocolError as e:
            return Response.fail(str(e))

    def execute(self, command: Command) -> Response:
        """Start the daemon if needed, then send the command.

        Raises:
            DaemonStartError: The daemon could not be started.

        """
        ensure_daemon(self._cfg)
        return self.send(command)

    # --- Convenience methods ---

    def ping(self) -> Response:
        """Check that the daemon answers, without starting it."""
        return self.send(Command("ping"))

    def status(self) -> Response:
        """Query daemon and session status, without starting the daemon."""
        return self.send(Command("status"))

    def stop(self) -> Response:
        """Ask the daemon to shut down."""
        return self.send(Command("stop"))

    def send_message(self, chat: str, message: str, *, file: str | None = None, reply_id: str | None = None) -> Response:
        """Send a message, optionally with an attached file or as a reply."""
        params: dict[str, object] = {"chat": chat, "message": message}
        if file:
            params["file"] = file
        if reply_id:
            params["replyId"] = reply_id
        return self.execute(Command("send", params))

    def edit(self, chat: str, message_id: str, new_text: str) -> Response:
        """Edit one of our messages."""
        return self.execute(Command("edit", {"chat": chat, "messageId": message_id, "newText": new_text}))

    def delete(self, chat: str, message_id: str) -> Response:
        """Delete one of our messages for everyone."""
        return self.execute(Command("delete", {"chat": chat, "messageId": message_id}))

    def react(self, chat: str, message_id: str, emoji: str = "") -> Response:
        """React to a message; an empty emoji removes the reaction."""
        return self.execute(Command("react", {"chat": chat, "messageId": message_id, "emoji": emoji}))

    def chats(self, limit: int) -> Response:
        """List groups."""
        return self.execute(Command("chats", {"limit": limit}))

    def read(self, chat: str, limit: int) -> Response:
        """Read recently cached messages of a chat."""
        return self.execute(Command("read", {"chat": chat, "limit": limit}))
