"""Command/Response protocol for CLI-daemon communication.

JSON over a Unix socket with newline framing. Each message is one JSON line,
action parameters sit next to the action name.

Command:  {"action": "send", "chat": "me", "message": "hello"}
Response: {"ok": true, "id": "3EB0C431C26A1916F0B1"}
Error:    {"error": "Not connected to WhatsApp"}
"""

import json
from dataclasses import dataclass, field

from wa_link.errors import ProtocolError

# Longest accepted line, in bytes
MAX_LINE_BYTES = 1024 * 1024

INVALID_JSON = "Invalid JSON"


@dataclass(frozen=True)
class Command:
    """Daemon command: an action name with its parameters."""

    action: str
    params: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class Response:
    """Daemon response: either a success with result fields or an error message."""

    ok: bool
    data: dict[str, object] = field(default_factory=dict)
    error: str = ""

    @staticmethod
    def success(data: dict[str, object] | None = None) -> "Response":
        """Build a success response."""
        return Response(ok=True, data=data or {})

    @staticmethod
    def fail(error: str) -> "Response":
        """Build an error response."""
        return Response(ok=False, error=error)


def encode_command(cmd: Command) -> bytes:
    """Serialize a Command to a newline-terminated JSON bytes line."""
    return json.dumps({**cmd.params, "action": cmd.action}).encode() + b"\n"


def decode_command(data: bytes) -> Command:
    """Deserialize a JSON bytes line into a Command.

    Raises:
        ProtocolError: Not JSON, not an object, or no string ``action``.

    """
    try:
        obj = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ProtocolError(INVALID_JSON) from None
    if not isinstance(obj, dict) or not isinstance(obj.get("action"), str):
        raise ProtocolError(INVALID_JSON)
    action = obj.pop("action")
    return Command(action=action, params=obj)


def encode_response(resp: Response) -> bytes:
    """Serialize a Response to a newline-terminated JSON bytes line."""
    payload: dict[str, object] = {"ok": True, **resp.data} if resp.ok else {"error": resp.error}
    return json.dumps(payload).encode() + b"\n"


def decode_response(data: bytes) -> Response:
    """Deserialize a JSON bytes line into a Response.

    Raises:
        ProtocolError: Not a JSON object.

    """
    try:
        obj = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ProtocolError("Invalid response from daemon") from None
    if not isinstance(obj, dict):
        raise ProtocolError("Invalid response from daemon")
    if "error" in obj:
        return Response.fail(str(obj["error"]))
    ok = bool(obj.pop("ok", False))
    return Response(ok=ok, data=obj)
