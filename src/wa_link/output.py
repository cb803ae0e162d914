"""Structured output for CLI and JSON modes."""

# ruff: noqa: T201  # print() is how this module produces CLI output

import json
import sys
from datetime import datetime
from typing import Any, NoReturn

import typer

# Longest message text shown in human-readable mode
_MAX_TEXT = 500


class Output:
    """Handles all CLI output in JSON or human-readable format."""

    def __init__(self, *, json_mode: bool) -> None:
        """Initialize output handler.

        Args:
            json_mode: If True, output JSON envelopes; otherwise human-readable text.

        """
        self._json_mode = json_mode

    def _success(self, data: dict[str, object], message: str) -> None:
        """Print a success result in JSON or human-readable format."""
        if self._json_mode:
            print(json.dumps({"ok": True, "data": data}))
        else:
            print(message)

    def print_error_and_exit(self, code: str, message: str) -> NoReturn:
        """Print an error in JSON or human-readable format and exit with code 1.

        Raises:
            typer.Exit: Always, with code 1.

        """
        if self._json_mode:
            print(json.dumps({"ok": False, "error": code, "message": message}))
        else:
            print(f"Error: {message}", file=sys.stderr)
        raise typer.Exit(code=1)

    # --- Messages ---

    def print_sent(self, message_id: str) -> None:
        """Print send confirmation with the new message id."""
        self._success({"id": message_id}, f"Sent! ID: {message_id}")

    def print_edited(self, message_id: str) -> None:
        """Print edit confirmation."""
        self._success({"id": message_id}, "Edited!")

    def print_deleted(self, message_id: str) -> None:
        """Print delete confirmation."""
        self._success({"id": message_id}, "Deleted!")

    def print_reacted(self, message_id: str, emoji: str) -> None:
        """Print reaction confirmation."""
        self._success({"id": message_id, "emoji": emoji}, f"Reacted with {emoji}" if emoji else "Removed reaction")

    def print_chats(self, chats: list[dict[str, Any]]) -> None:
        """Print the group list."""
        if self._json_mode:
            print(json.dumps({"ok": True, "data": {"chats": chats}}))
            return
        if not chats:
            print("No chats found.")
            return
        print(f"Chats ({len(chats)}):\n")
        for chat in chats:
            print(f"  {chat.get('name', '')}")
            print(f"    {chat.get('id', '')}\n")

    def print_messages(self, chat: str, messages: list[dict[str, Any]], note: str | None = None) -> None:
        """Print cached messages, newest first."""
        if self._json_mode:
            data: dict[str, object] = {"chat": chat, "messages": messages}
            if note:
                data["note"] = note
            print(json.dumps({"ok": True, "data": data}))
            return
        if not messages:
            print("No messages found.")
            if note:
                print(note)
            return
        for msg in messages:
            sender = "You" if msg.get("fromMe") else chat
            media = " [media]" if msg.get("hasMedia") else ""
            text = str(msg.get("text") or "(no text)")
            if len(text) > _MAX_TEXT:
                text = text[:_MAX_TEXT] + "..."
            print(f"{_format_timestamp(msg.get('timestamp'))} {sender}{media}  [{msg.get('id', '')}]")
            print(f"  {text}\n")

    # --- Daemon ---

    def print_status(
        self, *, running: bool, connected: bool = False, state: str | None = None, user: str | None = None, uptime: float | None = None
    ) -> None:
        """Print daemon and session status."""
        data: dict[str, object] = {"daemon": running, "connected": connected, "state": state, "user": user, "uptime": uptime}
        if self._json_mode:
            print(json.dumps({"ok": True, "data": data}))
            return
        if not running:
            print("Daemon: not running")
            print("Run any command to start the daemon.")
            return
        print("Daemon: running")
        print(f"Connected: {'yes' if connected else 'no'}{f' ({state})' if state and not connected else ''}")
        if user:
            print(f"User: {user}")
        if uptime is not None:
            print(f"Uptime: {round(uptime)}s")

    def print_stopped(self) -> None:
        """Print daemon stopped confirmation."""
        self._success({}, "Daemon stopped.")


def _format_timestamp(value: object) -> str:
    """Render an epoch-seconds timestamp as local date and time, or an empty string."""
    if isinstance(value, bool) or not isinstance(value, int | float) or value <= 0:
        return ""
    return datetime.fromtimestamp(value).strftime("%Y-%m-%d %H:%M")  # noqa: DTZ006
