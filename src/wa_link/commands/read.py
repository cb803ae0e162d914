"""Read recent messages of a chat."""

from typing import Any, cast

import typer

from wa_link.app_context import use_context


def read(
    ctx: typer.Context,
    chat: str = typer.Argument(help='Chat: phone number, JID, or "me"'),
    *,
    limit: int = typer.Option(10, "--limit", "-n", min=1, help="Number of messages"),
) -> None:
    """Read recent messages of a chat (only messages seen since the daemon started)."""
    app = use_context(ctx)
    resp = app.check(lambda client: client.read(chat, limit))
    messages = cast(list[dict[str, Any]], resp.data.get("messages", []))
    note = resp.data.get("note")
    app.out.print_messages(chat, messages, str(note) if note else None)
