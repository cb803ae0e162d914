"""List group chats."""

from typing import Any, cast

import typer

from wa_link.app_context import use_context


def chats(
    ctx: typer.Context,
    *,
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Maximum number of chats to list"),
) -> None:
    """List group chats the session participates in."""
    app = use_context(ctx)
    resp = app.check(lambda client: client.chats(limit))
    app.out.print_chats(cast(list[dict[str, Any]], resp.data.get("chats", [])))
