"""React to a message."""

import typer

from wa_link.app_context import use_context


def react(
    ctx: typer.Context,
    chat: str = typer.Argument(help='Chat: phone number, JID, or "me"'),
    message_id: str = typer.Argument(help="ID of the message to react to"),
    emoji: str = typer.Argument("", help="Reaction emoji; omit to remove your reaction"),
) -> None:
    """React to a message, or remove your reaction."""
    app = use_context(ctx)
    app.check(lambda client: client.react(chat, message_id, emoji))
    app.out.print_reacted(message_id, emoji)
