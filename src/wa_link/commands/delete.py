"""Delete a sent message."""

import typer

from wa_link.app_context import use_context


def delete(
    ctx: typer.Context,
    chat: str = typer.Argument(help='Chat: phone number, JID, or "me"'),
    message_id: str = typer.Argument(help="ID of the message to delete"),
) -> None:
    """Delete one of your messages for everyone."""
    app = use_context(ctx)
    app.check(lambda client: client.delete(chat, message_id))
    app.out.print_deleted(message_id)
