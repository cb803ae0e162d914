"""Edit a sent message."""

import typer

from wa_link.app_context import use_context


def edit(
    ctx: typer.Context,
    chat: str = typer.Argument(help='Chat: phone number, JID, or "me"'),
    message_id: str = typer.Argument(help="ID of the message to edit"),
    new_text: str = typer.Argument(help="Replacement text"),
) -> None:
    """Edit one of your messages."""
    app = use_context(ctx)
    app.check(lambda client: client.edit(chat, message_id, new_text))
    app.out.print_edited(message_id)
