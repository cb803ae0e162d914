"""Send a message."""

from pathlib import Path

import typer

from wa_link.app_context import use_context


def send(
    ctx: typer.Context,
    chat: str = typer.Argument(help='Chat: phone number, JID, or "me"'),
    message: str = typer.Argument("", help="Message text (caption when a file is attached)"),
    *,
    file: Path | None = typer.Option(None, "--file", "-f", help="Attach a file"),
    reply: str | None = typer.Option(None, "--reply", "-r", help="Reply to message ID"),
) -> None:
    """Send a message, optionally with a file or as a reply."""
    app = use_context(ctx)
    if not message and file is None:
        app.out.print_error_and_exit("invalid_arguments", "Provide a message or a file.")
    # The daemon resolves the path, so it must not depend on our working directory
    file_arg = str(file.expanduser().resolve()) if file is not None else None
    resp = app.check(lambda client: client.send_message(chat, message, file=file_arg, reply_id=reply))
    app.out.print_sent(str(resp.data.get("id", "")))
