"""CLI entry point for wa-link."""

from pathlib import Path
from typing import Annotated

import typer
from mm_clikit import TyperPlus

from wa_link.app_context import AppContext
from wa_link.commands.chats import chats
from wa_link.commands.daemon import daemon
from wa_link.commands.delete import delete
from wa_link.commands.edit import edit
from wa_link.commands.react import react
from wa_link.commands.read import read
from wa_link.commands.send import send
from wa_link.commands.status import status
from wa_link.commands.stop import stop
from wa_link.config import Config
from wa_link.log import setup_logging
from wa_link.output import Output

app = TyperPlus(package_name="wa-link")


@app.callback()
def callback(
    ctx: typer.Context,
    *,
    json_output: Annotated[bool, typer.Option("--json", help="Output results as JSON.")] = False,
    data_dir: Annotated[Path | None, typer.Option("--data-dir", help="Data directory path.")] = None,
) -> None:
    """Drive a persistent WhatsApp session from the terminal."""
    cfg = Config.build(data_dir)
    cfg.data_dir.mkdir(parents=True, exist_ok=True, mode=0o700)
    setup_logging(cfg.log_path)
    ctx.obj = AppContext(out=Output(json_mode=json_output), cfg=cfg)


# Daemon
app.command(hidden=True)(daemon)
app.command(aliases=["st"])(status)
app.command()(stop)

# Messages
app.command(aliases=["c"])(chats)
app.command(aliases=["r"])(read)
app.command(aliases=["s"])(send)
app.command()(edit)
app.command()(delete)
app.command()(react)
