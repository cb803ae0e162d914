"""Allow ``python -m wa_link``; the daemon is spawned this way."""

from wa_link.cli import app

app()
