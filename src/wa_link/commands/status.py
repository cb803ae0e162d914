"""Show daemon and session status."""

import typer

from wa_link.app_context import use_context
from wa_link.daemon.process import is_daemon_running


def status(ctx: typer.Context) -> None:
    """Show daemon and session status. Does not start the daemon."""
    app = use_context(ctx)

    if not is_daemon_running(app.cfg):
        app.out.print_status(running=False)
        return

    resp = app.client.status()
    if not resp.ok:
        app.out.print_error_and_exit("status_failed", f"Daemon is running but not responding: {resp.error}")
    uptime = resp.data.get("uptime")
    user = resp.data.get("user")
    state = resp.data.get("state")
    app.out.print_status(
        running=True,
        connected=bool(resp.data.get("connected")),
        state=str(state) if state else None,
        user=str(user) if user else None,
        uptime=float(uptime) if isinstance(uptime, int | float) else None,
    )
