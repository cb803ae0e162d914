"""Stop the daemon."""

import typer

from wa_link.app_context import use_context
from wa_link.daemon.process import cleanup_files, is_alive, is_connectable, is_daemon_locked, stop_daemon, wait_for_exit


def stop(ctx: typer.Context) -> None:
    """Stop the daemon."""
    app = use_context(ctx)

    pid_alive = is_alive(app.cfg.daemon_pid_path)
    reachable = is_connectable(app.cfg.daemon_sock_path)

    if reachable:
        # Ask politely first so the daemon closes the session and flushes its cache
        resp = app.client.stop()
        if not resp.ok or not wait_for_exit(app.cfg):
            stop_daemon(app.cfg)
    elif pid_alive:
        stop_daemon(app.cfg)
    elif not is_daemon_locked(app.cfg):
        cleanup_files(app.cfg)

    if is_alive(app.cfg.daemon_pid_path) or is_connectable(app.cfg.daemon_sock_path):
        app.out.print_error_and_exit("stop_failed", "Daemon is still running after stop attempt.")

    app.out.print_stopped()
