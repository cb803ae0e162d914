"""Application context shared across CLI commands."""

from collections.abc import Callable
from dataclasses import dataclass

import typer

from wa_link.config import Config
from wa_link.daemon.client import DaemonClient
from wa_link.daemon.protocol import Response
from wa_link.errors import DaemonStartError
from wa_link.output import Output


@dataclass(frozen=True, slots=True)
class AppContext:
    """Shared application state passed through Typer context."""

    out: Output
    cfg: Config

    @property
    def client(self) -> DaemonClient:
        """Daemon client bound to this configuration."""
        return DaemonClient(self.cfg)

    def check(self, call: Callable[[DaemonClient], Response]) -> Response:
        """Run a client call, exiting with an error if the daemon fails to start or reports an error."""
        try:
            resp = call(self.client)
        except DaemonStartError as e:
            self.out.print_error_and_exit("daemon_start_failed", f"{e} Check {self.cfg.log_path} for details.")
        if not resp.ok:
            self.out.print_error_and_exit("request_failed", resp.error)
        return resp


def use_context(ctx: typer.Context) -> AppContext:
    """Extract application context from Typer context."""
    result: AppContext = ctx.obj
    return result
