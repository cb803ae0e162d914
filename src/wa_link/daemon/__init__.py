"""Daemon subsystem: background server, client, and process management."""

from wa_link.daemon.client import DaemonClient as DaemonClient
from wa_link.daemon.process import ensure_daemon as ensure_daemon
from wa_link.daemon.process import is_daemon_running as is_daemon_running
from wa_link.daemon.protocol import Command as Command
from wa_link.daemon.protocol import Response as Response
