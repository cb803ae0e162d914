"""Process liveness, liveness-record utilities, and daemon spawning."""

import contextlib
import fcntl
import logging
import os
import signal
import socket
import subprocess  # nosec B404
import time
from pathlib import Path

from wa_link.config import Config
from wa_link.daemon.protocol import Command, decode_response, encode_command
from wa_link.errors import DaemonStartError, ProtocolError
from wa_link.session.loader import NO_CONNECTOR

logger = logging.getLogger(__name__)

# Polling parameters for ensure_daemon
_POLL_INTERVAL = 0.1


def read_pid(pid_path: Path) -> int | None:
    """Read PID from file, returning None if missing or invalid."""
    if not pid_path.exists():
        return None
    try:
        return int(pid_path.read_text().strip())
    except (ValueError, OSError):
        return None


def is_alive(pid_path: Path) -> bool:
    """Check whether the process named by the PID file exists."""
    pid = read_pid(pid_path)
    if pid is None or pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists but owned by someone else
        return True
    return True


def is_connectable(sock_path: Path) -> bool:
    """Check if the daemon socket is accepting connections."""
    try:
        with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as s:
            s.settimeout(1.0)
            s.connect(str(sock_path))
    except OSError:
        return False
    else:
        return True


def is_responsive(sock_path: Path, timeout: float = 1.0) -> bool:
    """Check that the daemon answers a ping."""
    try:
        with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as s:
            s.settimeout(timeout)
            s.connect(str(sock_path))
            s.sendall(encode_command(Command(action="ping")))
            data = s.makefile("rb").readline()
        return decode_response(data).ok
    except (OSError, ProtocolError):
        return False


def is_daemon_running(cfg: Config) -> bool:
    """Check the liveness record: the PID must be alive and the socket must accept connections."""
    return is_alive(cfg.daemon_pid_path) and is_connectable(cfg.daemon_sock_path)


def has_stale_files(cfg: Config) -> bool:
    """True when a PID or socket file exists without a live daemon behind it."""
    exists = cfg.daemon_pid_path.exists() or cfg.daemon_sock_path.exists()
    return exists and not is_daemon_running(cfg)


def acquire_daemon_lock(cfg: Config) -> int | None:
    """Take the exclusive daemon lock without blocking.

    Returns the open descriptor, which must stay open for as long as the daemon runs,
    or None when another daemon holds the lock.
    """
    fd = os.open(cfg.daemon_lock_path, os.O_RDWR | os.O_CREAT, 0o600)
    try:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except BlockingIOError:
        os.close(fd)
        return None
    except BaseException:
        os.close(fd)
        raise
    return fd


def release_daemon_lock(fd: int) -> None:
    """Release a lock taken by ``acquire_daemon_lock``."""
    with contextlib.suppress(OSError):
        fcntl.flock(fd, fcntl.LOCK_UN)
    os.close(fd)


def is_daemon_locked(cfg: Config) -> bool:
    """True when some daemon, possibly still starting, holds the lock."""
    if not cfg.daemon_lock_path.exists():
        return False
    fd = acquire_daemon_lock(cfg)
    if fd is None:
        return True
    release_daemon_lock(fd)
    return False


def cleanup_files(cfg: Config) -> None:
    """Remove PID and socket files."""
    with contextlib.suppress(OSError):
        cfg.daemon_pid_path.unlink()
    with contextlib.suppress(OSError):
        cfg.daemon_sock_path.unlink()


def remove_own_files(cfg: Config, sock_inode: int | None) -> None:
    """Remove the PID and socket files only where they still belong to this process.

    The PID file must hold our pid and the socket file must be the one we bound
    (same inode); anything else was written by another daemon and is left alone.
    """
    if read_pid(cfg.daemon_pid_path) == os.getpid():
        with contextlib.suppress(OSError):
            cfg.daemon_pid_path.unlink()
    with contextlib.suppress(OSError):
        if sock_inode is not None and cfg.daemon_sock_path.stat().st_ino == sock_inode:
            cfg.daemon_sock_path.unlink()


def clear_stale(cfg: Config) -> bool:
    """Remove a stale liveness record. Return True if anything was removed."""
    if not has_stale_files(cfg):
        return False
    logger.info("Removing stale daemon files in %s", cfg.data_dir)
    cleanup_files(cfg)
    return True


def spawn_daemon(cfg: Config) -> None:
    """Launch the daemon as a detached background process."""
    # S603: args are built from sys.executable and our own module name
    subprocess.Popen(  # noqa: S603  # nosec B603
        cfg.daemon_args(),
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        stdin=subprocess.DEVNULL,
        start_new_session=True,
    )


def stop_daemon(cfg: Config) -> bool:
    """Stop the daemon via SIGTERM, falling back to SIGKILL. Return True if a daemon was stopped."""
    pid = read_pid(cfg.daemon_pid_path)
    if pid is None:
        return False

    try:
        os.kill(pid, signal.SIGTERM)
    except ProcessLookupError:
        # Already dead, clean up stale files
        cleanup_files(cfg)
        return False

    # Poll for process exit
    deadline = time.monotonic() + 3.0
    while time.monotonic() < deadline:
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            cleanup_files(cfg)
            return True
        time.sleep(0.1)

    # Force kill
    with contextlib.suppress(ProcessLookupError):
        os.kill(pid, signal.SIGKILL)
    cleanup_files(cfg)
    return True


def wait_for_exit(cfg: Config, timeout: float = 3.0) -> bool:
    """Poll until the liveness record is gone. Return True if it disappeared in time."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if not cfg.daemon_pid_path.exists() and not cfg.daemon_sock_path.exists():
            return True
        time.sleep(_POLL_INTERVAL)
    return False


def ensure_daemon(cfg: Config) -> None:
    """Ensure the daemon is running and answering. Spawns if needed.

    Raises:
        DaemonStartError: No connector is configured, or the daemon fails to start within ``cfg.start_timeout``.

    """
    if is_daemon_running(cfg):
        return
    if cfg.connector is None:
        raise DaemonStartError(NO_CONNECTOR)

    cfg.data_dir.mkdir(parents=True, exist_ok=True)
    # A daemon holding the lock is still starting; its files are not stale
    if not is_daemon_locked(cfg):
        clear_stale(cfg)
        spawn_daemon(cfg)

    # Poll until the socket exists and answers a ping
    deadline = time.monotonic() + cfg.start_timeout
    while time.monotonic() < deadline:
        time.sleep(_POLL_INTERVAL)
        if cfg.daemon_sock_path.exists() and is_responsive(cfg.daemon_sock_path):
            return

    msg = f"Daemon failed to start within {cfg.start_timeout:g}s."
    raise DaemonStartError(msg)
