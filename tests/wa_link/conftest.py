"""Shared fixtures: short-path config, loopback connector, and an in-process daemon runner."""

import asyncio
import contextlib
import os
import shutil
import tempfile
import time
from collections.abc import AsyncIterator, Callable, Iterator
from pathlib import Path

import pytest

from wa_link.config import Config
from wa_link.daemon.process import read_pid
from wa_link.daemon.server import DaemonServer
from wa_link.session.loopback import LoopbackConnector

LOOPBACK_CONNECTOR = "wa_link.session.loopback:create"

ServeFactory = Callable[..., contextlib.AbstractAsyncContextManager[tuple[DaemonServer, "asyncio.Task[bool]"]]]


@pytest.fixture
def data_dir() -> Iterator[Path]:
    """Short data directory: Unix socket paths are limited to ~100 bytes."""
    path = Path(tempfile.mkdtemp(prefix="wl-", dir="/tmp"))
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def cfg(data_dir: Path) -> Config:
    """Config using the loopback connector, with timers that stay out of the way unless a test turns them on."""
    return Config(
        data_dir=data_dir,
        idle_timeout=0,
        reconnect_delay=0.05,
        cache_flush_interval=3600,
        request_timeout=2.0,
        connector=LOOPBACK_CONNECTOR,
    )


@pytest.fixture
def connector() -> LoopbackConnector:
    """Loopback connector that opens as soon as the daemon connects."""
    return LoopbackConnector()


async def wait_until(predicate: Callable[[], bool], timeout: float = 3.0) -> None:
    """Poll ``predicate`` on the event loop until it holds."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            msg = "condition not met in time"
            raise AssertionError(msg)
        await asyncio.sleep(0.01)


@pytest.fixture
def serve(cfg: Config, connector: LoopbackConnector) -> ServeFactory:
    """Run a DaemonServer as a task on the test's event loop until the block exits."""

    @contextlib.asynccontextmanager
    async def _serve(
        server_cfg: Config | None = None, server_connector: LoopbackConnector | None = None
    ) -> AsyncIterator[tuple[DaemonServer, asyncio.Task[bool]]]:
        run_cfg = server_cfg or cfg
        server = DaemonServer(run_cfg, server_connector or connector)
        task = asyncio.create_task(server.run())
        await wait_until(lambda: task.done() or read_pid(run_cfg.daemon_pid_path) == os.getpid())
        try:
            yield server, task
        finally:
            server.request_shutdown()
            await asyncio.wait_for(task, 5)

    return _serve
