"""Centralized application configuration."""

import sys
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

from wa_link.session.events import DEFAULT_TRANSIENT_DISCONNECTS, DisconnectReason

DEFAULT_DATA_DIR = Path.home() / ".local" / "wa-link"

# Keys accepted from config.toml, mapped to the types they must have
_TOML_KEYS: dict[str, tuple[type, ...]] = {
    "idle_timeout": (int, float),
    "reconnect_delay": (int, float),
    "transient_disconnects": (list,),
    "cache_capacity": (int,),
    "cache_flush_interval": (int,),
    "persist_cache": (bool,),
    "request_timeout": (int, float),
    "start_timeout": (int, float),
    "connector": (str,),
}


class Config(BaseModel):
    """Application-wide configuration."""

    model_config = ConfigDict(frozen=True)

    data_dir: Path = Field(description="Base directory for all application data")
    idle_timeout: float = Field(default=1800, ge=0, description="Stop the daemon after this many idle seconds (0 = never)")
    reconnect_delay: float = Field(default=5.0, gt=0, description="Wait before reconnecting after a transient disconnect")
    transient_disconnects: frozenset[DisconnectReason] = Field(
        default=DEFAULT_TRANSIENT_DISCONNECTS, description="Disconnect reasons that trigger a reconnect instead of shutdown"
    )
    cache_capacity: int = Field(default=100, ge=1, description="Messages kept per conversation")
    cache_flush_interval: int = Field(default=60, ge=1, description="Seconds between message cache snapshots")
    persist_cache: bool = Field(default=True, description="Keep the cache snapshot on disk after shutdown")
    request_timeout: float = Field(default=10.0, gt=0, description="Client wait for a daemon response in seconds")
    start_timeout: float = Field(default=5.0, gt=0, description="Client wait for a spawned daemon to become ready")
    connector: str | None = Field(default=None, description="Session connector factory as 'module:attr'")

    @computed_field(description="Optional TOML configuration file")
    @property
    def config_path(self) -> Path:
        """Optional TOML configuration file."""
        return self.data_dir / "config.toml"

    @computed_field(description="Unix domain socket for daemon")
    @property
    def daemon_sock_path(self) -> Path:
        """Unix domain socket for daemon."""
        return self.data_dir / "daemon.sock"

    @computed_field(description="Daemon PID file")
    @property
    def daemon_pid_path(self) -> Path:
        """Daemon PID file."""
        return self.data_dir / "daemon.pid"

    @computed_field(description="Daemon single-instance lock")
    @property
    def daemon_lock_path(self) -> Path:
        """Lock file held by the running daemon for its whole lifetime."""
        return self.data_dir / "daemon.lock"

    @computed_field(description="Message cache snapshot")
    @property
    def cache_path(self) -> Path:
        """Message cache snapshot."""
        return self.data_dir / "cache.json"

    @computed_field(description="Log file")
    @property
    def log_path(self) -> Path:
        """Log file."""
        return self.data_dir / "daemon.log"

    def daemon_args(self) -> list[str]:
        """Build the command line that runs the daemon, including --data-dir only when non-default."""
        args: list[str] = [sys.executable, "-m", "wa_link"]
        if self.data_dir != DEFAULT_DATA_DIR:
            args.extend(["--data-dir", str(self.data_dir)])
        args.append("daemon")
        return args

    @staticmethod
    def build(data_dir: Path | None = None) -> "Config":
        """Build a Config from defaults and optional config.toml."""
        resolved_dir = data_dir if data_dir is not None else DEFAULT_DATA_DIR
        config_path = resolved_dir / "config.toml"

        kwargs: dict[str, Any] = {"data_dir": resolved_dir}
        if config_path.is_file():
            with config_path.open("rb") as f:
                toml_data = tomllib.load(f)
            for key, types in _TOML_KEYS.items():
                value = toml_data.get(key)
                # bool is an int subclass; only accept it where a bool is expected
                if isinstance(value, types) and (bool in types or not isinstance(value, bool)):
                    kwargs[key] = value

        return Config(**kwargs)
