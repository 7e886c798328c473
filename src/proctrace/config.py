"""Global configuration — XDG paths, env vars, defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def _default_data_dir() -> Path:
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg) / "proctrace"
    return Path.home() / ".local" / "share" / "proctrace"


@dataclass
class ProcTraceConfig:
    """Application-wide configuration."""

    data_dir: Path = field(default_factory=_default_data_dir)
    poll_interval: float = 0.5
    web_host: str = "127.0.0.1"
    web_port: int = 3001
    subscriber_queue_size: int = 256
    verbose: bool = False

    @property
    def db_path(self) -> Path:
        return self.data_dir / "sessions.db"

    @classmethod
    def load(cls) -> ProcTraceConfig:
        """Load config from environment variables with XDG defaults."""
        config = cls()

        env_dir = os.environ.get("PROCTRACE_DATA_DIR")
        if env_dir:
            config.data_dir = Path(env_dir)

        env_interval = os.environ.get("PROCTRACE_POLL_INTERVAL")
        if env_interval:
            config.poll_interval = float(env_interval)

        env_port = os.environ.get("PROCTRACE_WEB_PORT")
        if env_port:
            config.web_port = int(env_port)

        env_queue = os.environ.get("PROCTRACE_QUEUE_SIZE")
        if env_queue:
            config.subscriber_queue_size = int(env_queue)

        return config
