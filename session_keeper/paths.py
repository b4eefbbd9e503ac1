"""Central path resolution for the keeper's data directory.

Every path the keeper reads or writes is a field or property of ``KeeperPaths``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_HOME = "~/.session_keeper"
HOME_ENV_VAR = "SESSION_KEEPER_HOME"


@dataclass(frozen=True)
class KeeperPaths:
    """Resolved, immutable paths derived from ``keeper_home``."""

    keeper_home: Path

    @property
    def config_dir(self) -> Path:
        return self.keeper_home / "config"

    @property
    def config_path(self) -> Path:
        return self.config_dir / "config.json"

    @property
    def store_dir(self) -> Path:
        return self.keeper_home / "store"

    @property
    def master_key_path(self) -> Path:
        return self.keeper_home / "keys" / "master.key"

    @property
    def logs_dir(self) -> Path:
        return self.keeper_home / "logs"


def resolve_paths(keeper_home: str | Path | None = None) -> KeeperPaths:
    """Build KeeperPaths from an explicit value, ``$SESSION_KEEPER_HOME`` or the default."""
    if keeper_home is not None:
        home = Path(keeper_home).expanduser().resolve()
    else:
        home = Path(os.environ.get(HOME_ENV_VAR, DEFAULT_HOME)).expanduser().resolve()
    return KeeperPaths(keeper_home=home)
