"""Keeper configuration: pydantic models and JSON file persistence."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from session_keeper.errors import ConfigError
from session_keeper.paths import KeeperPaths

logger = logging.getLogger(__name__)

SESSION_CONFIG_KEY = "SESSION_CONFIG_KEY"
SESSION_CONFIG_NAMESPACE = "SESSION_CONFIG_FILE"
DEFAULT_SESSION_DURATION = 7 * 24 * 3600  # 7 days


class StorageConfig(BaseModel):
    """Where and how the session record is stored."""

    backend: Literal["file", "memory"] = "file"
    key: str = Field(default=SESSION_CONFIG_KEY, min_length=1)
    namespace: str = Field(default=SESSION_CONFIG_NAMESPACE, pattern=r"^[A-Za-z0-9_.-]+$")

    @field_validator("namespace")
    @classmethod
    def _namespace_not_relative(cls, v: str) -> str:
        # Namespaces name a directory under the store root and a log file.
        if v in {".", ".."}:
            raise ValueError("namespace must not be '.' or '..'")
        return v


class KeeperConfig(BaseModel):
    """Top-level configuration loaded from config.json.

    The keeper home is not configurable here: this file lives inside it, so the
    home comes from ``SESSION_KEEPER_HOME`` (see ``resolve_paths``).
    """

    log_level: str = "INFO"
    session_duration_seconds: int = Field(default=DEFAULT_SESSION_DURATION, gt=0)
    storage: StorageConfig = Field(default_factory=StorageConfig)


def deep_merge_config(
    user: dict[str, object],
    defaults: dict[str, object],
) -> tuple[dict[str, object], bool]:
    """Recursively merge *defaults* into *user*, preserving user values.

    Returns ``(merged_dict, changed)`` where *changed* is True when new keys were added.
    """
    result: dict[str, object] = dict(user)
    changed = False
    new_keys = 0
    for key, default_val in defaults.items():
        if key not in result:
            result[key] = default_val
            changed = True
            new_keys += 1
        elif isinstance(default_val, dict) and isinstance(result[key], dict):
            sub_merged, sub_changed = deep_merge_config(
                result[key],  # type: ignore[arg-type]
                default_val,
            )
            result[key] = sub_merged
            changed = changed or sub_changed
    if new_keys:
        logger.info("Config deep-merge: %d new keys added", new_keys)
    return result, changed


def _write_json(path: Path, data: dict[str, object]) -> None:
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def update_config_file(config_path: Path, **updates: object) -> None:
    """Update specific keys in config.json without overwriting other user settings."""
    data: dict[str, object] = json.loads(config_path.read_text(encoding="utf-8"))
    data.update(updates)
    _write_json(config_path, data)
    logger.info("Persisted config update: %s", ", ".join(f"{k}={v}" for k, v in updates.items()))


async def update_config_file_async(config_path: Path, **updates: object) -> None:
    """Async wrapper: update config.json without blocking the event loop."""
    import asyncio

    await asyncio.to_thread(update_config_file, config_path, **updates)


def load_config(paths: KeeperPaths) -> KeeperConfig:
    """Load, auto-create, and smart-merge the keeper config.

    On first start the Pydantic defaults are written to ``paths.config_path``.
    On every load the file is deep-merged with current defaults so new fields
    are added without destroying user settings.

    Raises:
        ConfigError: The file is not valid JSON or fails validation.
    """
    config_path = paths.config_path
    defaults = KeeperConfig().model_dump(mode="json")

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        _write_json(config_path, defaults)
        logger.info("Created default config at %s", config_path)

    try:
        user_data = json.loads(config_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        msg = f"Failed to parse config at {config_path}: {exc}"
        raise ConfigError(msg) from exc
    if not isinstance(user_data, dict):
        msg = f"Config at {config_path} must be a JSON object"
        raise ConfigError(msg)

    merged, changed = deep_merge_config(user_data, defaults)
    if changed:
        _write_json(config_path, merged)
        logger.info("Extended config with new default fields")

    try:
        return KeeperConfig.model_validate(merged)
    except ValidationError as exc:
        msg = f"Invalid config at {config_path}: {exc}"
        raise ConfigError(msg) from exc
