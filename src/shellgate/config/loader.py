"""Server configuration loading.

Looks for the configuration file in:
    1. An explicit path
    2. ./shellgate.json, ./shellgate.yaml, ./shellgate.yml
    3. ~/.shellgate/config.json

The file is merged over the built-in defaults; when no file is found the
defaults are used as is.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pydantic
import yaml

from shellgate.config.defaults import default_server_config
from shellgate.config.models import (
    GlobalConfig,
    ServerConfig,
    ShellConfig,
    ShellOverrides,
)
from shellgate.errors import ConfigError
from shellgate.logging import Loggers
from shellgate.validation.paths import is_path_allowed, normalize_to_canonical_form

if TYPE_CHECKING:
    from shellgate.shells.registry import ShellRegistry

logger = Loggers.config()

CONFIG_SEARCH_PATHS = (
    Path("shellgate.json"),
    Path("shellgate.yaml"),
    Path("shellgate.yml"),
    Path("~/.shellgate/config.json"),
)

LEGACY_WSL_KEY = "includeDefaultWSL"


def find_config_file(path: str | Path | None = None) -> Path | None:
    """Locate the configuration file.

    Raises:
        ConfigError: ``path`` was given but does not exist.
    """
    if path is not None:
        explicit = Path(path).expanduser()
        if not explicit.is_file():
            raise ConfigError(f"Config file not found: {explicit}", details={"path": str(explicit)})
        return explicit

    for candidate in CONFIG_SEARCH_PATHS:
        candidate = candidate.expanduser()
        if candidate.is_file():
            return candidate
    return None


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse a JSON or YAML configuration file into a dictionary."""
    try:
        with open(path, encoding="utf-8") as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}", details={"path": str(path)}) from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping", details={"path": str(path)})
    return data


def _find_legacy_keys(data: Any, location: str = "") -> list[str]:
    found = []
    if isinstance(data, dict):
        for key, value in data.items():
            where = f"{location}.{key}" if location else str(key)
            if key == LEGACY_WSL_KEY:
                found.append(where)
            found.extend(_find_legacy_keys(value, where))
    return found


def parse_config(data: dict[str, Any]) -> ServerConfig:
    """Validate a raw configuration mapping.

    Raises:
        ConfigError: The mapping does not match the configuration schema.
    """
    for location in _find_legacy_keys(data):
        logger.warning("deprecated_option_ignored", option=LEGACY_WSL_KEY, location=location)
    try:
        return ServerConfig.model_validate(data)
    except pydantic.ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}", details={"errors": e.errors()}) from e


def _set_values(model: pydantic.BaseModel) -> dict[str, Any]:
    return {name: getattr(model, name) for name in model.model_fields_set}


def _merge_global(default: GlobalConfig, user: GlobalConfig) -> GlobalConfig:
    update = {}
    for section in ("security", "restrictions", "paths", "logging"):
        if section not in user.model_fields_set:
            continue
        base = getattr(default, section)
        update[section] = base.model_copy(update=_set_values(getattr(user, section)))
    return default.model_copy(update=update)


def _merge_overrides(default: ShellOverrides | None, user: ShellOverrides | None) -> ShellOverrides | None:
    # Restriction overrides are never inherited from the defaults
    if user is None:
        if default is None or default.security is None:
            return None
        return ShellOverrides(security=default.security)

    security = user.security
    if default is not None and default.security is not None and user.security is not None:
        security = default.security.model_copy(update=_set_values(user.security))
    elif user.security is None and default is not None:
        security = default.security
    return ShellOverrides(security=security, restrictions=user.restrictions, paths=user.paths)


def _merge_shell(default: ShellConfig, user: ShellConfig) -> ShellConfig:
    update = _set_values(user)
    update.pop("include_default_wsl", None)

    if user.executable is not None and default.executable is not None:
        update["executable"] = default.executable.model_copy(update=_set_values(user.executable))
    update["overrides"] = _merge_overrides(default.overrides, user.overrides)
    if user.mount_config is not None and default.mount_config is not None:
        update["mount_config"] = default.mount_config.model_copy(
            update=_set_values(user.mount_config)
        )
    return default.model_copy(update=update)


def merge_configs(default: ServerConfig, user: ServerConfig) -> ServerConfig:
    """Merge a user configuration over the defaults.

    Global sections merge key by key; blocklists given by the user replace
    the default lists, even when empty. A user shell entry merges over the
    default entry of the same name, but its restriction overrides replace
    the default ones: an entry without ``overrides.restrictions`` drops
    the built-in shell blocklist.
    """
    global_config = default.global_
    if "global_" in user.model_fields_set:
        global_config = _merge_global(default.global_, user.global_)

    shells = dict(default.shells)
    for name, entry in user.shells.items():
        base = shells.get(name)
        shells[name] = entry if base is None else _merge_shell(base, entry)

    return ServerConfig(global_=global_config, shells=shells)


def apply_initial_dir(config: ServerConfig) -> ServerConfig:
    """Normalize ``initial_dir`` and make sure it is reachable.

    A missing directory is dropped with a warning. With working-directory
    restriction on, the initial directory is added to the allowed paths.
    """
    paths = config.global_.paths
    if not paths.initial_dir:
        return config

    initial_dir = normalize_to_canonical_form(paths.initial_dir)
    if not Path(initial_dir).is_dir():
        logger.warning("initial_dir_not_found", initial_dir=paths.initial_dir)
        paths = paths.model_copy(update={"initial_dir": None})
    else:
        update: dict[str, Any] = {"initial_dir": initial_dir}
        restricted = config.global_.security.restrict_working_directory
        if restricted and not is_path_allowed(initial_dir, paths.allowed_paths):
            update["allowed_paths"] = [*paths.allowed_paths, initial_dir]
            logger.info("initial_dir_allowed", initial_dir=initial_dir)
        paths = paths.model_copy(update=update)

    return config.with_global(config.global_.model_copy(update={"paths": paths}))


def load_config(
    path: str | Path | None = None,
    registry: ShellRegistry | None = None,
) -> ServerConfig:
    """Load the server configuration.

    Args:
        path: Explicit configuration file; searched for when None.
        registry: Shells whose defaults form the base configuration.

    Returns:
        Defaults merged with the configuration file, if any.

    Raises:
        ConfigError: Unreadable or invalid configuration file.
    """
    default = default_server_config(registry)
    config_file = find_config_file(path)
    if config_file is None:
        logger.info("config_file_not_found", using="defaults")
        return default

    logger.info("config_file_loaded", path=str(config_file))
    return merge_configs(default, parse_config(read_config_file(config_file)))


__all__ = [
    "CONFIG_SEARCH_PATHS",
    "apply_initial_dir",
    "find_config_file",
    "load_config",
    "merge_configs",
    "parse_config",
    "read_config_file",
]
