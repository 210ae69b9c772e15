"""Plugin configuration loading.

Config is read from two JSON files, user-level first and project-level
second, with project values overriding user values:

- Linux/macOS: $XDG_CONFIG_HOME/opencode/oh-my-opencode.json (~/.config if unset)
- Windows:     %APPDATA%/opencode/oh-my-opencode.json
- Project:     <directory>/.opencode/oh-my-opencode.json

A missing file is not an error. Unreadable or invalid files are skipped and
recorded so the startup toast can report them.
"""

import json
import logging
import os
import sys
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigLoadError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "oh-my-opencode.json"


class HookName(str, Enum):
    """Hooks that can be switched off from config."""

    COMMENT_CHECKER = "comment-checker"
    TODO_CONTINUATION_ENFORCER = "todo-continuation-enforcer"
    STARTUP_TOAST = "startup-toast"


# Names the same hooks carry in other plugin builds sharing this config file
HOOK_NAME_ALIASES = {
    "auto-update-checker": HookName.STARTUP_TOAST,
}


class PluginConfig(BaseModel):
    """Validated contents of a plugin config file."""

    disabled_hooks: list[HookName] = Field(default_factory=list)
    grace_period_ms: Optional[int] = Field(default=None, ge=0, description="Idle decision delay")
    pending_ttl_ms: Optional[int] = Field(default=None, gt=0, description="Pending call lifetime")
    sweep_interval_ms: Optional[int] = Field(default=None, gt=0, description="Pending call sweep period")

    @field_validator("disabled_hooks", mode="before")
    @classmethod
    def _known_hooks_only(cls, value):
        """Map alias names and drop hooks this service does not have."""
        if not isinstance(value, list):
            return value

        hooks = []
        for name in value:
            if isinstance(name, str) and name in HOOK_NAME_ALIASES:
                hooks.append(HOOK_NAME_ALIASES[name])
                continue
            try:
                hooks.append(HookName(name))
            except ValueError:
                logger.warning(f"Ignoring unknown hook in disabled_hooks: {name!r}")
        return hooks

    def is_enabled(self, hook: HookName) -> bool:
        return hook not in self.disabled_hooks

    def merged_with(self, override: "PluginConfig") -> "PluginConfig":
        """Return a copy with every field ``override`` set explicitly applied on top."""
        data = self.model_dump()
        data.update(override.model_dump(exclude_unset=True))
        return PluginConfig.model_validate(data)


class LoadedConfig(BaseModel):
    """Merged config plus the files that failed to load."""

    config: PluginConfig = Field(default_factory=PluginConfig)
    sources: list[str] = Field(default_factory=list, description="Files that loaded successfully")
    errors: list[ConfigLoadError] = Field(default_factory=list)

    model_config = {"arbitrary_types_allowed": True}

    def clear_errors(self) -> None:
        self.errors.clear()


def get_user_config_dir() -> Path:
    """Return the user-level config directory for this OS."""
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        return Path(appdata) if appdata else Path.home() / "AppData" / "Roaming"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    return Path(xdg) if xdg else Path.home() / ".config"


def get_user_config_path() -> Path:
    """Return the full path of the user-level config file."""
    return get_user_config_dir() / "opencode" / CONFIG_FILE_NAME


def get_project_config_path(directory: Path) -> Path:
    """Return the full path of the project-level config file."""
    return Path(directory) / ".opencode" / CONFIG_FILE_NAME


def load_config_file(path: Path) -> Optional[PluginConfig]:
    """Load and validate one config file.

    Returns:
        PluginConfig, or None if the file does not exist

    Raises:
        ConfigLoadError: If the file cannot be read, parsed or validated
    """
    if not path.exists():
        return None

    try:
        with open(path) as f:
            data = json.load(f)
        return PluginConfig.model_validate(data)
    except OSError as e:
        raise ConfigLoadError(str(path), "could not read file", cause=e) from e
    except json.JSONDecodeError as e:
        raise ConfigLoadError(str(path), f"invalid JSON at line {e.lineno}", cause=e) from e
    except ValidationError as e:
        raise ConfigLoadError(str(path), f"{e.error_count()} invalid setting(s)", cause=e) from e


def load_plugin_config(directory: Optional[Path] = None, explicit_path: Optional[Path] = None) -> LoadedConfig:
    """Load user and project config, project overriding user.

    Args:
        directory: Project directory, for the project-level file
        explicit_path: Extra file applied last (from --config)
    """
    loaded = LoadedConfig()

    paths = [get_user_config_path()]
    if directory is not None:
        paths.append(get_project_config_path(directory))
    if explicit_path is not None:
        paths.append(explicit_path)

    for path in paths:
        try:
            config = load_config_file(path)
        except ConfigLoadError as e:
            logger.error(f"Failed to load config from {e.path}: {e}")
            loaded.errors.append(e)
            continue

        if config is None:
            logger.debug(f"Config file does not exist: {path}")
            continue

        loaded.config = loaded.config.merged_with(config)
        loaded.sources.append(str(path))
        logger.info(f"Loaded config from {path}")

    return loaded
