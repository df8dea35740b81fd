"""Parse runstream settings from YAML into a Settings object."""

import os
from dataclasses import dataclass, field

import yaml

from runstream import log

CONFIG_FILE = ".runstream.yml"

DEFAULT_DISPATCHERS = ["/usr/bin/xcrun", "/usr/bin/env"]
DEFAULT_TOOLCHAIN_COMMAND = ["/usr/bin/xcrun", "swift", "--version"]
DEFAULT_TOOLCHAIN_PATTERN = r"Apple Swift version\s(.+)\s\(.+\)"


@dataclass
class Settings:
    dispatchers: list[str] = field(default_factory=lambda: list(DEFAULT_DISPATCHERS))
    toolchain_command: list[str] = field(default_factory=lambda: list(DEFAULT_TOOLCHAIN_COMMAND))
    toolchain_pattern: str = DEFAULT_TOOLCHAIN_PATTERN
    chunk_size: int = 65536
    cancel_grace: float = 5.0
    verbose: bool = False


def resolve_path() -> str | None:
    """Resolve the settings file to read.

    Order: RUNSTREAM_CONFIG env → .runstream.yml (if present) → None (defaults).
    """
    env_path = os.environ.get("RUNSTREAM_CONFIG")
    if env_path:
        return env_path

    if os.path.isfile(CONFIG_FILE):
        return CONFIG_FILE

    return None


def parse_settings(data: dict | None) -> Settings:
    """Build Settings from a parsed YAML mapping. Missing keys keep defaults."""
    settings = Settings()
    if not data:
        return settings

    if "dispatchers" in data:
        settings.dispatchers = [str(d) for d in data["dispatchers"] or []]

    toolchain = data.get("toolchain") or {}
    if "command" in toolchain:
        command = toolchain["command"]
        # Accept "xcrun swift --version" as well as a list
        settings.toolchain_command = command.split() if isinstance(command, str) else [
            str(c) for c in command
        ]
    if "pattern" in toolchain:
        settings.toolchain_pattern = str(toolchain["pattern"])

    if "chunk_size" in data:
        settings.chunk_size = int(data["chunk_size"])
    if "cancel_grace" in data:
        settings.cancel_grace = float(data["cancel_grace"])
    if "verbose" in data:
        settings.verbose = bool(data["verbose"])

    if settings.chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {settings.chunk_size}")
    return settings


def load_settings(path: str | None = None) -> Settings:
    """Read settings from ``path`` (or the resolved default location)."""
    path = path or resolve_path()
    if path is None:
        return Settings()
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is not None and not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return parse_settings(data)


_active: Settings | None = None


def current() -> Settings:
    """Settings for this process, loaded on first use."""
    global _active
    if _active is None:
        _active = load_settings()
        if _active.verbose:
            log.set_verbose(True)
    return _active


def configure(settings: Settings | None) -> None:
    """Replace the active settings. ``None`` reloads on next use."""
    global _active
    _active = settings
    if settings is not None and settings.verbose:
        log.set_verbose(True)
