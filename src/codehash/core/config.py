"""Configuration data structures and loading.

Provides immutable configuration loaded from ~/.codehash/config.toml.
Environment overrides are applied once at the CLI entry point; everything
below the entry point receives explicit values.
"""

import os
import tomllib
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path

from codehash.errors import ConfigurationError


@dataclass(frozen=True)
class CodehashConfig:
    """Immutable run configuration.

    scratch_root is None when no default scratch location is configured;
    commands then require an explicit path.
    """

    scratch_root: Path | None = None
    http_timeout: float = 30.0
    clone_depth: int | None = 1
    max_workers: int = 1
    persist_downloads: bool = True


def _positive_int(value: object, field: str, source: str) -> int:
    try:
        number = int(str(value))
    except ValueError:
        raise ConfigurationError(f"{field} must be an integer in {source}, got {value!r}") from None
    if number < 1:
        raise ConfigurationError(f"{field} must be at least 1 in {source}, got {number}")
    return number


def _positive_float(value: object, field: str, source: str) -> float:
    try:
        number = float(str(value))
    except ValueError:
        raise ConfigurationError(f"{field} must be a number in {source}, got {value!r}") from None
    if number <= 0:
        raise ConfigurationError(f"{field} must be positive in {source}, got {number}")
    return number


def parse_config(data: Mapping[str, object], source: str) -> CodehashConfig:
    """Build a CodehashConfig from a parsed TOML table.

    Unknown keys are ignored. A clone_depth of 0 means full history.
    """
    defaults = CodehashConfig()

    scratch_root = defaults.scratch_root
    if data.get("scratch_root"):
        scratch_root = Path(str(data["scratch_root"])).expanduser()

    http_timeout = defaults.http_timeout
    if "http_timeout" in data:
        http_timeout = _positive_float(data["http_timeout"], "http_timeout", source)

    clone_depth = defaults.clone_depth
    if "clone_depth" in data:
        raw_depth = data["clone_depth"]
        clone_depth = None if raw_depth == 0 else _positive_int(raw_depth, "clone_depth", source)

    max_workers = defaults.max_workers
    if "max_workers" in data:
        max_workers = _positive_int(data["max_workers"], "max_workers", source)

    return CodehashConfig(
        scratch_root=scratch_root,
        http_timeout=http_timeout,
        clone_depth=clone_depth,
        max_workers=max_workers,
        persist_downloads=bool(data.get("persist_downloads", defaults.persist_downloads)),
    )


def apply_env_overrides(config: CodehashConfig, env: Mapping[str, str]) -> CodehashConfig:
    """Return config with CODEHASH_* environment overrides applied."""
    updates: dict[str, object] = {}

    if env.get("CODEHASH_SCRATCH_ROOT"):
        updates["scratch_root"] = Path(env["CODEHASH_SCRATCH_ROOT"]).expanduser()
    if env.get("CODEHASH_HTTP_TIMEOUT"):
        updates["http_timeout"] = _positive_float(
            env["CODEHASH_HTTP_TIMEOUT"], "CODEHASH_HTTP_TIMEOUT", "environment"
        )
    if env.get("CODEHASH_CLONE_DEPTH"):
        depth = env["CODEHASH_CLONE_DEPTH"]
        updates["clone_depth"] = (
            None if depth == "0" else _positive_int(depth, "CODEHASH_CLONE_DEPTH", "environment")
        )
    if env.get("CODEHASH_MAX_WORKERS"):
        updates["max_workers"] = _positive_int(
            env["CODEHASH_MAX_WORKERS"], "CODEHASH_MAX_WORKERS", "environment"
        )

    if not updates:
        return config
    return replace(config, **updates)  # type: ignore[arg-type]


class ConfigStore(ABC):
    """Abstract interface for config access.

    Provides dependency injection so tests never touch ~/.codehash.
    """

    @abstractmethod
    def exists(self) -> bool:
        """Check if a config file exists."""
        ...

    @abstractmethod
    def load(self) -> CodehashConfig:
        """Load config, returning defaults when none exists.

        Raises:
            ConfigurationError: If the file is malformed or holds invalid values
        """
        ...

    @abstractmethod
    def path(self) -> Path:
        """Path of the config file, for error messages."""
        ...


class FilesystemConfigStore(ConfigStore):
    """Production implementation reading ~/.codehash/config.toml."""

    def __init__(self, config_path: Path | None = None) -> None:
        self._config_path = config_path

    def exists(self) -> bool:
        return self.path().exists()

    def load(self) -> CodehashConfig:
        config_path = self.path()
        if not config_path.exists():
            return CodehashConfig()

        try:
            data = tomllib.loads(config_path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read {config_path}: {e}") from e

        return parse_config(data, str(config_path))

    def path(self) -> Path:
        if self._config_path is not None:
            return self._config_path
        return Path.home() / ".codehash" / "config.toml"


class InMemoryConfigStore(ConfigStore):
    """Test implementation holding config in memory."""

    def __init__(self, config: CodehashConfig | None = None) -> None:
        """Initialize in-memory store.

        Args:
            config: Stored config (None = no config file)
        """
        self._config = config

    def exists(self) -> bool:
        return self._config is not None

    def load(self) -> CodehashConfig:
        if self._config is None:
            return CodehashConfig()
        return self._config

    def path(self) -> Path:
        return Path("/test/.codehash/config.toml")


def load_config_from_environment(
    store: ConfigStore, env: Mapping[str, str] | None = None
) -> CodehashConfig:
    """Load stored config and apply environment overrides (entry point only)."""
    return apply_env_overrides(store.load(), os.environ if env is None else env)
