"""Typed loading of the optional ``appdrop.toml`` project config.

Example:

    [paths]
    output = "release"
    build = "build"

    [notary]
    timeout = "2h"
    poll = "30s"

    [sparkle]
    bin = "/opt/sparkle/bin"

Values here are the lowest-precedence layer: environment variables and CLI
flags override them (see ``appdrop.cli.context``).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_str, get_table

__all__ = [
    "AppdropConfig",
    "ConfigError",
    "NotaryConfig",
    "PathsConfig",
    "SparkleConfig",
    "CONFIG_FILE_NAME",
    "DEFAULT_BUILD_DIR",
    "DEFAULT_OUTPUT_DIR",
    "DEFAULT_NOTARY_TIMEOUT",
    "DEFAULT_NOTARY_POLL",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILE_NAME = "appdrop.toml"

# Relative to the project root
DEFAULT_BUILD_DIR = "build"
DEFAULT_OUTPUT_DIR = "release"

DEFAULT_NOTARY_TIMEOUT = "2h"
DEFAULT_NOTARY_POLL = "30s"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class PathsConfig:
    output: str = DEFAULT_OUTPUT_DIR
    build: str = DEFAULT_BUILD_DIR


@dataclass(frozen=True, slots=True)
class NotaryConfig:
    """Notarization tunables, kept as raw duration strings until resolved."""

    timeout: str = DEFAULT_NOTARY_TIMEOUT
    poll: str = DEFAULT_NOTARY_POLL


@dataclass(frozen=True, slots=True)
class SparkleConfig:
    bin: str | None = None


@dataclass(frozen=True, slots=True)
class AppdropConfig:
    """Main configuration container."""

    paths: PathsConfig = field(default_factory=PathsConfig)
    notary: NotaryConfig = field(default_factory=NotaryConfig)
    sparkle: SparkleConfig = field(default_factory=SparkleConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> AppdropConfig:
        """Create AppdropConfig from a mapping (parsed TOML)."""
        paths: StrDict = get_table(data, "paths") or {}
        notary: StrDict = get_table(data, "notary") or {}
        sparkle: StrDict = get_table(data, "sparkle") or {}

        return cls(
            paths=PathsConfig(
                output=get_str(paths, "output") or DEFAULT_OUTPUT_DIR,
                build=get_str(paths, "build") or DEFAULT_BUILD_DIR,
            ),
            notary=NotaryConfig(
                timeout=get_str(notary, "timeout") or DEFAULT_NOTARY_TIMEOUT,
                poll=get_str(notary, "poll") or DEFAULT_NOTARY_POLL,
            ),
            sparkle=SparkleConfig(bin=get_str(sparkle, "bin")),
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and syntax errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[AppdropConfig, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to appdrop.toml

    Returns:
        Ok(AppdropConfig) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result
    return Ok(AppdropConfig.from_dict(result.value))


def load_config_or_default(root: Path) -> Result[AppdropConfig, ConfigError]:
    """Load ``root/appdrop.toml`` if present, defaults otherwise.

    A config file that exists but cannot be parsed is still an error.
    """
    path = root / CONFIG_FILE_NAME
    if not path.exists():
        return Ok(AppdropConfig())
    return load_config(path)
