"""Core domain types and logic."""

from .config import AppdropConfig, ConfigError, load_config, load_config_or_default
from .duration import parse_duration
from .errors import ErrorCode
from .project import ProjectDescriptor, ProjectError, find_project
from .result import Err, Ok, Result, is_err, is_ok

__all__ = [
    # config
    "AppdropConfig",
    "ConfigError",
    "load_config",
    "load_config_or_default",
    # duration
    "parse_duration",
    # errors
    "ErrorCode",
    # project
    "ProjectDescriptor",
    "ProjectError",
    "find_project",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
]
