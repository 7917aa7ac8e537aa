"""dataproc-deploy configuration module."""

from .loader import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigParseError,
    ConfigValidationError,
    configure,
    generate_example_config_yaml,
    load_config,
    save_config,
)
from .schema import DeployConfig, EnvRole

__all__ = [
    # Config classes
    "DeployConfig",
    # Enums
    "EnvRole",
    # Loader functions
    "configure",
    "load_config",
    "save_config",
    "generate_example_config_yaml",
    # Exceptions
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigParseError",
    "ConfigValidationError",
]
