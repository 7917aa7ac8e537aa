"""Configuration loader for dataproc-deploy."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .schema import DeployConfig


class ConfigError(Exception):
    """Base exception for configuration errors."""

    pass


class ConfigFileNotFoundError(ConfigError):
    """Raised when configuration file is not found."""

    pass


class ConfigParseError(ConfigError):
    """Raised when configuration file cannot be parsed."""

    pass


class ConfigValidationError(ConfigError):
    """Raised when configuration validation fails."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file and return as dictionary.

    Args:
        path: Path to YAML file

    Returns:
        Dictionary containing parsed YAML

    Raises:
        ConfigFileNotFoundError: If file doesn't exist
        ConfigParseError: If YAML parsing fails
    """
    if not path.exists():
        raise ConfigFileNotFoundError(f"Configuration file not found: {path}")

    try:
        with open(path) as f:
            content = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Failed to parse YAML: {e}")  # noqa: B904

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigParseError(f"Expected a mapping at the top of {path}")
    return content


def configure(raw: Mapping[str, Any]) -> DeployConfig:
    """Validate raw configuration data.

    An empty ``project_id`` is filled from ``$GOOGLE_PROJECT_ID`` when set.

    Args:
        raw: Configuration key-value data

    Returns:
        Validated DeployConfig object

    Raises:
        ConfigValidationError: If a required field is missing or region is empty
    """
    try:
        return DeployConfig.model_validate(dict(raw))
    except ValidationError as e:
        errors = e.errors()
        error_messages = []
        for err in errors:
            loc = ".".join(str(x) for x in err["loc"]) or "config"
            msg = err["msg"]
            error_messages.append(f"  - {loc}: {msg}")

        raise ConfigValidationError(  # noqa: B904
            "Configuration validation failed:\n" + "\n".join(error_messages),
            errors=[dict(e) for e in errors],  # type: ignore[call-overload]
        )


def load_config(path: str | Path) -> DeployConfig:
    """Load and validate configuration from a YAML file.

    Raises:
        ConfigFileNotFoundError: If file doesn't exist
        ConfigParseError: If YAML parsing fails
        ConfigValidationError: If validation fails
    """
    return configure(load_yaml(Path(path)))


def save_config(config: DeployConfig, path: str | Path) -> None:
    """Save configuration to YAML file.

    Args:
        config: DeployConfig object
        path: Path to save YAML file
    """
    path = Path(path)
    data = config.model_dump(mode="json", exclude_defaults=False)

    with open(path, "w") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, indent=2)


def generate_example_config_yaml() -> str:
    """Generate example configuration YAML with comments.

    Only the fields the user must fill in are uncommented; optional
    settings are shown commented-out so users can discover them.

    Returns:
        String containing commented YAML configuration
    """
    return """# dataproc-deploy configuration
# =============================
# Submits a Spark job to an existing Dataproc cluster.
#
# LEGEND:
#   Uncommented fields  = REQUIRED
#   # field: value      = Optional setting with an example value

# REQUIRED: Dataproc region of the cluster
region: us-central1

# REQUIRED: Name of the running Dataproc cluster
cluster_name: my-cluster

# GCP project. When omitted, $GOOGLE_PROJECT_ID is used.
# project_id: my-project

# REQUIRED: Fully qualified entry-point class of the job
main_class: com.example.Main

# REQUIRED: Job jar location
job_uri: gs://my-bucket/jobs/job.jar

# Environment variables, scoped per Spark role.
# master_env_variables:     # -> spark.yarn.appMasterEnv.<NAME>
#   FOO: bar
# driver_env_variables:     # -> spark.driverEnv.<NAME>
#   FOO: bar
# executor_env_variables:   # -> spark.executorEnv.<NAME>
#   FOO: bar

# Arguments passed to the job's main method.
# arguments:
#   - --input=gs://my-bucket/input
"""
