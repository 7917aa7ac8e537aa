"""Pydantic models for dataproc-deploy configuration."""

from __future__ import annotations

import os
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from dataproc_deploy._constants import DATAPROC_ENDPOINT_TEMPLATE, DEFAULT_PROJECT_ENV

# =============================================================================
# Enums
# =============================================================================


class EnvRole(str, Enum):
    """Spark process roles that can receive environment variables."""

    MASTER = "master"
    DRIVER = "driver"
    EXECUTOR = "executor"

    @property
    def property_prefix(self) -> str:
        """Spark property prefix that scopes a variable to this role."""
        return _ROLE_PROPERTY_PREFIXES[self]

    @property
    def config_field(self) -> str:
        """Name of the DeployConfig field holding this role's variables."""
        return f"{self.value}_env_variables"


_ROLE_PROPERTY_PREFIXES: dict[EnvRole, str] = {
    EnvRole.MASTER: "spark.yarn.appMasterEnv",
    EnvRole.DRIVER: "spark.driverEnv",
    EnvRole.EXECUTOR: "spark.executorEnv",
}


def _yaml_scalar(value: object) -> object:
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


# =============================================================================
# Root configuration
# =============================================================================


class DeployConfig(BaseModel):
    """Configuration for submitting a Spark job to a Dataproc cluster.

    The model is frozen once validated; a deploy call only reads it.
    """

    model_config = ConfigDict(extra="forbid", frozen=True, coerce_numbers_to_str=True)

    region: str = Field(description="Dataproc region, e.g. us-central1")
    cluster_name: str = Field(description="Name of the target Dataproc cluster")
    project_id: str = Field(
        default="",
        description=f"GCP project; falls back to ${DEFAULT_PROJECT_ENV} when empty",
    )

    main_class: str = Field(description="Fully qualified entry-point class of the job")
    job_uri: str = Field(description="Location of the job jar, e.g. gs://bucket/job.jar")

    master_env_variables: dict[str, str] = Field(default_factory=dict)
    driver_env_variables: dict[str, str] = Field(default_factory=dict)
    executor_env_variables: dict[str, str] = Field(default_factory=dict)
    arguments: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def normalize_input(cls, data: object) -> object:
        """Normalize raw YAML values and fill project_id from the environment.

        Blank optional keys load as None and become empty. YAML booleans in
        the env maps and arguments are written back as "true" or "false";
        numbers are handled by ``coerce_numbers_to_str``.
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)

        for role in EnvRole:
            variables = data.get(role.config_field)
            if role.config_field in data and variables is None:
                data[role.config_field] = {}
            elif isinstance(variables, dict):
                data[role.config_field] = {k: _yaml_scalar(v) for k, v in variables.items()}

        arguments = data.get("arguments")
        if "arguments" in data and arguments is None:
            data["arguments"] = []
        elif isinstance(arguments, list):
            data["arguments"] = [_yaml_scalar(a) for a in arguments]

        if not data.get("project_id"):
            data["project_id"] = os.environ.get(DEFAULT_PROJECT_ENV, "")
        return data

    @model_validator(mode="after")
    def validate_required_fields(self) -> DeployConfig:
        """Validate that region is set."""
        if not self.region:
            raise ValueError("'region' must be set to a valid Dataproc region")
        return self

    def env_variables(self, role: EnvRole) -> dict[str, str]:
        """Return the environment variables configured for a role."""
        return getattr(self, role.config_field)

    def get_endpoint(self) -> str:
        """Return the regional Dataproc API endpoint."""
        return DATAPROC_ENDPOINT_TEMPLATE.format(region=self.region)
