"""Submission records for the dataproc-deploy journal."""

from __future__ import annotations

import hashlib
import re
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from dataproc_deploy.config import DeployConfig, EnvRole

if TYPE_CHECKING:
    from dataproc_deploy.deploy import DeploymentResult

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class Outcome(str, Enum):
    """How a deploy attempt ended."""

    ACCEPTED = "accepted"
    DRY_RUN = "dry_run"
    FAILED = "failed"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class Target:
    """The cluster a job is submitted to."""

    project_id: str
    region: str
    cluster_name: str

    @classmethod
    def from_config(cls, config: DeployConfig) -> Target:
        return cls(config.project_id, config.region, config.cluster_name)

    @property
    def key(self) -> str:
        """File-name safe identifier, ``<project>__<region>__<cluster>``."""
        parts = (self.project_id or "_", self.region or "_", self.cluster_name or "_")
        return "__".join(_UNSAFE_KEY_CHARS.sub("_", p) for p in parts)


def config_fingerprint(config: DeployConfig) -> str:
    """Short digest of a validated config; differs when any field changes."""
    return hashlib.sha256(config.model_dump_json().encode()).hexdigest()[:16]


@dataclass
class SubmissionRecord:
    """One deploy attempt.

    Only the shape of the request is kept (variable counts, argument
    count); environment values can hold credentials and are never written.
    """

    target: Target
    outcome: Outcome
    main_class: str
    job_uri: str
    env_variable_counts: dict[str, int]
    argument_count: int
    config_fingerprint: str
    record_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    recorded_at: str = field(default_factory=lambda: datetime.now().isoformat())
    elapsed_seconds: float = 0.0
    job_id: str | None = None
    driver_output_uri: str | None = None
    driver_output_bucket: str | None = None
    driver_output_path: str | None = None
    error_type: str | None = None
    error: str | None = None

    @classmethod
    def for_attempt(
        cls,
        config: DeployConfig,
        outcome: Outcome,
        result: DeploymentResult | None = None,
        error: BaseException | None = None,
        elapsed_seconds: float = 0.0,
    ) -> SubmissionRecord:
        """Build the record for a deploy of ``config``.

        ``result`` supplies the job id and driver output location of an
        accepted job; ``error`` is the exception that ended a failed one.
        """
        record = cls(
            target=Target.from_config(config),
            outcome=outcome,
            main_class=config.main_class,
            job_uri=config.job_uri,
            env_variable_counts={role.value: len(config.env_variables(role)) for role in EnvRole},
            argument_count=len(config.arguments),
            config_fingerprint=config_fingerprint(config),
            elapsed_seconds=elapsed_seconds,
        )
        if result is not None:
            record.elapsed_seconds = result.elapsed_seconds or elapsed_seconds
            record.job_id = result.job_id
            record.driver_output_uri = result.details.get("driver_output_uri")
            record.driver_output_bucket = result.driver_output_bucket
            record.driver_output_path = result.driver_output_path
        if error is not None:
            record.error_type = type(error).__name__
            record.error = str(error)
        return record

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["outcome"] = self.outcome.value
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SubmissionRecord:
        data = dict(data)
        data["target"] = Target(**data["target"])
        data["outcome"] = Outcome(data["outcome"])
        return cls(**data)
