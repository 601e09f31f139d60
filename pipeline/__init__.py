"""
Market Pull — Pipeline Package
Single-flight lead-enrichment jobs with live progress.
"""
from .job import JobInput, JobStats, JobStatus
from .broadcaster import ProgressBroadcaster
from .settings import Settings
from .manager import (
    COOLDOWN_SECONDS,
    ConfigurationError,
    JobManager,
    JobRejected,
    PipelineStages,
    StartCheck,
    build_stages,
)

__all__ = [
    "JobInput",
    "JobStats",
    "JobStatus",
    "ProgressBroadcaster",
    "Settings",
    "COOLDOWN_SECONDS",
    "ConfigurationError",
    "JobManager",
    "JobRejected",
    "PipelineStages",
    "StartCheck",
    "build_stages",
]
