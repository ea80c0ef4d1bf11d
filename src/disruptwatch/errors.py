"""Error taxonomy for ingestion, scoring and orchestration."""

from __future__ import annotations


class DisruptWatchError(Exception):
    """Base class for recoverable and propagated failures."""

    code = "internal_error"


class SourceUnavailable(DisruptWatchError):
    """Raised when an upstream data source cannot be reached."""

    code = "source_unavailable"


class ClassificationInvalid(DisruptWatchError):
    """Raised when a classification backend returns unusable output."""

    code = "classification_invalid"


class StorageFailure(DisruptWatchError):
    """Raised when a persistence write fails."""

    code = "storage_failure"


class UnknownWorkflow(DisruptWatchError):
    code = "unknown_workflow"


class UnknownCapability(DisruptWatchError):
    code = "unknown_capability"


class UnknownScenario(DisruptWatchError):
    code = "unknown_scenario"
