"""
RoboReport error hierarchy.

Errors carry metadata so the reporter can log where and why an artifact was lost.
"""

from pathlib import Path
from typing import Any


class RoboReportError(RuntimeError):
    """Base error for RoboReport components."""

    def __init__(self, message: str, *, metadata: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.metadata = metadata or {}


class ReporterConfigError(RoboReportError, ValueError):
    """Raised when reporter options are unknown or malformed."""


class ReportArtifactError(RoboReportError):
    """Raised when a single report artifact could not be produced."""

    action = "produce"

    def __init__(self, artifact_name: str, target_path: Path | str, cause: BaseException) -> None:
        self.artifact_name = artifact_name
        self.target_path = str(target_path)
        self.cause = cause
        super().__init__(
            f"Failed to {self.action} {artifact_name} at {self.target_path}: {cause}",
            metadata={"artifact": artifact_name, "path": self.target_path, "cause": repr(cause)},
        )


class ArtifactWriteError(ReportArtifactError):
    """The artifact content could not be persisted (file system or database)."""

    action = "write"


class ArtifactRenderError(ReportArtifactError):
    """A generator raised while building the artifact content."""

    action = "render"
