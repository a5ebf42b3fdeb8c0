from roboreport.analyzer import FailureAnalyzer, categorize_failure, extract_pattern
from roboreport.collector import MetricsCollector
from roboreport.config import ReporterConfig
from roboreport.database import RunDatabase
from roboreport.errors import (
    ArtifactRenderError,
    ArtifactWriteError,
    ReportArtifactError,
    ReporterConfigError,
    RoboReportError,
)
from roboreport.listener import listener
from roboreport.log import ReportLogger
from roboreport.models import (
    Attachment,
    AttachmentType,
    ErrorLocation,
    FailureAnalysis,
    FailureCategory,
    FailurePattern,
    ReportOutcome,
    Severity,
    TestError,
    TestMetrics,
    TestResult,
    TestStatus,
)
from roboreport.reporter import RunReporter
from roboreport.RoboReportLib import RoboReportLib

__all__ = [
    "listener",
    "RunReporter",
    "RoboReportLib",
    "MetricsCollector",
    "FailureAnalyzer",
    "categorize_failure",
    "extract_pattern",
    "RunDatabase",
    "ReporterConfig",
    "ReportLogger",
    "RoboReportError",
    "ReporterConfigError",
    "ReportArtifactError",
    "ArtifactWriteError",
    "ArtifactRenderError",
    "TestResult",
    "TestError",
    "ErrorLocation",
    "Attachment",
    "AttachmentType",
    "TestStatus",
    "TestMetrics",
    "FailureAnalysis",
    "FailurePattern",
    "FailureCategory",
    "Severity",
    "ReportOutcome",
]
