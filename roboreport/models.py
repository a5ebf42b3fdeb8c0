from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum


class TestStatus(str, Enum):
    __test__ = False

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    FLAKY = "flaky"  # passed only after at least one retry


class AttachmentType(str, Enum):
    SCREENSHOT = "screenshot"
    VIDEO = "video"
    TRACE = "trace"
    LOG = "log"


class FailureCategory(str, Enum):
    TIMEOUT = "timeout"
    ASSERTION = "assertion"
    ELEMENT_NOT_FOUND = "element-not-found"
    NETWORK = "network"
    NAVIGATION = "navigation"
    AUTHENTICATION = "authentication"
    DATA = "data"
    UNKNOWN = "unknown"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class ErrorLocation:
    file: str
    line: int = 0
    column: int = 0


@dataclass(frozen=True)
class TestError:
    __test__ = False

    message: str
    type: str = "Error"
    stack: str | None = None
    location: ErrorLocation | None = None


@dataclass(frozen=True)
class Attachment:
    name: str
    path: str = ""
    type: AttachmentType = AttachmentType.LOG
    size: int | None = None


@dataclass(frozen=True)
class TestResult:
    """One terminal outcome of a single test execution. Durations are in milliseconds."""

    __test__ = False  # keep pytest from collecting this class

    name: str
    full_name: str
    status: TestStatus
    duration: float = 0.0
    start_time: datetime | None = None
    end_time: datetime | None = None
    error: TestError | None = None
    retries: int = 0
    attachments: tuple[Attachment, ...] = ()
    tags: tuple[str, ...] = ()

    def __post_init__(self):
        if self.end_time is None and self.start_time is not None and self.duration is not None:
            object.__setattr__(self, "end_time", self.start_time + timedelta(milliseconds=self.duration))
        object.__setattr__(self, "attachments", tuple(self.attachments))
        object.__setattr__(self, "tags", tuple(dict.fromkeys(self.tags)))


@dataclass(frozen=True)
class FailureAnalysis:
    error_type: str
    error_message: str
    count: int
    tests: tuple[str, ...]
    first_occurrence: datetime
    last_occurrence: datetime


@dataclass(frozen=True)
class TestMetrics:
    """Sealed snapshot of a run's aggregate, as handed out by the collector."""

    __test__ = False

    start_time: datetime
    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    flaky: int = 0
    end_time: datetime | None = None
    duration: float = 0.0
    average_test_duration: float = 0.0
    slowest_test: TestResult | None = None
    fastest_test: TestResult | None = None
    failure_rate: float = 0.0
    top_failures: tuple[FailureAnalysis, ...] = ()
    browser: str = "chromium"
    environment: str = "dev"

    @property
    def pass_rate(self) -> float:
        if self.total == 0:
            return 0.0
        return self.passed / self.total * 100


@dataclass(frozen=True)
class FailurePattern:
    pattern: str
    description: str
    occurrences: int
    affected_tests: tuple[str, ...]
    severity: Severity
    category: FailureCategory
    suggested_fix: str | None = None


@dataclass
class ReportOutcome:
    """What the orchestrator produced at the end of a run."""

    artifacts: dict = field(default_factory=dict)  # artifact name -> absolute path
    errors: dict = field(default_factory=dict)  # artifact name -> ReportArtifactError

    @property
    def ok(self) -> bool:
        return not self.errors
