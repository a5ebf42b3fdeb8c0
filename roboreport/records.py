from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Record:
    run_id: int = None


@dataclass
class RunRecord(Record):
    name: str = ""
    start_time: datetime = None
    end_time: datetime = None
    duration: float = 0.0  # ms
    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    flaky: int = 0
    failure_rate: float = 0.0
    average_test_duration: float = 0.0
    browser: str = ""
    environment: str = ""


@dataclass
class TestResultRecord(Record):
    __test__ = False

    name: str = ""
    full_name: str = ""
    status: str = ""
    duration: float = 0.0
    start_time: datetime = None
    end_time: datetime = None
    retries: int = 0
    error_type: str = None
    error_message: str = None
    tags: list = field(default_factory=list)
    attachments: list = field(default_factory=list)


@dataclass
class FailurePatternRecord(Record):
    category: str = ""
    pattern: str = ""
    severity: str = ""
    occurrences: int = 0
    description: str = ""
    suggested_fix: str = None
    affected_tests: list = field(default_factory=list)
