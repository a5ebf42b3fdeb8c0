"""
JSON conversion for report models.

Keys are written in camelCase, datetimes as ISO 8601 strings and ``None`` values are left out,
which is the layout external tooling reads from ``test-results.json`` and friends.
"""

import re
from dataclasses import fields, is_dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from roboreport.models import (
    Attachment,
    AttachmentType,
    ErrorLocation,
    FailureAnalysis,
    FailureCategory,
    FailurePattern,
    Severity,
    TestError,
    TestMetrics,
    TestResult,
    TestStatus,
)


def snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def camel_to_snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def to_json_dict(value: Any) -> Any:
    """Recursively convert models (and containers of models) into JSON-compatible values."""
    if is_dataclass(value) and not isinstance(value, type):
        return {
            snake_to_camel(f.name): to_json_dict(getattr(value, f.name))
            for f in fields(value)
            if getattr(value, f.name) is not None
        }
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {to_json_dict(k): to_json_dict(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_json_dict(item) for item in value]
    return value


def _datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _snake_keys(data: dict) -> dict:
    return {camel_to_snake(key): value for key, value in data.items()}


def error_from_dict(data: dict | None) -> TestError | None:
    if not data:
        return None
    location = data.get("location")
    return TestError(
        message=data.get("message", ""),
        type=data.get("type", "Error"),
        stack=data.get("stack"),
        location=ErrorLocation(**location) if location else None,
    )


def result_from_dict(data: dict | None) -> TestResult | None:
    if not data:
        return None
    values = _snake_keys(data)
    return TestResult(
        name=values["name"],
        full_name=values.get("full_name", values["name"]),
        status=TestStatus(values["status"]),
        duration=values.get("duration", 0.0),
        start_time=_datetime(values.get("start_time")),
        end_time=_datetime(values.get("end_time")),
        error=error_from_dict(values.get("error")),
        retries=values.get("retries", 0),
        attachments=tuple(
            Attachment(
                name=att["name"],
                path=att.get("path", ""),
                type=AttachmentType(att.get("type", AttachmentType.LOG.value)),
                size=att.get("size"),
            )
            for att in values.get("attachments", [])
        ),
        tags=tuple(values.get("tags", [])),
    )


def failure_analysis_from_dict(data: dict) -> FailureAnalysis:
    values = _snake_keys(data)
    return FailureAnalysis(
        error_type=values["error_type"],
        error_message=values["error_message"],
        count=values["count"],
        tests=tuple(values.get("tests", [])),
        first_occurrence=_datetime(values.get("first_occurrence")),
        last_occurrence=_datetime(values.get("last_occurrence")),
    )


def metrics_from_dict(data: dict) -> TestMetrics:
    values = _snake_keys(data)
    return TestMetrics(
        start_time=_datetime(values["start_time"]),
        total=values.get("total", 0),
        passed=values.get("passed", 0),
        failed=values.get("failed", 0),
        skipped=values.get("skipped", 0),
        flaky=values.get("flaky", 0),
        end_time=_datetime(values.get("end_time")),
        duration=values.get("duration", 0.0),
        average_test_duration=values.get("average_test_duration", 0.0),
        slowest_test=result_from_dict(values.get("slowest_test")),
        fastest_test=result_from_dict(values.get("fastest_test")),
        failure_rate=values.get("failure_rate", 0.0),
        top_failures=tuple(failure_analysis_from_dict(item) for item in values.get("top_failures", [])),
        browser=values.get("browser", "chromium"),
        environment=values.get("environment", "dev"),
    )


def pattern_from_dict(data: dict) -> FailurePattern:
    values = _snake_keys(data)
    return FailurePattern(
        pattern=values["pattern"],
        description=values["description"],
        occurrences=values["occurrences"],
        affected_tests=tuple(values.get("affected_tests", [])),
        severity=Severity(values["severity"]),
        category=FailureCategory(values["category"]),
        suggested_fix=values.get("suggested_fix"),
    )
