import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from roboreport.models import FailureAnalysis, TestMetrics, TestResult, TestStatus
from roboreport.serialization import to_json_dict

TOP_FAILURES_LIMIT = 10


@dataclass
class _FailureTally:
    error_type: str
    error_message: str
    first_occurrence: datetime
    last_occurrence: datetime
    tests: list = field(default_factory=list)

    def freeze(self) -> FailureAnalysis:
        return FailureAnalysis(
            error_type=self.error_type,
            error_message=self.error_message,
            count=len(self.tests),
            tests=tuple(self.tests),
            first_occurrence=self.first_occurrence,
            last_occurrence=self.last_occurrence,
        )


class MetricsCollector:
    """
    Aggregates test results of a single run.

    Not thread-safe: callers deliver results serially. Internal state is never handed out;
    ``get_metrics()`` builds a fresh immutable snapshot on every call.
    """

    def __init__(self, browser: str = "chromium", environment: str = "dev"):
        self.browser = browser
        self.environment = environment
        self.reset()

    def reset(self):
        """Forget all recorded results, keeping the browser/environment labels."""
        self._results: list[TestResult] = []
        self._failures: dict[str, _FailureTally] = {}
        self._counts = {status: 0 for status in TestStatus}
        self._start_time = datetime.now(UTC)
        self._end_time = None
        self._duration = 0.0
        self._average = 0.0
        self._slowest = None
        self._fastest = None
        self._failure_rate = 0.0
        self._top_failures: tuple[FailureAnalysis, ...] = ()

    @property
    def finished(self) -> bool:
        return self._end_time is not None

    def start(self):
        self._start_time = datetime.now(UTC)

    def record_test(self, result: TestResult):
        status = self._coerce_status(result.status)
        if status is None:
            return  # unknown status, would break total == sum of counters
        self._results.append(result)
        self._counts[status] += 1
        if status is TestStatus.FAILED and result.error is not None:
            self._record_failure(result)
        self._update_timing(result)

    @staticmethod
    def _coerce_status(status) -> TestStatus | None:
        try:
            return TestStatus(status)
        except ValueError:
            return None

    def _record_failure(self, result: TestResult):
        error = result.error
        # TODO: fold error.location into the key once grouping per call site is agreed on
        key = f"{error.type}:{error.message}"
        seen_at = result.end_time or datetime.now(UTC)
        tally = self._failures.get(key)
        if tally is None:
            tally = self._failures[key] = _FailureTally(
                error_type=error.type,
                error_message=error.message,
                first_occurrence=seen_at,
                last_occurrence=seen_at,
            )
        tally.tests.append(result.full_name)
        tally.last_occurrence = seen_at

    def _update_timing(self, result: TestResult):
        if result.duration is None:
            return
        if self._slowest is None or result.duration > self._slowest.duration:
            self._slowest = result
        if result.status == TestStatus.PASSED:
            if self._fastest is None or result.duration < self._fastest.duration:
                self._fastest = result

        timed = [r.duration for r in self._results if r.duration is not None]
        self._average = sum(timed) / len(timed)

    def finish(self):
        """Seal the run. A second call leaves the sealed values untouched."""
        if self.finished:
            return
        self._end_time = datetime.now(UTC)
        self._duration = (self._end_time - self._start_time).total_seconds() * 1000
        total = len(self._results)
        self._failure_rate = self._counts[TestStatus.FAILED] / total * 100 if total else 0.0
        # sorted() is stable, so equal counts keep first-seen order
        ranked = sorted(self._failures.values(), key=lambda tally: len(tally.tests), reverse=True)
        self._top_failures = tuple(tally.freeze() for tally in ranked[:TOP_FAILURES_LIMIT])

    def get_failure_index(self) -> list[FailureAnalysis]:
        """Current running tally of failures, in first-seen order."""
        return [tally.freeze() for tally in self._failures.values()]

    def get_metrics(self) -> TestMetrics:
        return TestMetrics(
            start_time=self._start_time,
            total=len(self._results),
            passed=self._counts[TestStatus.PASSED],
            failed=self._counts[TestStatus.FAILED],
            skipped=self._counts[TestStatus.SKIPPED],
            flaky=self._counts[TestStatus.FLAKY],
            end_time=self._end_time,
            duration=self._duration,
            average_test_duration=self._average,
            slowest_test=self._slowest,
            fastest_test=self._fastest,
            failure_rate=self._failure_rate,
            top_failures=self._top_failures,
            browser=self.browser,
            environment=self.environment,
        )

    def get_test_results(self) -> list[TestResult]:
        return list(self._results)

    def get_tests_by_status(self, status: TestStatus | str) -> list[TestResult]:
        return [r for r in self._results if r.status == status]

    def get_failed_tests(self) -> list[TestResult]:
        return self.get_tests_by_status(TestStatus.FAILED)

    def get_passed_tests(self) -> list[TestResult]:
        return self.get_tests_by_status(TestStatus.PASSED)

    def get_skipped_tests(self) -> list[TestResult]:
        return self.get_tests_by_status(TestStatus.SKIPPED)

    def get_flaky_tests(self) -> list[TestResult]:
        return [r for r in self._results if r.status == TestStatus.FLAKY or (r.retries or 0) > 0]

    def get_tests_by_duration(self, limit: int | None = None) -> list[TestResult]:
        """Results ordered slowest first, optionally truncated to ``limit``."""
        ordered = sorted(self._results, key=lambda r: r.duration or 0, reverse=True)
        return ordered[:limit] if limit else ordered

    def get_pass_rate(self) -> float:
        total = len(self._results)
        if total == 0:
            return 0.0
        return self._counts[TestStatus.PASSED] / total * 100

    def get_summary(self) -> str:
        return format_metrics_summary(self.get_metrics())

    def to_json(self) -> str:
        payload = {"metrics": to_json_dict(self.get_metrics()), "results": to_json_dict(self._results)}
        return json.dumps(payload, indent=2, ensure_ascii=False)

    def as_dataframe(self) -> Any:
        """
        Convert the recorded results to a pandas DataFrame, one row per test.
        """
        import pandas as pd

        rows = [
            {
                "name": r.name,
                "full_name": r.full_name,
                "status": getattr(r.status, "value", r.status),
                "duration": r.duration,
                "retries": r.retries,
                "start_time": r.start_time,
                "error_type": r.error.type if r.error else None,
                "error_message": r.error.message if r.error else None,
                "tags": list(r.tags),
            }
            for r in self._results
        ]
        return pd.DataFrame(rows)


def format_metrics_summary(metrics: TestMetrics) -> str:
    """Plain-text block with the headline numbers of a run."""
    lines = [
        "Test Execution Summary",
        "======================",
        f"Total Tests: {metrics.total}",
        f"Passed: {metrics.passed} ({metrics.pass_rate:.1f}%)",
        f"Failed: {metrics.failed}",
        f"Skipped: {metrics.skipped}",
        f"Flaky: {metrics.flaky}",
        "",
        f"Duration: {metrics.duration / 1000:.2f}s",
        f"Average Test Duration: {metrics.average_test_duration / 1000:.2f}s",
        "",
        f"Failure Rate: {metrics.failure_rate:.1f}%",
        f"Top Failures: {len(metrics.top_failures)}",
    ]
    return "\n".join(lines)
