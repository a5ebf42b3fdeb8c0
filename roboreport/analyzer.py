import json
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from roboreport.models import FailureCategory, FailurePattern, Severity, TestError, TestResult
from roboreport.serialization import to_json_dict

PATTERN_MAX_LENGTH = 100
COMMON_FAILURES_LIMIT = 5


@dataclass(frozen=True)
class CategoryRule:
    """Assigns ``category`` when any keyword occurs in the lower-cased message and type."""

    category: FailureCategory
    keywords: tuple[str, ...]

    def matches(self, haystack: str) -> bool:
        return any(keyword in haystack for keyword in self.keywords)


# Evaluated top to bottom, first match wins.
CATEGORY_RULES = (
    CategoryRule(FailureCategory.TIMEOUT, ("timeout",)),
    CategoryRule(FailureCategory.ASSERTION, ("expect", "assert")),
    CategoryRule(FailureCategory.ELEMENT_NOT_FOUND, ("locator", "element", "selector")),
    CategoryRule(FailureCategory.NETWORK, ("network", "net::", "fetch")),
    CategoryRule(FailureCategory.NAVIGATION, ("navigation", "goto")),
    CategoryRule(FailureCategory.AUTHENTICATION, ("authentication", "login", "unauthorized")),
    CategoryRule(FailureCategory.DATA, ("data", "validation")),
)

DESCRIPTIONS = {
    FailureCategory.TIMEOUT: "Test exceeded the maximum execution time",
    FailureCategory.ASSERTION: "Expected condition was not met",
    FailureCategory.ELEMENT_NOT_FOUND: "Could not find the specified element on the page",
    FailureCategory.NETWORK: "Network request failed or timed out",
    FailureCategory.NAVIGATION: "Failed to navigate to the specified URL",
    FailureCategory.AUTHENTICATION: "Authentication or authorization failed",
    FailureCategory.DATA: "Data validation or processing failed",
    FailureCategory.UNKNOWN: "Unclassified failure",
}

SUGGESTED_FIXES = {
    FailureCategory.TIMEOUT: "Increase timeout value or optimize test performance. Check for slow network or page loads.",
    FailureCategory.ASSERTION: "Review test assertions and ensure expected values are correct.",
    FailureCategory.ELEMENT_NOT_FOUND: "Verify element selectors are correct and elements are visible. Consider adding explicit waits.",
    FailureCategory.NETWORK: "Check network connectivity and API endpoints. Implement retry logic for flaky requests.",
    FailureCategory.NAVIGATION: "Verify URLs are correct and accessible. Check for redirect issues.",
    FailureCategory.AUTHENTICATION: "Verify authentication credentials and flow. Check for expired tokens or sessions.",
    FailureCategory.DATA: "Validate test data format and values. Check data generators and fixtures.",
    FailureCategory.UNKNOWN: "Review error stack trace and test logs for more details.",
}

SEVERITIES = {
    FailureCategory.AUTHENTICATION: Severity.HIGH,
    FailureCategory.NETWORK: Severity.HIGH,
    FailureCategory.NAVIGATION: Severity.HIGH,
    FailureCategory.ELEMENT_NOT_FOUND: Severity.MEDIUM,
    FailureCategory.TIMEOUT: Severity.MEDIUM,
}

TIMEOUT_RE = re.compile(r"Timeout (\d+)ms")
LOCATOR_RE = re.compile(r"""locator\(['"]([^'"]+)['"]\)""")
EXPECT_RE = re.compile(r"expect\(([^)]+)\)")


def categorize_failure(error: TestError) -> FailureCategory:
    haystack = f"{error.message or ''}\n{error.type or ''}".lower()
    for rule in CATEGORY_RULES:
        if rule.matches(haystack):
            return rule.category
    return FailureCategory.UNKNOWN


def extract_pattern(error: TestError) -> str:
    """
    Reduce an error message to a signature shared by failures with the same cause.

    Best effort: timeouts keep their duration, locator and ``expect(...)`` failures keep the
    literal they refer to, anything else is the first message line cut to 100 characters.
    """
    message = error.message or ""

    if "Timeout" in message:
        match = TIMEOUT_RE.search(message)
        return f"Timeout {match.group(1)}ms" if match else "Timeout"

    if "locator" in message:
        match = LOCATOR_RE.search(message)
        return f"Locator: {match.group(1)}" if match else "Locator not found"

    if "expect" in message:
        match = EXPECT_RE.search(message)
        return f"Assertion failed: {match.group(1)}" if match else "Assertion failed"

    return message.split("\n")[0][:PATTERN_MAX_LENGTH]


def severity_for(category: FailureCategory) -> Severity:
    return SEVERITIES.get(category, Severity.LOW)


@dataclass
class _PatternGroup:
    pattern: str
    category: FailureCategory
    affected_tests: list = field(default_factory=list)

    def freeze(self) -> FailurePattern:
        return FailurePattern(
            pattern=self.pattern,
            description=DESCRIPTIONS[self.category],
            occurrences=len(self.affected_tests),
            affected_tests=tuple(self.affected_tests),
            severity=severity_for(self.category),
            category=self.category,
            suggested_fix=SUGGESTED_FIXES[self.category],
        )


class FailureAnalyzer:
    """Groups the failed tests of a run into failure patterns."""

    def __init__(self, failed_tests: Iterable[TestResult]):
        self.failed_tests = tuple(failed_tests)
        self._patterns = None

    def analyze_failures(self) -> list[FailurePattern]:
        """Patterns ordered by occurrences, most frequent first; ties keep first-seen order."""
        if self._patterns is None:
            groups: dict[str, _PatternGroup] = {}
            for test in self.failed_tests:
                if test.error is None:
                    continue
                category = categorize_failure(test.error)
                pattern = extract_pattern(test.error)
                key = f"{category.value}:{pattern}"
                group = groups.setdefault(key, _PatternGroup(pattern=pattern, category=category))
                group.affected_tests.append(test.full_name)

            ranked = sorted(groups.values(), key=lambda g: len(g.affected_tests), reverse=True)
            self._patterns = tuple(group.freeze() for group in ranked)
        return list(self._patterns)

    def get_common_failures(self, limit: int = COMMON_FAILURES_LIMIT) -> list[FailurePattern]:
        return self.analyze_failures()[:limit]

    def get_failures_by_category(self) -> dict[FailureCategory, list[FailurePattern]]:
        categorized: dict[FailureCategory, list[FailurePattern]] = {}
        for pattern in self.analyze_failures():
            categorized.setdefault(pattern.category, []).append(pattern)
        return categorized

    def get_high_severity_failures(self) -> list[FailurePattern]:
        return [p for p in self.analyze_failures() if p.severity is Severity.HIGH]

    def get_flaky_test_candidates(self) -> list[TestResult]:
        """Failed tests that already consumed retries."""
        return [t for t in self.failed_tests if (t.retries or 0) > 0]

    def generate_summary(self) -> str:
        patterns = self.analyze_failures()
        lines = [
            "Failure Analysis Summary",
            "========================",
            "",
            f"Total Failed Tests: {len(self.failed_tests)}",
            f"Unique Failure Patterns: {len(patterns)}",
            "",
            "Top 5 Common Failures:",
            "----------------------",
        ]
        for index, pattern in enumerate(self.get_common_failures(COMMON_FAILURES_LIMIT), start=1):
            lines.append(f"{index}. {pattern.pattern} ({pattern.occurrences} occurrences)")
            lines.append(f"   Category: {pattern.category.value}")
            lines.append(f"   Severity: {pattern.severity.value}")
            if pattern.suggested_fix:
                lines.append(f"   Fix: {pattern.suggested_fix}")
            lines.append("")

        lines.append("Failures by Category:")
        lines.append("--------------------")
        for category, grouped in self.get_failures_by_category().items():
            lines.append(f"{category.value}: {len(grouped)} pattern(s)")

        high = self.get_high_severity_failures()
        if high:
            lines.extend(["", "High Severity Issues:", "--------------------"])
            lines.extend(f"- {p.pattern} ({p.occurrences} occurrences)" for p in high)

        return "\n".join(lines) + "\n"

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalFailures": len(self.failed_tests),
            "patterns": to_json_dict(self.analyze_failures()),
            "byCategory": to_json_dict(self.get_failures_by_category()),
            "highSeverity": to_json_dict(self.get_high_severity_failures()),
            "flakyTests": to_json_dict(self.get_flaky_test_candidates()),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)
