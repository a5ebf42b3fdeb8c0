from datetime import UTC, datetime

from jinja2 import Environment, PackageLoader, select_autoescape
from matplotlib.ticker import EngFormatter

from roboreport.models import FailurePattern, TestMetrics, TestResult, TestStatus

TEMPLATE_NAME = "report.html.j2"
FAILURE_TABLE_LIMIT = 10
DURATION_CHART_LIMIT = 10

STATUS_ICONS = {
    TestStatus.PASSED: "✓",
    TestStatus.FAILED: "✗",
    TestStatus.SKIPPED: "○",
    TestStatus.FLAKY: "⚠",
}

_environment = None


def _get_environment() -> Environment:
    global _environment
    if _environment is None:
        _environment = Environment(
            loader=PackageLoader("roboreport", "templates"),
            autoescape=select_autoescape(["html", "j2"], default=True),
            keep_trailing_newline=True,
            lstrip_blocks=True,
            trim_blocks=True,
        )
        _environment.filters["seconds"] = format_seconds
        _environment.filters["filesize"] = format_size
        _environment.filters["status_icon"] = status_icon
        _environment.filters["status_value"] = status_value
    return _environment


def pass_rate_class(pass_rate: float) -> str:
    if pass_rate >= 80:
        return "success"
    if pass_rate >= 50:
        return "warning"
    return "error"


def status_value(status) -> str:
    return getattr(status, "value", str(status))


def status_icon(status) -> str:
    try:
        return STATUS_ICONS[TestStatus(status)]
    except ValueError:
        return "?"


def format_seconds(milliseconds: float | None) -> str:
    return f"{(milliseconds or 0) / 1000:.2f}s"


def format_size(size: int | None) -> str:
    if size is None:
        return "-"
    return EngFormatter(unit="B", places=1)(size)


def status_dataset(metrics: TestMetrics) -> dict:
    return {
        "labels": ["Passed", "Failed", "Skipped", "Flaky"],
        "data": [metrics.passed, metrics.failed, metrics.skipped, metrics.flaky],
    }


def duration_dataset(results: list[TestResult], limit: int = DURATION_CHART_LIMIT) -> dict:
    """The ``limit`` slowest tests, durations in seconds."""
    slowest = sorted(results, key=lambda r: r.duration or 0, reverse=True)[:limit]
    return {
        "labels": [r.name for r in slowest],
        "data": [round((r.duration or 0) / 1000, 2) for r in slowest],
    }


def render_html(
    metrics: TestMetrics,
    results: list[TestResult],
    patterns: list[FailurePattern],
    generated_at: datetime | None = None,
) -> str:
    """
    Render the self-contained interactive report.

    All text coming from test names and error messages goes through Jinja2 autoescaping;
    chart data is embedded with the ``tojson`` filter so it cannot terminate the script block.
    """
    template = _get_environment().get_template(TEMPLATE_NAME)
    return template.render(
        metrics=metrics,
        pass_rate=metrics.pass_rate,
        status_class=pass_rate_class(metrics.pass_rate),
        results=results,
        statuses=[status.value for status in TestStatus],
        patterns=list(patterns)[:FAILURE_TABLE_LIMIT],
        status_data=status_dataset(metrics),
        duration_data=duration_dataset(results),
        generated_at=generated_at or datetime.now(UTC),
    )
