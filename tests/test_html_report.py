from datetime import UTC, datetime

import pytest

from roboreport.analyzer import FailureAnalyzer
from roboreport.collector import MetricsCollector
from roboreport.html_report import (
    FAILURE_TABLE_LIMIT,
    duration_dataset,
    format_seconds,
    format_size,
    pass_rate_class,
    render_html,
    status_icon,
)
from roboreport.models import Attachment, AttachmentType, TestError, TestStatus

GENERATED_AT = datetime(2024, 5, 1, 13, 30, tzinfo=UTC)


def _render(results):
    collector = MetricsCollector()
    collector.start()
    for result in results:
        collector.record_test(result)
    collector.finish()
    analyzer = FailureAnalyzer(collector.get_failed_tests())
    return render_html(collector.get_metrics(), collector.get_test_results(), analyzer.analyze_failures(), GENERATED_AT)


@pytest.mark.parametrize(
    "pass_rate, expected",
    [(100, "success"), (80, "success"), (79.9, "warning"), (50, "warning"), (49.9, "error"), (0, "error")],
)
def test_pass_rate_class(pass_rate, expected):
    assert pass_rate_class(pass_rate) == expected


def test_small_helpers():
    assert format_seconds(1234) == "1.23s"
    assert format_seconds(None) == "0.00s"
    assert status_icon(TestStatus.PASSED) == "✓"
    assert status_icon("failed") == "✗"
    assert status_icon("bogus") == "?"
    assert format_size(None) == "-"
    assert format_size(2048).startswith("2.0")
    assert format_size(2048).endswith("kB")


def test_duration_dataset_takes_slowest_over_all_results(result_factory):
    results = [result_factory(f"t{index}", duration=index * 100) for index in range(15)]

    dataset = duration_dataset(results)
    assert len(dataset["labels"]) == 10
    assert dataset["labels"][0] == "t14"
    assert dataset["data"][0] == 1.4
    assert dataset["labels"][-1] == "t5"


def test_all_passing_report(result_factory):
    html = _render([result_factory("login"), result_factory("logout")])

    assert html.startswith("<!DOCTYPE html>")
    assert 'class="pass-rate success"' in html
    assert "100.0%" in html
    assert '<p class="no-failures">No failures detected</p>' in html
    assert html.count('class="test-row"') == 2
    assert "Generated by RoboReport | 2024-05-01 13:30:00 UTC" in html


def test_filter_buttons_cover_every_status(result_factory):
    html = _render([result_factory()])

    assert 'data-filter="all"' in html
    for status in TestStatus:
        assert f'data-filter="{status.value}"' in html


def test_failures_render_error_details_and_patterns(result_factory, failure_factory):
    html = _render(
        [
            result_factory("ok"),
            failure_factory("slow", message="Timeout 5000ms exceeded\nwhile clicking", error_type="TimeoutError"),
        ]
    )

    assert 'class="pass-rate warning"' in html
    assert 'data-status="failed"' in html
    assert "TimeoutError: Timeout 5000ms exceeded</summary>" in html
    assert "Timeout 5000ms" in html
    assert "No failures detected" not in html
    assert 'class="severity-badge medium"' in html


def test_user_text_is_escaped(result_factory, failure_factory):
    payload = "<script>alert(1)</script>"
    html = _render(
        [
            result_factory(payload),
            failure_factory("xss", error=TestError(message=f"bad {payload}", type="Error")),
        ]
    )

    assert payload not in html
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html


def test_failure_table_is_capped(failure_factory):
    html = _render([failure_factory(f"t{index}", message=f"distinct failure {index}") for index in range(FAILURE_TABLE_LIMIT + 5)])

    assert html.count('class="severity-badge ') == FAILURE_TABLE_LIMIT


def test_attachments_are_listed(result_factory):
    attachment = Attachment(name="shot.png", path="shots/shot.png", type=AttachmentType.SCREENSHOT, size=2048)
    html = _render([result_factory("with-shot", attachments=[attachment], retries=2, status=TestStatus.FLAKY)])

    assert '<a href="shots/shot.png">shot.png</a>' in html
    assert "screenshot" in html
    assert 'data-status="flaky"' in html
