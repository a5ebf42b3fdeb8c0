import json
from datetime import datetime, timedelta
from io import StringIO
from types import SimpleNamespace

import pytest
import robot

from roboreport.config import ReporterConfig
from roboreport.errors import ReporterConfigError
from roboreport.listener import build_error, infer_attachment_type, listener
from roboreport.models import AttachmentType, TestStatus
from roboreport.reporter import RunReporter
from roboreport.snapshots import METRICS_FILE, TEST_RESULTS_FILE

SUITE = """\
*** Settings ***
Library    roboreport.RoboReportLib

*** Test Cases ***
Passing Test
    [Tags]    smoke
    Log    hello

Failing Test
    Fail    TimeoutError: Timeout 5000ms exceeded

Skipped Test
    Skip    not today

Attaching Test
    Attach File To Report    shot.png
"""


@pytest.mark.parametrize(
    "name, expected",
    [
        ("screenshot-1", AttachmentType.SCREENSHOT),
        ("page.PNG", AttachmentType.SCREENSHOT),
        ("run.webm", AttachmentType.VIDEO),
        ("trace.zip", AttachmentType.TRACE),
        ("console.txt", AttachmentType.LOG),
    ],
)
def test_infer_attachment_type(name, expected):
    assert infer_attachment_type(name) is expected


def test_build_error_parses_type_prefix_and_location():
    error = build_error(
        "AssertionError: 1 != 2",
        [("BuiltIn.Should Be Equal", "/suite/cart.robot", 12), ("Check Cart", None, None)],
    )

    assert error.type == "AssertionError"
    assert error.message == "1 != 2"
    assert error.location.file == "/suite/cart.robot"
    assert error.location.line == 12
    assert error.stack == "at BuiltIn.Should Be Equal (/suite/cart.robot:12)\nat Check Cart"


def test_build_error_defaults():
    assert build_error("plain failure").type == "Error"
    assert build_error("plain failure").stack is None
    assert build_error(None).message == "Unknown error"


def test_listener_options_are_validated():
    with pytest.raises(ReporterConfigError):
        listener(colour="blue")
    assert listener("html=false", output_dir="x").config == ReporterConfig(html=False, output_dir="x")


def _fake_test(name, status, message="", duration_ms=250):
    data = SimpleNamespace(name=name)
    result = SimpleNamespace(
        status=status,
        message=message,
        elapsed_time=timedelta(milliseconds=duration_ms),
        start_time=datetime(2024, 5, 1, 12, 0),
        tags=["regression"],
    )
    return data, result


def test_repeated_test_counts_as_retry(tmp_path):
    instance = listener(output_dir=str(tmp_path), console="false")
    instance.reporter = RunReporter(instance.config)
    instance.suite_stack = ["Shop"]

    for status, message in (("FAIL", "boom"), ("PASS", "")):
        data, result = _fake_test("Checkout", status, message)
        instance.start_test(data, result)
        instance.end_test(data, result)

    first, second = instance.reporter.collector.get_test_results()
    assert (first.status, first.retries) == (TestStatus.FAILED, 0)
    assert first.error.message == "boom"
    assert (second.status, second.retries) == (TestStatus.FLAKY, 1)
    assert second.error is None
    assert second.full_name == "Shop › Checkout"
    assert second.duration == 250
    assert second.tags == ("regression",)


def test_close_without_run_produces_nothing(tmp_path):
    instance = listener(output_dir=str(tmp_path / "reports"), console="false")

    instance.close()

    assert not (tmp_path / "reports").exists()


def test_robot_run_end_to_end(tmp_path):
    suite = tmp_path / "checkout.robot"
    suite.write_text(SUITE, encoding="utf-8")
    (tmp_path / "shot.png").write_bytes(b"\x89PNG fake")
    reports = tmp_path / "reports"

    rc = robot.run(
        str(suite),
        listener=[listener(output_dir=str(reports), console="false")],
        variable=["RR_BROWSER:firefox", "RR_ENVIRONMENT:qa"],
        outputdir=str(tmp_path),
        output="NONE",
        log="NONE",
        report="NONE",
        stdout=StringIO(),
        stderr=StringIO(),
    )
    assert rc == 1

    metrics = json.loads((reports / METRICS_FILE).read_text(encoding="utf-8"))
    assert (metrics["total"], metrics["passed"], metrics["failed"], metrics["skipped"]) == (4, 2, 1, 1)
    assert metrics["browser"] == "firefox"
    assert metrics["environment"] == "qa"

    results = {r["name"]: r for r in json.loads((reports / TEST_RESULTS_FILE).read_text(encoding="utf-8"))["results"]}
    assert results["Passing Test"]["fullName"] == "Checkout › Passing Test"
    assert results["Passing Test"]["tags"] == ["smoke"]
    assert results["Skipped Test"]["status"] == "skipped"

    error = results["Failing Test"]["error"]
    assert error["type"] == "TimeoutError"
    assert error["message"] == "Timeout 5000ms exceeded"
    assert "Fail" in error["stack"]

    [attachment] = results["Attaching Test"]["attachments"]
    assert attachment == {"name": "shot.png", "path": "shot.png", "type": "screenshot", "size": len(b"\x89PNG fake")}

    assert (reports / "test-report.html").is_file()
    assert (reports / "failure-analysis.json").is_file()
