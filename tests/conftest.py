from datetime import UTC, datetime

import pytest

from roboreport.models import TestError, TestResult, TestStatus

START = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def make_result(name="case", status=TestStatus.PASSED, duration=100.0, error=None, retries=0, suite="Suite", **kwargs):
    return TestResult(
        name=name,
        full_name=f"{suite} › {name}",
        status=status,
        duration=duration,
        start_time=kwargs.pop("start_time", START),
        error=error,
        retries=retries,
        **kwargs,
    )


def make_failure(name="broken", message="boom", error_type="Error", **kwargs):
    kwargs.setdefault("error", TestError(message=message, type=error_type))
    return make_result(name=name, status=TestStatus.FAILED, **kwargs)


@pytest.fixture
def result_factory():
    return make_result


@pytest.fixture
def failure_factory():
    return make_failure
