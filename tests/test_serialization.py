import json

from roboreport.analyzer import FailureAnalyzer
from roboreport.collector import MetricsCollector
from roboreport.models import Attachment, AttachmentType, ErrorLocation, TestError
from roboreport.serialization import (
    camel_to_snake,
    metrics_from_dict,
    pattern_from_dict,
    result_from_dict,
    snake_to_camel,
    to_json_dict,
)


def test_key_case_conversion():
    assert snake_to_camel("average_test_duration") == "averageTestDuration"
    assert snake_to_camel("total") == "total"
    assert camel_to_snake("averageTestDuration") == "average_test_duration"
    assert camel_to_snake("fullName") == "full_name"


def test_result_layout_omits_missing_values(result_factory):
    payload = to_json_dict(result_factory("ok", tags=["smoke"]))

    assert payload["fullName"] == "Suite › ok"
    assert payload["status"] == "passed"
    assert payload["startTime"] == "2024-05-01T12:00:00+00:00"
    assert payload["endTime"] == "2024-05-01T12:00:00.100000+00:00"
    assert payload["tags"] == ["smoke"]
    assert "error" not in payload


def test_result_survives_json(failure_factory):
    result = failure_factory(
        "broken",
        error=TestError(
            message="Timeout 5000ms exceeded",
            type="TimeoutError",
            stack="at Click (cart.robot:12)",
            location=ErrorLocation(file="cart.robot", line=12),
        ),
        retries=1,
        attachments=[Attachment(name="shot.png", path="/tmp/shot.png", type=AttachmentType.SCREENSHOT, size=2048)],
    )

    restored = result_from_dict(json.loads(json.dumps(to_json_dict(result))))
    assert restored == result


def test_metrics_survive_json(result_factory, failure_factory):
    collector = MetricsCollector(browser="webkit", environment="ci")
    collector.start()
    collector.record_test(result_factory("ok", duration=120))
    collector.record_test(failure_factory("bad", message="net::ERR_FAILED", duration=40))
    collector.finish()
    metrics = collector.get_metrics()

    restored = metrics_from_dict(json.loads(json.dumps(to_json_dict(metrics))))
    assert restored == metrics
    assert restored.top_failures[0].tests == ("Suite › bad",)


def test_pattern_survives_json(failure_factory):
    [pattern] = FailureAnalyzer([failure_factory(message="401 Unauthorized")]).analyze_failures()

    restored = pattern_from_dict(json.loads(json.dumps(to_json_dict(pattern))))
    assert restored == pattern
