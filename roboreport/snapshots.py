import json

from roboreport.analyzer import FailureAnalyzer
from roboreport.models import TestMetrics, TestResult
from roboreport.serialization import to_json_dict

TEST_RESULTS_FILE = "test-results.json"
METRICS_FILE = "metrics.json"
FAILURE_ANALYSIS_FILE = "failure-analysis.json"


def _dumps(payload) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


def render_results_snapshot(metrics: TestMetrics, results: list[TestResult]) -> str:
    return _dumps({"metrics": to_json_dict(metrics), "results": to_json_dict(results)})


def render_metrics_snapshot(metrics: TestMetrics) -> str:
    return _dumps(to_json_dict(metrics))


def render_failure_snapshot(analyzer: FailureAnalyzer) -> str:
    return analyzer.to_json()


def render_snapshots(metrics: TestMetrics, results: list[TestResult], analyzer: FailureAnalyzer) -> dict[str, str]:
    """The three machine-readable artifacts, keyed by file name."""
    return {
        TEST_RESULTS_FILE: render_results_snapshot(metrics, results),
        METRICS_FILE: render_metrics_snapshot(metrics),
        FAILURE_ANALYSIS_FILE: render_failure_snapshot(analyzer),
    }
