from roboreport.analyzer import FailureAnalyzer
from roboreport.collector import format_metrics_summary
from roboreport.models import TestMetrics

SUMMARY_FILE = "summary.txt"


def render_digest(metrics: TestMetrics, analyzer: FailureAnalyzer) -> str:
    """Run summary, followed by the failure analysis when anything failed."""
    digest = format_metrics_summary(metrics)
    if metrics.failed > 0:
        digest += "\n\n" + analyzer.generate_summary()
    return digest
