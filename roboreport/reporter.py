import threading
from collections.abc import Callable

from roboreport.analyzer import FailureAnalyzer
from roboreport.artifacts import ensure_directory, write_artifact
from roboreport.collector import MetricsCollector
from roboreport.config import ReporterConfig
from roboreport.database import RunDatabase, masked_url
from roboreport.digest import SUMMARY_FILE, render_digest
from roboreport.errors import ArtifactRenderError, ArtifactWriteError, ReportArtifactError
from roboreport.html_report import render_html
from roboreport.log import ReportLogger
from roboreport.models import ReportOutcome, TestResult, TestStatus
from roboreport.snapshots import (
    FAILURE_ANALYSIS_FILE,
    METRICS_FILE,
    TEST_RESULTS_FILE,
    render_failure_snapshot,
    render_metrics_snapshot,
    render_results_snapshot,
)

HTML_FILE = "test-report.html"
DATABASE_ARTIFACT = "database"

DEFAULT_BROWSER = "chromium"
DEFAULT_ENVIRONMENT = "dev"


class RunReporter:
    """
    Drives one run: results in through ``on_test_end``, artifacts out at ``on_end``.

    Each artifact is produced independently; a failing one is logged and recorded in the
    returned ``ReportOutcome`` without stopping the others.
    """

    LOGGER_PREFIX = "[RoboReport] "

    def __init__(self, config: ReporterConfig | None = None, logger: ReportLogger | None = None):
        self.config = config or ReporterConfig()
        self.logger = logger or ReportLogger(
            level=self.config.log_level, prefix=self.LOGGER_PREFIX, console=self.config.console, log_file=self.config.log_file
        )
        self.report_dir = self.config.report_dir
        self.collector = MetricsCollector(
            browser=self.config.browser or DEFAULT_BROWSER,
            environment=self.config.environment or DEFAULT_ENVIRONMENT,
        )
        self.outcome = None
        self._lock = threading.Lock()

    def _ensure_report_dir(self) -> bool:
        try:
            ensure_directory(self.report_dir)
        except OSError as e:
            self.logger.error(f"Cannot create report directory at {self.report_dir}: {e}")
            return False
        return True

    def on_begin(self):
        self.collector.start()
        if self._ensure_report_dir():
            self.logger.debug(f"Report directory: {self.report_dir}")
        self.logger.info("Test execution started")

    def on_test_end(self, result: TestResult):
        with self._lock:
            self.collector.record_test(result)
        self._log_test_result(result)

    def _log_test_result(self, result: TestResult):
        status = getattr(result.status, "value", str(result.status))
        message = f"{status.upper():<8} {result.full_name} ({(result.duration or 0) / 1000:.2f}s)"
        if result.retries:
            message += f" [Retry: {result.retries}]"
        self.logger.info(message, also_console=False)
        if result.status == TestStatus.FAILED and result.error is not None:
            self.logger.debug(f"  {result.error.type}: {result.error.message}")

    def on_end(self) -> ReportOutcome:
        if self.outcome is not None:
            self.logger.warn("on_end() called more than once; keeping the first report.")
            return self.outcome

        with self._lock:
            self.collector.finish()
        metrics = self.collector.get_metrics()
        results = self.collector.get_test_results()
        analyzer = FailureAnalyzer(self.collector.get_failed_tests())
        patterns = analyzer.analyze_failures()

        self.logger.info(self.collector.get_summary())
        self._ensure_report_dir()

        outcome = ReportOutcome()
        if self.config.html:
            self._produce(outcome, HTML_FILE, lambda: render_html(metrics, results, patterns))
        if self.config.json:
            self._produce(outcome, TEST_RESULTS_FILE, lambda: render_results_snapshot(metrics, results))
            self._produce(outcome, METRICS_FILE, lambda: render_metrics_snapshot(metrics))
            self._produce(outcome, FAILURE_ANALYSIS_FILE, lambda: render_failure_snapshot(analyzer))
        if self.config.summary:
            self._produce(outcome, SUMMARY_FILE, lambda: render_digest(metrics, analyzer))
        if self.config.database_url:
            self._export_database(outcome, metrics, results, patterns)

        self._log_artifact_index(outcome)
        self.outcome = outcome
        return outcome

    def _produce(self, outcome: ReportOutcome, file_name: str, render: Callable[[], str]):
        target = self.report_dir / file_name
        try:
            try:
                content = render()
            except Exception as e:
                raise ArtifactRenderError(file_name, target, e) from e
            outcome.artifacts[file_name] = write_artifact(file_name, target, content)
        except ReportArtifactError as e:
            outcome.errors[file_name] = e
            self.logger.error(str(e))

    def _export_database(self, outcome, metrics, results, patterns):
        db = None
        try:
            db = RunDatabase(self.config.database_url, logger=self.logger)
            run_id = db.record_run(metrics, results, patterns, run_name=self.config.run_name)
            self.logger.debug(f"Run exported with run_id {run_id}")
            outcome.artifacts[DATABASE_ARTIFACT] = masked_url(self.config.database_url)
        except Exception as e:
            error = ArtifactWriteError(DATABASE_ARTIFACT, masked_url(self.config.database_url), e)
            outcome.errors[DATABASE_ARTIFACT] = error
            self.logger.error(str(error))
        finally:
            if db is not None:
                db.disconnect()

    def _log_artifact_index(self, outcome: ReportOutcome):
        lines = ["Reports generated:"]
        for name, location in outcome.artifacts.items():
            lines.append(f"  - {name}: {location}")
        for name, error in outcome.errors.items():
            lines.append(f"  - {name}: FAILED ({error.cause})")
        self.logger.info("\n".join(lines))
