import html
import re
from collections import Counter
from datetime import timedelta
from pathlib import Path

from robot import result, running
from robot.api.interfaces import ListenerV3
from robot.libraries.BuiltIn import BuiltIn, RobotNotRunningError

from roboreport.config import ReporterConfig, parse_option_pairs
from roboreport.log import ReportLogger
from roboreport.models import Attachment, AttachmentType, ErrorLocation, TestError, TestResult, TestStatus
from roboreport.reporter import RunReporter

FULL_NAME_SEPARATOR = " › "

STATUS_MAP = {
    "PASS": TestStatus.PASSED,
    "FAIL": TestStatus.FAILED,
    "SKIP": TestStatus.SKIPPED,
    "NOT RUN": TestStatus.SKIPPED,
}

ERROR_PREFIX_RE = re.compile(r"^\s*([A-Za-z_][\w.]*(?:Error|Exception|Failure)):\s*(.*)$", re.DOTALL)
LINK_RE = re.compile(r"""(?:src|href)="([^"]+)\"""")
TYPE_ATTR_RE = re.compile(r"""data-roboreport-type="([^"]+)\"""")
NAME_ATTR_RE = re.compile(r"""data-roboreport-name="([^"]+)\"""")

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp"}
VIDEO_SUFFIXES = {".webm", ".mp4", ".avi", ".mov"}


def infer_attachment_type(name: str) -> AttachmentType:
    lowered = name.lower()
    suffix = Path(lowered).suffix
    if "screenshot" in lowered or suffix in IMAGE_SUFFIXES:
        return AttachmentType.SCREENSHOT
    if "video" in lowered or suffix in VIDEO_SUFFIXES:
        return AttachmentType.VIDEO
    if "trace" in lowered or suffix == ".zip":
        return AttachmentType.TRACE
    return AttachmentType.LOG


def build_error(message: str | None, failed_keywords: list[tuple] | None = None) -> TestError:
    """
    Turn a Robot failure message into a TestError.

    ``failed_keywords`` holds ``(name, source, lineno)`` of failing keywords, innermost first.
    """
    text = (message or "").strip()
    match = ERROR_PREFIX_RE.match(text)
    if match:
        error_type, text = match.group(1), match.group(2).strip()
    else:
        error_type = "Error"

    location = None
    stack = None
    if failed_keywords:
        located = [kw for kw in failed_keywords if kw[1]]
        if located:
            _, source, lineno = located[0]
            location = ErrorLocation(file=str(source), line=lineno or 0)
        stack = "\n".join(
            f"at {name} ({source}:{lineno})" if source else f"at {name}" for name, source, lineno in failed_keywords
        )

    return TestError(message=text or "Unknown error", type=error_type, stack=stack, location=location)


def _elapsed_ms(test_result) -> float:
    elapsed = getattr(test_result, "elapsed_time", None)
    if isinstance(elapsed, timedelta):
        return elapsed.total_seconds() * 1000
    return float(getattr(test_result, "elapsedtime", 0) or 0)


class listener(ListenerV3):  # noqa: N801
    """
    Robot Framework listener producing the RoboReport artifacts.

    Usage::

        robot --listener roboreport.listener:output_dir=reports:html=true tests/

    Use ``;`` as the separator when a value contains colons::

        robot --listener "roboreport.listener;database_url=sqlite:///runs.db" tests/
    """

    LOGGER_PREFIX = "[RoboReport Listener] "

    def __init__(self, *args, **options):
        self.config = ReporterConfig.from_options({**parse_option_pairs(args), **options})
        self.logger = ReportLogger(
            level=self.config.log_level, prefix=self.LOGGER_PREFIX, console=self.config.console, log_file=self.config.log_file
        )
        self.reporter = None
        self.suite_stack = []
        self.attempts = Counter()
        self.in_test = False
        self.failed_keywords = []
        self.attachments = []

    def _variable(self, name: str):
        try:
            value = BuiltIn().get_variable_value(name)
        except RobotNotRunningError:
            return None
        return None if value is None else str(value)

    def _initialize(self):
        """Resolve labels from Robot variables and start the run."""
        self.logger.info("Initializing RoboReport listener", also_console=False)
        config = self.config.with_labels(
            browser=self._variable("${RR_BROWSER}") or self._variable("${BROWSER}"),
            environment=self._variable("${RR_ENVIRONMENT}"),
        )
        self.reporter = RunReporter(config, logger=self.logger.child(RunReporter.LOGGER_PREFIX))
        self.reporter.on_begin()

    def start_suite(self, data: running.TestSuite, result: result.TestSuite):
        if self.reporter is None:
            self._initialize()
        self.suite_stack.append(data.name)

    def end_suite(self, data: running.TestSuite, result: result.TestSuite):
        if self.suite_stack:
            self.suite_stack.pop()

    def start_test(self, data: running.TestCase, result: result.TestCase):
        self.in_test = True
        self.failed_keywords = []
        self.attachments = []

    def end_keyword(self, data: running.Keyword, result: result.Keyword):
        if not self.in_test or getattr(result, "status", None) != "FAIL":
            return
        name = getattr(result, "full_name", None) or getattr(result, "name", "")
        self.failed_keywords.append((name, getattr(data, "source", None), getattr(data, "lineno", None)))

    def log_message(self, message: result.Message):
        if not self.in_test or not getattr(message, "html", False):
            return
        text = message.message
        type_match = TYPE_ATTR_RE.search(text)
        name_match = NAME_ATTR_RE.search(text)
        seen = {a.path for a in self.attachments}
        for link in LINK_RE.findall(text):
            path = html.unescape(link)
            if path.startswith("file://"):
                path = path[len("file://"):]
            elif "://" in path or path.startswith("data:") or path in seen:
                continue
            seen.add(path)
            name = html.unescape(name_match.group(1)) if name_match else Path(path).name
            try:
                attachment_type = AttachmentType(type_match.group(1)) if type_match else infer_attachment_type(name)
            except ValueError:
                attachment_type = infer_attachment_type(name)
            self.attachments.append(Attachment(name=name, path=path, type=attachment_type, size=self._file_size(path)))

    def _file_size(self, path: str) -> int | None:
        candidate = Path(path)
        if not candidate.is_absolute():
            output_dir = self._variable("${OUTPUT DIR}")
            if output_dir:
                candidate = Path(output_dir) / candidate
        try:
            return candidate.stat().st_size
        except OSError:
            return None

    def end_test(self, data: running.TestCase, result: result.TestCase):
        self.in_test = False
        full_name = FULL_NAME_SEPARATOR.join([*self.suite_stack, data.name])
        retries = self.attempts[full_name]
        self.attempts[full_name] += 1

        status = STATUS_MAP.get(getattr(result, "status", ""), TestStatus.FAILED)
        if status is TestStatus.PASSED and retries > 0:
            status = TestStatus.FLAKY
        error = build_error(result.message, self.failed_keywords) if status is TestStatus.FAILED else None

        self.reporter.on_test_end(
            TestResult(
                name=data.name,
                full_name=full_name,
                status=status,
                duration=_elapsed_ms(result),
                start_time=getattr(result, "start_time", None),
                error=error,
                retries=retries,
                attachments=tuple(self.attachments),
                tags=tuple(getattr(result, "tags", ())),
            )
        )

    def close(self):
        if self.reporter is None:
            self.logger.warn("No suite was started. Skipping report generation.")
            return
        self.logger.info("Closing RoboReport listener", also_console=False)
        self.reporter.on_end()
