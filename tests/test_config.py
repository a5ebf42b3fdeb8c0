import pytest

from roboreport.config import DEFAULT_OUTPUT_DIR, ReporterConfig, parse_option_pairs
from roboreport.errors import ReporterConfigError
from roboreport.log import ReportLogger
from roboreport.reporter import RunReporter


def test_defaults():
    config = ReporterConfig.from_options()

    assert config.output_dir == DEFAULT_OUTPUT_DIR
    assert (config.html, config.json, config.summary) == (True, True, True)
    assert config.database_url is None
    assert config.log_level == "INFO"


def test_from_option_strings():
    config = ReporterConfig.from_options(["output_dir=out/reports", "html=false", "summary=No", "browser=firefox", "log_level=debug"])

    assert config.output_dir == "out/reports"
    assert config.html is False
    assert config.summary is False
    assert config.json is True
    assert config.browser == "firefox"
    assert config.log_level == "DEBUG"


def test_from_mapping_keeps_bools_and_defaults_empty_values():
    config = ReporterConfig.from_options({"json": False, "database_url": "", "run_name": "nightly"})

    assert config.json is False
    assert config.database_url is None
    assert config.run_name == "nightly"


def test_option_values_may_contain_equals_sign():
    assert parse_option_pairs(["database_url=sqlite:///x.db?mode=ro"]) == {"database_url": "sqlite:///x.db?mode=ro"}


@pytest.mark.parametrize(
    "options",
    [
        ["colour=blue"],
        ["html=maybe"],
        ["output_dir"],
        {"log_level": "LOUD"},
    ],
)
def test_invalid_options_are_rejected(options):
    with pytest.raises(ReporterConfigError):
        ReporterConfig.from_options(options)


def test_unknown_keys_are_reported_in_metadata():
    with pytest.raises(ReporterConfigError) as excinfo:
        ReporterConfig.from_options({"colour": "blue", "html": "true"})

    assert excinfo.value.metadata == {"unknown": ["colour"]}
    assert isinstance(excinfo.value, ValueError)


def test_report_dir_is_absolute(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    config = ReporterConfig(output_dir="reports")
    assert config.report_dir == tmp_path.resolve() / "reports"


def test_labels_only_fill_gaps():
    config = ReporterConfig(browser="webkit").with_labels(browser="chromium", environment="qa")

    assert config.browser == "webkit"
    assert config.environment == "qa"


def test_logger_levels():
    logger = ReportLogger(level="warn")

    assert logger.is_enabled("ERROR")
    assert not logger.is_enabled("INFO")
    assert logger.child("[x] ").level == "WARN"
    with pytest.raises(ValueError):
        ReportLogger(level="loud")


def test_logger_writes_through_python_logging_outside_robot(caplog):
    caplog.set_level("DEBUG")

    ReportLogger(level="DEBUG", prefix="[test] ").debug("hello")
    ReportLogger(level="WARN", prefix="[test] ").info("dropped")

    messages = [record.getMessage() for record in caplog.records]
    assert "[test] hello" in messages
    assert "[test] dropped" not in messages


def test_logger_appends_to_log_file(tmp_path):
    log_file = tmp_path / "logs" / "reporter.log"
    logger = ReportLogger(level="INFO", prefix="[test] ", log_file=str(log_file))

    logger.info("first")
    logger.debug("below threshold")
    logger.child("[child] ").warn("second")

    lines = log_file.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert lines[0].endswith("[INFO] [test] first")
    assert lines[1].endswith("[WARN] [child] second")
    assert lines[0].startswith("[20")


def test_unwritable_log_file_disables_file_logging(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    logger = ReportLogger(log_file=str(blocker / "reporter.log"))

    logger.info("still logged elsewhere")

    assert logger.log_file is None


def test_log_file_option_reaches_the_reporter_logger(tmp_path):
    log_file = tmp_path / "run.log"
    reporter = RunReporter(ReporterConfig.from_options([f"output_dir={tmp_path}", f"log_file={log_file}", "console=false"]))

    reporter.on_begin()

    assert "Test execution started" in log_file.read_text(encoding="utf-8")
