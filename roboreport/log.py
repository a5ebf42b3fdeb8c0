from datetime import UTC, datetime
from pathlib import Path

from robot.api import logger

LEVELS = {"TRACE": 0, "DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}


class ReportLogger:
    """
    Prefixed logger writing through Robot Framework's logging API.

    Outside a Robot execution ``robot.api.logger`` forwards to Python's ``logging``,
    so the same instance works for listeners, scripts and tests.

    :param level: Minimum level that is emitted (TRACE, DEBUG, INFO, WARN or ERROR).
    :param prefix: Text put in front of every message.
    :param console: Mirror info messages to the console as well.
    :param log_file: Optional file that every emitted message is also appended to,
        as ``[<ISO timestamp>] [<LEVEL>] <prefix><message>``.
    """

    def __init__(self, level: str = "INFO", prefix: str = "[RoboReport] ", console: bool = False, log_file: str | Path | None = None):
        level = level.upper()
        if level not in LEVELS:
            raise ValueError(f"Invalid log level '{level}'. Expected one of: {', '.join(LEVELS)}")
        self.level = level
        self.prefix = prefix
        self.console = console
        self.log_file = Path(log_file).expanduser().resolve() if log_file else None

    def child(self, prefix: str) -> "ReportLogger":
        return ReportLogger(level=self.level, prefix=prefix, console=self.console, log_file=self.log_file)

    def is_enabled(self, level: str) -> bool:
        return LEVELS[level] >= LEVELS[self.level]

    def _to_file(self, level: str, msg: str):
        if self.log_file is None:
            return
        line = f"[{datetime.now(UTC).isoformat()}] [{level}] {self.prefix}{msg}\n"
        try:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            with self.log_file.open("a", encoding="utf-8") as handle:
                handle.write(line)
        except OSError as e:
            failed, self.log_file = self.log_file, None
            logger.error(f"{self.prefix}Cannot write log file {failed}, file logging disabled: {e}")

    def trace(self, msg: str):
        if self.is_enabled("TRACE"):
            logger.trace(self.prefix + msg)
            self._to_file("TRACE", msg)

    def debug(self, msg: str):
        if self.is_enabled("DEBUG"):
            logger.debug(self.prefix + msg)
            self._to_file("DEBUG", msg)

    def info(self, msg: str, also_console: bool | None = None):
        if self.is_enabled("INFO"):
            logger.info(self.prefix + msg, also_console=self.console if also_console is None else also_console)
            self._to_file("INFO", msg)

    def warn(self, msg: str):
        if self.is_enabled("WARN"):
            logger.warn(self.prefix + msg)
            self._to_file("WARN", msg)

    def error(self, msg: str):
        logger.error(self.prefix + msg)
        self._to_file("ERROR", msg)
