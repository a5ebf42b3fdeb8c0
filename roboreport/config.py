from collections.abc import Iterable, Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path

from roboreport.errors import ReporterConfigError
from roboreport.log import LEVELS

DEFAULT_OUTPUT_DIR = "test-results/reports"

TRUE_VALUES = {"true", "yes", "on", "1"}
FALSE_VALUES = {"false", "no", "off", "0"}


@dataclass(frozen=True)
class ReporterConfig:
    """
    Every option the reporter understands.

    - ``output_dir``: where artifacts are written, resolved against the working directory.
    - ``html``: write ``test-report.html``.
    - ``json``: write ``test-results.json``, ``metrics.json`` and ``failure-analysis.json``.
    - ``summary``: write ``summary.txt``.
    - ``database_url``: SQLAlchemy URL; when set, the run is also exported to that database.
    - ``run_name``: name stored with the exported run.
    - ``browser`` / ``environment``: labels carried in the metrics.
    - ``log_level``: minimum level of the reporter's own log messages.
    - ``console``: mirror informational messages to the console.
    - ``log_file``: also append the reporter's log messages to this file.
    """

    output_dir: str = DEFAULT_OUTPUT_DIR
    html: bool = True
    json: bool = True
    summary: bool = True
    database_url: str | None = None
    run_name: str = "RoboReport Run"
    browser: str | None = None
    environment: str | None = None
    log_level: str = "INFO"
    console: bool = True
    log_file: str | None = None

    def __post_init__(self):
        level = str(self.log_level).upper()
        if level not in LEVELS:
            raise ReporterConfigError(f"Invalid log_level '{self.log_level}'. Expected one of: {', '.join(LEVELS)}")
        object.__setattr__(self, "log_level", level)

    @property
    def report_dir(self) -> Path:
        return Path(self.output_dir).expanduser().resolve()

    def with_labels(self, browser: str | None = None, environment: str | None = None) -> "ReporterConfig":
        """Fill in labels that were not given explicitly."""
        return replace(
            self,
            browser=self.browser or browser,
            environment=self.environment or environment,
        )

    @classmethod
    def from_options(cls, options: Mapping | Iterable[str] | None = None) -> "ReporterConfig":
        """
        Build a config from a mapping or from ``key=value`` strings.

        Robot Framework passes listener arguments as separate strings, e.g.
        ``--listener roboreport.listener:output_dir=reports:html=false``.

        Raises:
            ReporterConfigError: On unknown keys or values that cannot be converted.
        """
        if options is None:
            return cls()
        if not isinstance(options, Mapping):
            options = parse_option_pairs(options)

        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(options) - set(known))
        if unknown:
            raise ReporterConfigError(
                f"Unknown reporter option(s): {', '.join(unknown)}. Known options: {', '.join(known)}",
                metadata={"unknown": unknown},
            )

        values = {}
        for key, raw in options.items():
            if known[key].type is bool:
                values[key] = _to_bool(key, raw)
            elif raw is None or raw == "":
                values[key] = known[key].default
            else:
                values[key] = str(raw)
        return cls(**values)


def parse_option_pairs(items: Iterable[str]) -> dict:
    parsed = {}
    for item in items:
        if "=" not in item:
            raise ReporterConfigError(f"Invalid reporter option '{item}'. Expected 'key=value'.")
        key, value = item.split("=", 1)
        parsed[key.strip()] = value.strip()
    return parsed


def _to_bool(key: str, value) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ReporterConfigError(f"Invalid boolean for '{key}': '{value}'")
