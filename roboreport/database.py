from dataclasses import fields as dataclass_fields

from sqlalchemy import create_engine, func, inspect
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import sessionmaker

from roboreport.log import ReportLogger
from roboreport.models import FailurePattern, TestMetrics, TestResult
from roboreport.query import QueryBuilder
from roboreport.records import FailurePatternRecord, Record, RunRecord, TestResultRecord
from roboreport.schema import generate_database_class


def masked_url(db_url: str) -> str:
    try:
        return make_url(db_url).render_as_string(hide_password=True)
    except ArgumentError:
        return db_url


def _value(enum_or_str):
    return getattr(enum_or_str, "value", enum_or_str)


class RunDatabase:
    """Exports finished runs (metrics, results and failure patterns) to a SQL database."""

    LOGGER_PREFIX = "[RoboReport DB] "

    def __init__(self, db_url: str = "sqlite:///roboreport.db", logger: ReportLogger | None = None):
        self.db_url = db_url
        self.logger = (logger or ReportLogger()).child(self.LOGGER_PREFIX)

        self.engine = create_engine(db_url)
        self.Session = sessionmaker(bind=self.engine)

        self.model_to_db_class = {}
        for model in (RunRecord, TestResultRecord, FailurePatternRecord):
            self.initialize_table(model)

        self.logger.debug(f"Database connected: {masked_url(db_url)}")

    def initialize_table(self, model) -> type:
        if model in self.model_to_db_class:
            return self.model_to_db_class[model]

        db_class = generate_database_class(model)
        self.model_to_db_class[model] = db_class

        table_name = db_class.__tablename__
        if not inspect(self.engine).has_table(table_name):
            db_class.__table__.create(bind=self.engine, checkfirst=True)
            self.logger.debug(f"Table '{table_name}' created.")
        return db_class

    def allocate_run_id(self, session) -> int:
        db_class = self.model_to_db_class[RunRecord]
        result = session.query(func.max(db_class.run_id)).scalar()
        return (result or 0) + 1

    def record_run(
        self,
        metrics: TestMetrics,
        results: list[TestResult],
        patterns: list[FailurePattern],
        run_name: str = "",
    ) -> int:
        """
        Store one finished run in a single transaction.

        Returns:
            The run_id allocated for the run.
        """
        with self.Session() as session:
            try:
                run_id = self.allocate_run_id(session)
                records: list[Record] = [self._run_record(metrics, run_name)]
                records.extend(self._result_record(r) for r in results)
                records.extend(self._pattern_record(p) for p in patterns)
                for record in records:
                    record.run_id = run_id
                    session.add(self.model_to_db_class[type(record)].from_record(record))
                session.commit()
            except Exception:
                session.rollback()
                raise

        self.logger.debug(f"Run {run_id} stored: {len(results)} results, {len(patterns)} failure patterns.")
        return run_id

    @staticmethod
    def _run_record(metrics: TestMetrics, run_name: str) -> RunRecord:
        return RunRecord(
            name=run_name,
            start_time=metrics.start_time,
            end_time=metrics.end_time,
            duration=metrics.duration,
            total=metrics.total,
            passed=metrics.passed,
            failed=metrics.failed,
            skipped=metrics.skipped,
            flaky=metrics.flaky,
            failure_rate=metrics.failure_rate,
            average_test_duration=metrics.average_test_duration,
            browser=metrics.browser,
            environment=metrics.environment,
        )

    @staticmethod
    def _result_record(result: TestResult) -> TestResultRecord:
        return TestResultRecord(
            name=result.name,
            full_name=result.full_name,
            status=_value(result.status),
            duration=result.duration,
            start_time=result.start_time,
            end_time=result.end_time,
            retries=result.retries,
            error_type=result.error.type if result.error else None,
            error_message=result.error.message if result.error else None,
            tags=list(result.tags),
            attachments=[{"name": a.name, "path": a.path, "type": _value(a.type), "size": a.size} for a in result.attachments],
        )

    @staticmethod
    def _pattern_record(pattern: FailurePattern) -> FailurePatternRecord:
        return FailurePatternRecord(
            category=_value(pattern.category),
            pattern=pattern.pattern,
            severity=_value(pattern.severity),
            occurrences=pattern.occurrences,
            description=pattern.description,
            suggested_fix=pattern.suggested_fix,
            affected_tests=list(pattern.affected_tests),
        )

    def to_record(self, db_obj, model_class):
        model_field_names = {f.name for f in dataclass_fields(model_class)}
        db_data = {column.name: getattr(db_obj, column.name) for column in db_obj.__table__.columns}
        return model_class(**{k: v for k, v in db_data.items() if k in model_field_names})

    def query(self, model) -> QueryBuilder:
        """
        Create a QueryBuilder for the specified record type.

        :param model: Record dataclass (RunRecord, TestResultRecord or FailurePatternRecord)
        :return: QueryBuilder instance
        """
        if model not in self.model_to_db_class:
            raise ValueError(f"Model '{model.__name__}' is not stored by RunDatabase.")
        return QueryBuilder(self, model)

    def disconnect(self):
        self.engine.dispose()
        self.logger.debug("Database disconnected.")
