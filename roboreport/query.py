from typing import TYPE_CHECKING, Any, Self

from sqlalchemy import func, select

if TYPE_CHECKING:
    from roboreport.database import RunDatabase


class QueryBuilder:
    """Chainable read access to one exported record type."""

    def __init__(self, db: "RunDatabase", model):
        self.db = db
        self.model = model
        self.db_class = db.model_to_db_class[model]
        self.statement = select(self.db_class)

    def _column(self, attr: str):
        if not hasattr(self.db_class, attr):
            raise ValueError(f"'{attr}' is not a valid attribute of {self.model.__name__}")
        return getattr(self.db_class, attr)

    def where(self, **kwargs) -> Self:
        for attr, value in kwargs.items():
            self.statement = self.statement.where(self._column(attr) == value)
        return self

    def order_by(self, attr: str, order: str = "asc") -> Self:
        column = self._column(attr)
        self.statement = self.statement.order_by(column.desc() if order == "desc" else column.asc())
        return self

    def limit(self, limit: int) -> Self:
        self.statement = self.statement.limit(limit)
        return self

    def _fetch(self, statement) -> list:
        with self.db.Session() as session:
            rows = session.scalars(statement).all()
            return [self.db.to_record(row, self.model) for row in rows]

    def all(self) -> list:
        return self._fetch(self.statement)

    def first(self) -> Any | None:
        # limit a copy of the statement so the builder stays reusable
        rows = self._fetch(self.statement.limit(1))
        return rows[0] if rows else None

    def count(self) -> int:
        with self.db.Session() as session:
            return session.scalar(select(func.count()).select_from(self.statement.subquery()))

    def as_dataframe(self) -> Any:
        """
        Convert the query results to a pandas DataFrame.
        """
        import pandas as pd

        results = self.all()
        if not results:
            return pd.DataFrame()
        return pd.DataFrame([record.__dict__ for record in results])
