from dataclasses import fields, is_dataclass
from datetime import datetime
from functools import cache

from sqlalchemy import JSON, Column, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import declarative_base

from roboreport.serialization import camel_to_snake

Base = declarative_base()

# Short, filterable text columns; every other str field is stored as Text.
INDEXABLE_TEXT_FIELDS = {"name", "status", "category", "severity"}

column_types = {
    bool: Integer,
    float: Float,
    int: Integer,
    str: Text,
    datetime: DateTime,
    list: JSON,
    dict: JSON,
}


def _column_for(name: str, field_type) -> Column:
    if name == "run_id":
        return Column(Integer, index=True)
    if name in INDEXABLE_TEXT_FIELDS:
        return Column(String(255))
    if field_type in column_types:
        return Column(column_types[field_type])
    raise ValueError(f"Unsupported field type: {name} {field_type}")


@cache
def generate_database_class(record_type: type):
    """
    Generate (once per record type) the SQLAlchemy class storing a record dataclass.

    Args:
        record_type: The record dataclass to map.

    Raises:
        TypeError: If the provided type is not a dataclass.
        ValueError: If the dataclass contains unsupported field types.

    Returns:
        A declarative class named ``<Record>DB`` with an ``id`` primary key plus one column per field.
    """
    if not is_dataclass(record_type):
        raise TypeError(f"{record_type.__name__} is not a dataclass")

    attrs = {"__tablename__": camel_to_snake(record_type.__name__), "id": Column(Integer, primary_key=True)}
    attrs.update({f.name: _column_for(f.name, f.type) for f in fields(record_type)})

    @classmethod
    def from_record(cls, record):
        return cls(**{f.name: getattr(record, f.name) for f in fields(record)})

    attrs["from_record"] = from_record

    return type(record_type.__name__ + "DB", (Base,), attrs)
