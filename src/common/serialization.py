"""Serialization of records into JSON-safe job payloads and results."""

from dataclasses import asdict
from datetime import datetime
from enum import Enum
from typing import Any


def to_json_value(value: Any) -> Any:
    """Convert datetimes to ISO strings and enums to their values, recursively."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: to_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_value(item) for item in value]
    return value


def serialize_dataclass(obj) -> dict:
    """Serialize a dataclass to a JSON-safe dict."""
    return to_json_value(asdict(obj))
