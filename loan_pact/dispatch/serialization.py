"""JSON rendering of notifications and agreements for dispatch and responses."""

import json
from collections.abc import Mapping
from dataclasses import fields, is_dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any


def serialize_value(value: Any) -> Any:
    """Turn one model value into something ``json`` can encode.

    Money stays a string so no precision is lost; enums become their value;
    datetimes become naive ISO-8601 local time.
    """
    if value is None or (isinstance(value, (bool, int, float, str)) and not isinstance(value, Enum)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        # datetime is a date subclass
        return value.isoformat()
    if is_dataclass(value) or isinstance(value, Mapping):
        return to_dict(value)
    if isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]
    return str(value)


def to_dict(obj: Any) -> dict[str, Any]:
    """Field-by-field dict of a model instance or mapping."""
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: serialize_value(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, Mapping):
        return {str(k): serialize_value(v) for k, v in obj.items()}
    return {"value": str(obj)}


def to_json(obj: Any, indent: int | None = None) -> str:
    """Compact (or indented) JSON text of ``to_dict(obj)``, non-ASCII kept."""
    separators = None if indent else (",", ":")
    return json.dumps(to_dict(obj), ensure_ascii=False, indent=indent, separators=separators)
