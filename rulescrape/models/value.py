"""Result value model for extracted records."""

from datetime import date, datetime
from typing import Any, Union

# JSON-compatible tagged union produced by extraction
Value = Union[None, str, int, float, bool, dict[str, "Value"], list["Value"]]


def to_value(obj: Any) -> Value:
    """Normalize a transformation output into a Value.

    Dates become ISO-8601 strings and tuples become lists.

    Raises:
        TypeError: If the object has no Value representation
    """
    if obj is None or isinstance(obj, (str, bool, int, float)):
        return obj
    if isinstance(obj, datetime):
        return obj.replace(microsecond=0).isoformat()
    if isinstance(obj, date):
        return datetime(obj.year, obj.month, obj.day).isoformat()
    if isinstance(obj, (list, tuple)):
        return [to_value(item) for item in obj]
    if isinstance(obj, dict):
        return {str(key): to_value(item) for key, item in obj.items()}
    raise TypeError(f"Cannot represent {type(obj).__name__} as an extraction value")
