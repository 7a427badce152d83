"""
JSON formatting helpers for API responses.

Store rows carry ``Decimal`` prices, ``datetime`` timestamps and enum
statuses; these helpers turn them into plain JSON values.
"""
import enum
from datetime import date, datetime
from decimal import Decimal


def json_value(value):
    """
    Convert a single column value to a JSON-friendly value.

    Examples:
        Decimal('12.50') -> 12.5
        datetime(2024, 1, 5, 10, 30) -> '2024-01-05T10:30:00'
        OrderStatus.NEW -> 'new'
    """
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    return value


def serialize(data):
    """Recursively convert rows (dicts), lists of rows and nested values."""
    if isinstance(data, dict):
        return {key: serialize(value) for key, value in data.items()}
    if isinstance(data, (list, tuple)):
        return [serialize(item) for item in data]
    return json_value(data)
