"""
stagecache - Value Codec

Closed set of value types the cache can store, and the conversions between a
Python value and the raw payload written to disk.

Scalars are stored in their natural text form; composites (lists, tuples,
dicts) are JSON-encoded and flagged as serialized. The type tag recorded in
the entry descriptor restores the original scalar type on read, so an integer
written as b"42" comes back as 42 rather than "42".

Map keys must be strings at every depth; JSON would turn other keys into
strings and the value would not come back as stored.
"""

import json
from datetime import timedelta
from enum import Enum
from typing import Any

from ..errors import CacheInvalidArgumentError, ErrorCode


class ValueType(str, Enum):
    """Semantic type tag recorded for every cached value."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    ARRAY = "array"
    MAP = "map"
    NULL = "null"


COMPOSITE_TYPES = frozenset((ValueType.ARRAY, ValueType.MAP))


def value_type_of(value: Any) -> ValueType:
    """
    Classify a value into its ValueType tag.

    Raises:
        CacheInvalidArgumentError: If the value type is not storable
    """
    # bool before int: bool is an int subclass
    if value is None:
        return ValueType.NULL
    if isinstance(value, bool):
        return ValueType.BOOLEAN
    if isinstance(value, int):
        return ValueType.INTEGER
    if isinstance(value, float):
        return ValueType.FLOAT
    if isinstance(value, str):
        return ValueType.STRING
    if isinstance(value, (list, tuple)):
        return ValueType.ARRAY
    if isinstance(value, dict):
        return ValueType.MAP

    raise CacheInvalidArgumentError(
        f"Unsupported value type: {type(value).__name__}",
        details={"value_type": type(value).__name__, "supported": [t.value for t in ValueType]},
        error_code=ErrorCode.UNSUPPORTED_VALUE,
    )


def _reject_non_string_keys(value: Any, path: str = "$") -> None:
    """
    Walk a composite and reject mapping keys JSON would coerce to strings.

    Raises:
        CacheInvalidArgumentError: On the first non-str key found
    """
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise CacheInvalidArgumentError(
                    f"Map keys must be strings, got {type(key).__name__} at {path}",
                    details={"path": path, "key_type": type(key).__name__},
                    error_code=ErrorCode.UNSUPPORTED_VALUE,
                )
            _reject_non_string_keys(item, f"{path}.{key}")
    elif isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            _reject_non_string_keys(item, f"{path}[{i}]")


def encode_value(value: Any) -> tuple[ValueType, bytes, bool]:
    """
    Encode a value into its on-disk payload.

    Returns:
        Tuple of (value type, payload bytes, serialized flag)

    Raises:
        CacheInvalidArgumentError: If the value cannot be stored
    """
    value_type = value_type_of(value)

    if value_type in COMPOSITE_TYPES:
        try:
            _reject_non_string_keys(value)
        except RecursionError as e:
            raise CacheInvalidArgumentError(
                "Composite value is nested too deeply or contains a cycle",
                details={"value_type": value_type.value},
                error_code=ErrorCode.UNSUPPORTED_VALUE,
            ) from e

        try:
            payload = json.dumps(value, ensure_ascii=False, separators=(",", ":"), allow_nan=True)
        except (TypeError, ValueError) as e:
            raise CacheInvalidArgumentError(
                f"Composite value is not serializable: {e}",
                details={"value_type": value_type.value, "error": str(e)},
                error_code=ErrorCode.UNSUPPORTED_VALUE,
            ) from e
        return value_type, payload.encode("utf-8"), True

    if value_type is ValueType.NULL:
        return value_type, b"", False
    if value_type is ValueType.BOOLEAN:
        return value_type, b"1" if value else b"0", False
    if value_type is ValueType.FLOAT:
        return value_type, repr(value).encode("ascii"), False
    if value_type is ValueType.INTEGER:
        try:
            text = str(value)
        except ValueError as e:
            # int digit limit (sys.set_int_max_str_digits)
            raise CacheInvalidArgumentError(
                f"Integer value cannot be converted to text: {e}",
                details={"value_type": value_type.value, "error": str(e)},
                error_code=ErrorCode.UNSUPPORTED_VALUE,
            ) from e
        return value_type, text.encode("ascii"), False

    return value_type, value.encode("utf-8", "surrogatepass"), False


def decode_value(payload: bytes, value_type: ValueType, serialized: bool) -> Any:
    """
    Restore a value from its payload using the recorded descriptor flags.

    Raises:
        ValueError: If the payload does not match the recorded type, including
            integer text beyond the interpreter's digit limit
    """
    if serialized:
        value = json.loads(payload.decode("utf-8"))
        if value_type is ValueType.ARRAY and not isinstance(value, list):
            raise ValueError(f"Expected serialized array, got {type(value).__name__}")
        if value_type is ValueType.MAP and not isinstance(value, dict):
            raise ValueError(f"Expected serialized map, got {type(value).__name__}")
        return value

    if value_type is ValueType.NULL:
        return None
    if value_type is ValueType.BOOLEAN:
        return payload not in (b"", b"0")
    if value_type is ValueType.INTEGER:
        return int(payload.decode("ascii"))
    if value_type is ValueType.FLOAT:
        return float(payload.decode("ascii"))
    if value_type is ValueType.STRING:
        return payload.decode("utf-8", "surrogatepass")

    raise ValueError(f"Composite type {value_type.value} stored without serialization")


def normalize_ttl(ttl: Any) -> int | None:
    """
    Normalize a TTL argument to whole seconds.

    - None or 0 -> None (no expiry)
    - non-negative int -> the int itself
    - timedelta -> days/hours/minutes/seconds of the absolute duration, summed

    Raises:
        CacheInvalidArgumentError: For any other shape, including bool, float
            and negative integers
    """
    if ttl is None:
        return None

    if isinstance(ttl, timedelta):
        duration = abs(ttl)
        seconds = duration.days * 86400 + duration.seconds
        return seconds or None

    if isinstance(ttl, int) and not isinstance(ttl, bool):
        if ttl < 0:
            raise CacheInvalidArgumentError(
                f"TTL must be non-negative, got {ttl}",
                details={"ttl": ttl},
                error_code=ErrorCode.INVALID_TTL,
            )
        return ttl or None

    raise CacheInvalidArgumentError(
        f"TTL must be an int or a datetime.timedelta, got {type(ttl).__name__}",
        details={"ttl_type": type(ttl).__name__},
        error_code=ErrorCode.INVALID_TTL,
    )
