"""
Parameter helpers for tool handlers.

MCP tool arguments arrive as a JSON-decoded ``dict``: numbers may be ``int`` or
``float``, booleans sometimes arrive as strings, and optional values may be
missing or ``null``. The functions here turn those loosely typed values into
the types a handler needs, raising a ``ValidationError`` subclass with a
message that names the offending parameter.

All "is this the right shape" checks live in this module so every handler
validates its input the same way.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

from gitlab_mcp.errors import (
    EmptyValueError,
    InvalidTimestampError,
    MissingParameterError,
    NotBooleanError,
    NotConvertibleError,
    NotWholeNumberError,
    TypeMismatchError,
    ValidationError,
)

T = TypeVar("T")

# Default number of items per page for list endpoints.
DEFAULT_PAGE_SIZE = 30

# Maximum number of items per page accepted by GitLab.
MAX_PAGE_SIZE = 100

_TRUE_STRINGS = frozenset(["true", "1", "t", "yes", "y"])
_FALSE_STRINGS = frozenset(["false", "0", "f", "no", "n"])
_INTEGER_STRING = re.compile(r"[+-]?[0-9]+")
_RFC3339 = re.compile(r"\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})")


def _type_name(value: Any) -> str:
    return type(value).__name__


def _zero_value(expected_type: Type[T]) -> Optional[T]:
    try:
        return expected_type()
    except TypeError:
        return None


def _check_type(name: str, value: Any, expected_type: Type[T]) -> T:
    # bool never passes as a number; an int is accepted as a float.
    if expected_type is float:
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
    elif expected_type is int:
        ok = isinstance(value, int) and not isinstance(value, bool)
    else:
        ok = isinstance(value, expected_type)
    if not ok:
        raise TypeMismatchError(
            f"parameter {name} is not of expected type {expected_type.__name__}, got {_type_name(value)}",
            parameter=name,
        )
    if expected_type is float:
        return float(value)
    return value


def required_value(args: Optional[Dict[str, Any]], name: str, expected_type: Type[T]) -> T:
    """Get a required parameter of the given type.

    Args:
        args: Tool call arguments
        name: Parameter name
        expected_type: Expected Python type (``str``, ``int``, ``float``, ``bool``, ``list``, ``dict``)

    Returns:
        The parameter value, unchanged

    Raises:
        MissingParameterError: The parameter is absent or ``null``
        TypeMismatchError: The parameter has the wrong type
        EmptyValueError: The parameter equals its type's zero value (``""``, ``0``, ...)
    """
    args = args or {}
    if args.get(name) is None:
        raise MissingParameterError(f"missing required parameter: {name}", parameter=name)
    value = _check_type(name, args[name], expected_type)
    if value == _zero_value(expected_type):
        raise EmptyValueError(f"parameter {name} cannot be empty", parameter=name)
    return value


def optional_value_presence(
    args: Optional[Dict[str, Any]], name: str, expected_type: Type[T]
) -> Tuple[Optional[T], bool]:
    """Get an optional parameter and whether its key was present at all.

    An explicit ``null`` counts as present and yields the zero value. A
    ``TypeMismatchError`` raised here always has ``present`` set.
    """
    args = args or {}
    if name not in args:
        return _zero_value(expected_type), False
    value = args[name]
    if value is None:
        return _zero_value(expected_type), True
    return _check_type(name, value, expected_type), True


def optional_value(args: Optional[Dict[str, Any]], name: str, expected_type: Type[T]) -> Optional[T]:
    """Get an optional parameter, or the type's zero value when it is absent.

    Unlike ``required_value``, an explicit empty string or zero is accepted.
    """
    value, _ = optional_value_presence(args, name, expected_type)
    return value


def required_integer(args: Optional[Dict[str, Any]], name: str) -> int:
    """Get a required, non-zero whole number (e.g. an issue IID)."""
    value = required_value(args, name, float)
    if not value.is_integer():
        raise NotWholeNumberError(f"parameter '{name}' must be a whole number, got {value}", parameter=name)
    return int(value)


def optional_integer_presence(args: Optional[Dict[str, Any]], name: str) -> Tuple[int, bool]:
    """Get an optional integer and whether it was actually supplied.

    Accepts whole floats (JSON numbers), ints and integer strings. A missing
    key, ``null`` and ``""`` all count as not supplied.
    """
    args = args or {}
    value = args.get(name)
    if value is None:
        return 0, False
    if isinstance(value, bool):
        raise NotConvertibleError(
            f"parameter '{name}' must be convertible to an integer, got {_type_name(value)}",
            parameter=name,
        )
    if isinstance(value, float):
        if not value.is_integer():
            raise NotWholeNumberError(f"parameter '{name}' must be a whole number, got {value}", parameter=name)
        return int(value), True
    if isinstance(value, int):
        return value, True
    if isinstance(value, str):
        if value == "":
            return 0, False
        if not _INTEGER_STRING.fullmatch(value):
            raise NotConvertibleError(
                f"parameter '{name}' must be a valid integer string, got '{value}'",
                parameter=name,
            )
        return int(value), True
    raise NotConvertibleError(
        f"parameter '{name}' must be convertible to an integer, got {_type_name(value)}",
        parameter=name,
    )


def optional_integer(args: Optional[Dict[str, Any]], name: str) -> int:
    """Get an optional integer, ``0`` when absent or an empty string."""
    value, _ = optional_integer_presence(args, name)
    return value


def optional_integer_with_default(args: Optional[Dict[str, Any]], name: str, default: int) -> int:
    """Get an optional integer, falling back to ``default``.

    An explicit ``0`` also yields ``default``; it cannot be told apart from an
    absent parameter. Use ``optional_integer_presence`` where ``0`` matters.
    """
    value = optional_integer(args, name)
    if value == 0:
        return default
    return value


def optional_boolean(args: Optional[Dict[str, Any]], name: str) -> Optional[bool]:
    """Get an optional boolean.

    Returns ``None`` when the caller did not specify the parameter, so that
    "not given" stays distinct from ``False``. Strings such as ``"yes"`` or
    ``"0"`` are parsed case-insensitively.
    """
    value = (args or {}).get(name)
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise NotBooleanError(
        f"parameter '{name}' must be a boolean or boolean string, got {value!r}",
        parameter=name,
    )


def optional_timestamp(args: Optional[Dict[str, Any]], name: str) -> Optional[datetime]:
    """Get an optional RFC 3339 timestamp as an aware ``datetime``.

    A date, a time and an offset (``Z`` or ``+HH:MM``) are all required, so
    ``2024-03-01`` or ``2024-03-01T10:00:00`` are rejected.
    """
    raw = optional_value(args, name, str)
    if not raw:
        return None
    error = InvalidTimestampError(
        f"parameter '{name}' must be a valid ISO 8601 timestamp (YYYY-MM-DDTHH:MM:SSZ), got '{raw}'",
        parameter=name,
    )
    if not _RFC3339.fullmatch(raw):
        raise error
    candidate = raw[:-1] + "+00:00" if raw[-1] in "Zz" else raw
    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        raise error from None


def optional_string_list(args: Optional[Dict[str, Any]], name: str) -> List[str]:
    """Get a list of strings from a comma-separated string or a JSON array."""
    value = (args or {}).get(name)
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, list) and all(isinstance(item, str) for item in value):
        items = value
    else:
        raise TypeMismatchError(
            f"parameter {name} is not of expected type comma-separated string or list of strings, "
            f"got {_type_name(value)}",
            parameter=name,
        )
    return [item.strip() for item in items if item.strip()]


def optional_integer_list(args: Optional[Dict[str, Any]], name: str) -> List[int]:
    """Get a list of integers (e.g. user IDs) from a JSON array of numbers.

    Items follow the same rules as ``required_integer``: ``bool`` and strings
    are rejected and floats must be whole.
    """
    value = (args or {}).get(name)
    if value is None:
        return []
    if not isinstance(value, list):
        raise TypeMismatchError(
            f"parameter {name} is not of expected type list, got {_type_name(value)}",
            parameter=name,
        )
    result = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, (int, float)):
            raise TypeMismatchError(
                f"parameter {name} is not of expected type list of integers, got {_type_name(item)} item",
                parameter=name,
            )
        if isinstance(item, float) and not item.is_integer():
            raise NotWholeNumberError(f"parameter '{name}' must contain whole numbers, got {item}", parameter=name)
        result.append(int(item))
    return result


def _page_value(args: Optional[Dict[str, Any]], name: str, default: int) -> int:
    try:
        return optional_integer_with_default(args, name, default)
    except ValidationError as e:
        raise type(e)(f"invalid '{name}' parameter: {e}", parameter=name) from e


def pagination_params(args: Optional[Dict[str, Any]]) -> Tuple[int, int]:
    """Extract ``page`` and ``per_page`` with GitLab's defaults and limits.

    Out-of-range values are corrected silently: ``page`` below 1 becomes 1,
    ``per_page`` below 1 becomes ``DEFAULT_PAGE_SIZE`` and anything above
    ``MAX_PAGE_SIZE`` is clamped to it. ``perPage`` is used when ``per_page``
    is absent or ``null``.

    Returns:
        Tuple of (page, per_page)
    """
    args = args or {}
    page = _page_value(args, "page", 1)
    if page < 1:
        page = 1

    per_page_name = "perPage" if args.get("per_page") is None and "perPage" in args else "per_page"
    per_page = _page_value(args, per_page_name, DEFAULT_PAGE_SIZE)
    if per_page < 1:
        per_page = DEFAULT_PAGE_SIZE
    elif per_page > MAX_PAGE_SIZE:
        per_page = MAX_PAGE_SIZE

    return page, per_page
