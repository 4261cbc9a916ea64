"""Typed accessors for the weakly-typed WebUntis JSON payload.

Each accessor either returns a value of the requested JSON type or raises a
TimetableParseError subclass naming the dotted path of the offending field.
Nothing here defaults silently: absent and mistyped fields are both errors.
"""

from enum import Enum
from typing import Any, TypeVar

from pydantic import ValidationError

from src.untis.errors import (
    MissingFieldError,
    TypeMismatchError,
    UnknownEnumValueError,
)

E = TypeVar("E", bound=Enum)


def join_path(path: str, key: str | int) -> str:
    """Append an object key or array index to a dotted JSON path."""
    if isinstance(key, int):
        return f"{path}[{key}]"
    return f"{path}.{key}" if path else key


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _mismatch(path: str, expected: str, value: Any) -> TypeMismatchError:
    return TypeMismatchError(
        f"field '{path}' is not of type '{expected}' (found {_json_type(value)})",
        path=path,
    )


def require(obj: Any, key: str, path: str = "") -> Any:
    """Return obj[key], failing if obj is not an object or lacks the key."""
    if not isinstance(obj, dict):
        raise _mismatch(path or "<root>", "object", obj)
    if key not in obj:
        field_path = join_path(path, key)
        raise MissingFieldError(
            f"field '{key}' not present at '{path or '<root>'}'", path=field_path
        )
    return obj[key]


def require_object(obj: Any, key: str, path: str = "") -> dict[str, Any]:
    value = require(obj, key, path)
    if not isinstance(value, dict):
        raise _mismatch(join_path(path, key), "object", value)
    return value


def require_list(obj: Any, key: str, path: str = "") -> list[Any]:
    value = require(obj, key, path)
    if not isinstance(value, list):
        raise _mismatch(join_path(path, key), "array", value)
    return value


def as_uint(value: Any, path: str) -> int:
    """Check that a JSON value is a non-negative integer.

    JSON booleans decode to Python bools, which are ints; they are rejected.
    """
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise _mismatch(path, "unsigned integer", value)
    return value


def require_uint(obj: Any, key: str, path: str = "") -> int:
    return as_uint(require(obj, key, path), join_path(path, key))


def require_str(obj: Any, key: str, path: str = "") -> str:
    value = require(obj, key, path)
    if not isinstance(value, str):
        raise _mismatch(join_path(path, key), "string", value)
    return value


def optional_str(obj: Any, key: str, path: str = "") -> str | None:
    """Return obj[key] if present, None if absent; a non-string is still an error."""
    if not isinstance(obj, dict) or key not in obj:
        return None
    return require_str(obj, key, path)


def require_bool(obj: Any, key: str, path: str = "") -> bool:
    value = require(obj, key, path)
    if not isinstance(value, bool):
        raise _mismatch(join_path(path, key), "boolean", value)
    return value


def require_enum(obj: Any, key: str, enum_cls: type[E], path: str = "") -> E:
    """Decode a restricted string field into a member of enum_cls."""
    value = require_str(obj, key, path)
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise UnknownEnumValueError(
            f"unknown value {value!r} for '{join_path(path, key)}' (expected one of {allowed})",
            path=join_path(path, key),
        ) from None


def validation_error(exc: ValidationError, path: str) -> MissingFieldError | TypeMismatchError:
    """Translate the first pydantic validation error into a parse error."""
    first = exc.errors()[0]
    loc = path
    for part in first["loc"]:
        loc = join_path(loc, part)
    if first["type"] == "missing":
        field = first["loc"][-1] if first["loc"] else "?"
        return MissingFieldError(f"field '{field}' not present at '{path}'", path=loc)
    return TypeMismatchError(f"field '{loc}' is invalid: {first['msg']}", path=loc)
