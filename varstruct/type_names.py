"""Human readable names of types, as used in error messages."""

from __future__ import annotations

import collections.abc
import dataclasses
import enum
import types
import typing
from typing import Any

_BUILTIN_NAMES: dict[Any, str] = {
    type(None): "null",
    bool: "boolean",
    int: "int32",
    float: "double",
    str: "string",
}


def _custom_name(tp: Any) -> str | None:
    """Name declared by the type itself through a ``type_name`` attribute."""
    if not isinstance(tp, type):
        return None
    declared = getattr(tp, "type_name", None)
    if declared is None or isinstance(declared, enum.Enum):
        return None
    if isinstance(declared, str):
        return declared
    if callable(declared):
        return str(declared())
    return None


def _literal_name(value: Any) -> str:
    if isinstance(value, str):
        return f"{value} literal"
    if isinstance(value, enum.Enum):
        underlying = value.value
        if isinstance(underlying, bool):
            underlying = int(underlying)
        return f"{type_name(type(value))}{{{underlying}}}"
    if isinstance(value, bool):
        return f"{type_name(bool)}{{{int(value)}}}"
    return f"{type_name(type(value))}{{{value}}}"


def _union_name(args: tuple[Any, ...]) -> str:
    members = [arg for arg in args if arg is not type(None)]
    if len(members) < len(args):
        if len(members) == 1:
            return f"optional {type_name(members[0])}"
        return f"optional {_union_name(tuple(members))}"
    return "one of [" + ", ".join(type_name(arg) for arg in members) + "]"


def type_name(tp: Any) -> str:
    """Return the name of ``tp``.

    Raises ``TypeError`` for types that have no name.
    """
    if tp is None:
        tp = type(None)

    try:
        builtin = _BUILTIN_NAMES.get(tp)
    except TypeError:
        builtin = None
    if builtin is not None:
        return builtin

    origin = typing.get_origin(tp)
    if origin is None:
        declared = _custom_name(tp)
        if declared is not None:
            return declared
        if isinstance(tp, type) and (issubclass(tp, enum.Enum) or dataclasses.is_dataclass(tp)):
            return tp.__name__
        raise TypeError(f"no type name for {tp!r}")

    args = typing.get_args(tp)
    if origin is typing.Union or origin is types.UnionType:
        return _union_name(args)
    if origin is typing.Literal:
        if len(args) == 1:
            return _literal_name(args[0])
        return "one of [" + ", ".join(_literal_name(arg) for arg in args) + "]"
    if isinstance(origin, type):
        if issubclass(origin, collections.abc.Mapping) and len(args) == 2:
            key, value = args
            return f"map of {type_name(key)}-{type_name(value)}"
        if issubclass(origin, tuple):
            if len(args) == 2 and args[1] is Ellipsis:
                return f"list of {type_name(args[0])}"
            raise TypeError(f"no type name for {tp!r}")
        if issubclass(origin, collections.abc.Iterable) and len(args) == 1:
            return f"list of {type_name(args[0])}"
    raise TypeError(f"no type name for {tp!r}")