"""Text forms of values and dataclass structs."""

from __future__ import annotations

import collections.abc
import dataclasses
import enum
import json
from typing import Any

from varstruct.traits import to_variant, to_variant_impl
from varstruct.type_names import type_name

__all__ = ["format_value", "format_struct", "to_pretty_json", "OStream", "JsonOStream"]


def _format_mapping(value: collections.abc.Mapping) -> str:
    entries = [f"{format_value(k)}: {format_value(v)}" for k, v in value.items()]
    return "{ " + "; ".join(entries) + (";" if entries else "") + " }"


def format_value(value: Any) -> str:
    """Render ``value`` the way a stream would print it.

    ``None`` prints as ``None``, booleans as ``1``/``0``, enums by member name,
    mappings as ``{ k: v; k2: v2; }`` and other collections as ``[a, b]``.
    Anything else prints through ``str``.
    """
    if value is None:
        return "None"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, enum.Enum):
        return value.name
    if isinstance(value, float):
        return f"{value:g}"
    if isinstance(value, (str, int)):
        return str(value)
    if isinstance(value, collections.abc.Mapping):
        return _format_mapping(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return "[" + ", ".join(format_value(item) for item in value) + "]"
    return str(value)


def format_struct(obj: Any) -> str:
    """Render a dataclass instance as ``Name { field: value; ... }``."""
    cls = type(obj)
    if not dataclasses.is_dataclass(cls) or isinstance(obj, type):
        raise TypeError(f"{cls.__name__} is not a dataclass instance")
    parts = [f"{type_name(cls)} {{ "]
    for field in dataclasses.fields(cls):
        parts.append(f"{field.name}: {format_value(getattr(obj, field.name))}; ")
    parts.append("}")
    return "".join(parts)


def to_pretty_json(value: Any) -> str:
    """Convert ``value`` to a variant and dump it as JSON indented by four spaces."""
    if (
        dataclasses.is_dataclass(value)
        and not isinstance(value, type)
        and not callable(getattr(value, "to_variant", None))
    ):
        data = to_variant_impl(value)
    else:
        data = to_variant(value)
    return json.dumps(data, indent=4, ensure_ascii=False)


class OStream:
    """Gives a dataclass the ``Name { field: value; }`` string form."""

    def __str__(self) -> str:
        return format_struct(self)


class JsonOStream:
    """Gives a struct its pretty JSON as string form."""

    def __str__(self) -> str:
        return to_pretty_json(self)