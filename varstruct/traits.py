"""Conversion of values and dataclass structs to and from variants.

A variant is plain data: ``None``, ``bool``, ``int``, ``float``, ``str``,
lists of variants and dictionaries mapping strings to variants.

Structs are dataclasses.  A struct may rename its fields in the variant form
and give defaults for fields missing from it, either through field metadata
(``field(metadata={"name": "y", "default": 1})``) or through class-level
``names`` / ``defaults`` mappings (or callables returning them).

Field types are taken from the dataclass fields as declared.  Annotations
kept as text are understood for the basic scalar names only; any other
textual annotation is treated as ``Any``.
"""

from __future__ import annotations

import collections.abc
import copy
import dataclasses
import enum
import types
import typing
from typing import Any, ClassVar

from varstruct.exceptions import (
    VariantBadType,
    VariantEmpty,
    VariantError,
    VariantIntegralOverflow,
)
from varstruct.type_names import type_name

__all__ = [
    "TAG_KEY",
    "VarPolicy",
    "to_variant",
    "from_variant",
    "to_variant_impl",
    "from_variant_impl",
    "update_var_impl",
    "update_opt_impl",
    "Var",
    "UpdateFromVar",
    "UpdateFromOpt",
]

TAG_KEY = "__tag"

_INT_MIN = -(2**63)
_UINT_MAX = 2**64 - 1

_TEXT_TYPES: dict[str, Any] = {
    "int": int,
    "float": float,
    "str": str,
    "bool": bool,
    "None": type(None),
    "Any": Any,
    "typing.Any": Any,
}


def _field_types(cls: type) -> dict[str, Any]:
    """Declared types of the fields of the dataclass ``cls``."""
    result: dict[str, Any] = {}
    for f in dataclasses.fields(cls):
        tp = f.type
        if isinstance(tp, str):
            tp = _TEXT_TYPES.get(tp.strip(), Any)
        result[f.name] = tp
    return result


def _name(tp: Any) -> str:
    if isinstance(tp, str):
        return tp
    try:
        return type_name(tp)
    except TypeError:
        return getattr(tp, "__name__", repr(tp))


def _kind(value: Any) -> str:
    if isinstance(value, dict):
        return "map"
    if isinstance(value, list):
        return "list"
    return _name(type(value))


def _mismatch(tp: Any, value: Any) -> VariantError:
    if value is None:
        return VariantEmpty(_name(tp))
    return VariantBadType.mismatch(_name(tp), _kind(value))


def _is_union(tp: Any) -> bool:
    origin = typing.get_origin(tp)
    return origin is typing.Union or origin is types.UnionType


def _is_optional(tp: Any) -> bool:
    return _is_union(tp) and type(None) in typing.get_args(tp)


def _is_container(tp: Any) -> bool:
    origin = typing.get_origin(tp) or tp
    if not isinstance(origin, type) or issubclass(origin, (str, bytes)):
        return False
    if issubclass(origin, tuple):
        args = typing.get_args(tp)
        return not args or (len(args) == 2 and args[1] is Ellipsis)
    return issubclass(origin, (collections.abc.Mapping, collections.abc.Iterable))


def _empty(tp: Any) -> Any:
    origin = typing.get_origin(tp) or tp
    if issubclass(origin, collections.abc.Mapping):
        return {}
    if issubclass(origin, frozenset):
        return frozenset()
    if issubclass(origin, collections.abc.Set):
        return set()
    if issubclass(origin, tuple):
        return ()
    return []


def _struct_type(obj_or_cls: Any) -> type:
    cls = obj_or_cls if isinstance(obj_or_cls, type) else type(obj_or_cls)
    if not dataclasses.is_dataclass(cls):
        raise TypeError(f"{cls.__name__} is not a dataclass")
    return cls


def _meta(cls: type, attr: str, key: str) -> dict[str, Any]:
    """Per-field metadata ``key`` merged with the class-level ``attr`` mapping."""
    result = {f.name: f.metadata[key] for f in dataclasses.fields(cls) if key in f.metadata}
    declared = getattr(cls, attr, None)
    if callable(declared):
        declared = declared()
    if isinstance(declared, collections.abc.Mapping):
        result.update(declared)
    return result


def _require_map(data: Any) -> dict[str, Any]:
    if isinstance(data, dict):
        return data
    if data is None:
        raise VariantEmpty("map")
    raise VariantBadType.mismatch("map", _kind(data))


def _element(tp: Any, value: Any, segment: Any) -> Any:
    try:
        return from_variant(tp, value)
    except VariantError as error:
        error.prepend_path(segment)
        raise


def _member(convert: Any, tp: Any, value: Any, segment: str) -> Any:
    try:
        return convert(tp, value)
    except VariantError as error:
        error.prepend_path(segment)
        raise
    except Exception as error:
        wrapped = VariantError(str(error))
        wrapped.prepend_path(segment)
        raise wrapped from error


# ----- generic conversion ------------------------------------------------------


def _key_to_variant(key: Any) -> str:
    if isinstance(key, enum.Enum):
        return key.name
    return key if isinstance(key, str) else str(key)


def to_variant(value: Any) -> Any:
    """Convert ``value`` to variant data.

    Enums become their member names, mappings become dictionaries, sequences
    and sets become lists, and objects with a ``to_variant()`` method convert
    themselves.  Raises ``TypeError`` for values with no variant form.
    """
    if not isinstance(value, type):
        method = getattr(value, "to_variant", None)
        if callable(method):
            return method()
    if isinstance(value, enum.Enum):
        return value.name
    if isinstance(value, int) and not isinstance(value, bool):
        if value < _INT_MIN:
            raise VariantIntegralOverflow("int64", value)
        if value > _UINT_MAX:
            raise VariantIntegralOverflow("uint64", value)
        return value
    if value is None or isinstance(value, (bool, float, str)):
        return value
    if isinstance(value, collections.abc.Mapping):
        return {_key_to_variant(k): to_variant(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        try:
            items = sorted(value)
        except TypeError:
            items = list(value)
        return [to_variant(item) for item in items]
    if isinstance(value, (list, tuple)):
        return [to_variant(item) for item in value]
    raise TypeError(f"no variant conversion for {type(value).__name__}")


def _from_union(tp: Any, value: Any) -> Any:
    args = typing.get_args(tp)
    members = tuple(arg for arg in args if arg is not type(None))
    if value is None and len(members) < len(args):
        return None
    if len(members) == 1:
        return from_variant(members[0], value)
    for member in members:
        try:
            return from_variant(member, value)
        except (VariantError, ValueError):
            continue
    raise VariantBadType.not_of_type(value, _name(typing.Union[members]))


def _from_literal(tp: Any, value: Any) -> Any:
    for allowed in typing.get_args(tp):
        if isinstance(allowed, enum.Enum) and value == allowed.name:
            return allowed
        if type(allowed) is type(value) and allowed == value:
            return allowed
    raise VariantBadType.not_of_type(value, _name(tp))


def _from_enum(tp: type[enum.Enum], value: Any) -> Any:
    if not isinstance(value, str):
        raise _mismatch(tp, value)
    member = tp.__members__.get(value)
    if member is None:
        raise VariantBadType.not_of_type(value, _name(tp))
    return member


def _from_scalar(tp: type, value: Any) -> Any:
    if tp is bool:
        if type(value) is bool:
            return value
    elif tp is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif tp is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif tp is str:
        if isinstance(value, str):
            return value
    raise _mismatch(tp, value)


def _from_tuple(tp: Any, args: tuple[Any, ...], value: Any) -> tuple[Any, ...]:
    if not isinstance(value, list):
        raise _mismatch(tp, value)
    if not args:
        return tuple(value)
    if len(args) == 2 and args[1] is Ellipsis:
        return tuple(_element(args[0], item, i) for i, item in enumerate(value))
    if len(value) != len(args):
        raise VariantBadType(
            f"expected size of the tuple is {len(args)}, actual {len(value)}"
        )
    return tuple(
        _element(item_tp, item, i) for i, (item_tp, item) in enumerate(zip(args, value))
    )


def _from_mapping(tp: Any, args: tuple[Any, ...], value: Any) -> dict[Any, Any]:
    if not isinstance(value, dict):
        raise _mismatch(tp, value)
    key_tp, value_tp = args if len(args) == 2 else (Any, Any)
    result = {}
    for key, item in value.items():
        converted_key = key if key_tp in (Any, str) else _element(key_tp, key, key)
        result[converted_key] = _element(value_tp, item, key)
    return result


def _from_sequence(tp: Any, target: type, args: tuple[Any, ...], value: Any) -> Any:
    if not isinstance(value, list):
        raise _mismatch(tp, value)
    item_tp = args[0] if args else Any
    items = [_element(item_tp, item, i) for i, item in enumerate(value)]
    if issubclass(target, frozenset):
        return frozenset(items)
    if issubclass(target, collections.abc.Set):
        return set(items)
    return items


def from_variant(tp: Any, value: Any) -> Any:
    """Convert variant data ``value`` to an instance of ``tp``.

    Raises ``VariantError`` subclasses when the data does not fit the type and
    ``TypeError`` for types with no variant form.
    """
    if tp is Any:
        return value
    if tp is None or tp is type(None):
        if value is None:
            return None
        raise _mismatch(type(None), value)
    if _is_union(tp):
        return _from_union(tp, value)
    origin = typing.get_origin(tp)
    if origin is typing.Literal:
        return _from_literal(tp, value)
    target = origin if origin is not None else tp
    if not isinstance(target, type):
        raise TypeError(f"no variant conversion for {tp!r}")
    if origin is None:
        custom = getattr(tp, "from_variant", None)
        if callable(custom):
            return custom(value)
        if issubclass(tp, enum.Enum):
            return _from_enum(tp, value)
        if tp in (bool, int, float, str):
            return _from_scalar(tp, value)
    args = typing.get_args(tp)
    if issubclass(target, tuple):
        return _from_tuple(tp, args, value)
    if issubclass(target, collections.abc.Mapping):
        return _from_mapping(tp, args, value)
    if issubclass(target, collections.abc.Iterable) and not issubclass(target, (str, bytes)):
        return _from_sequence(tp, target, args, value)
    raise TypeError(f"no variant conversion for {tp!r}")


# ----- policy -----------------------------------------------------------------


class VarPolicy:
    """Settings for struct conversion; subclass and override to customise."""

    #: treat missing keys as empty containers
    empty_container_not_required = False
    #: serialize a field even when it equals its default
    serialize_default_value = True
    #: accept keys that match no field
    allow_additional_properties = True
    #: when set, the variant carries it under ``"__tag"``
    tag: Any = None

    @staticmethod
    def to_variant(value: Any) -> Any:
        return to_variant(value)

    @staticmethod
    def from_variant(tp: Any, value: Any) -> Any:
        return from_variant(tp, value)

    @staticmethod
    def rename(cls: type, name: str) -> str:
        """Name of field ``name`` of ``cls`` in the variant form."""
        return _meta(cls, "names", "name").get(name, name)

    @staticmethod
    def defaults(cls: type) -> dict[str, Any]:
        """Default values of the fields of ``cls`` that have one."""
        return _meta(cls, "defaults", "default")

    @staticmethod
    def post_from_variant(obj: Any, data: Any) -> None:
        """Hook run on a struct just built from ``data``."""


def _resolve(policy: Any) -> Any:
    return VarPolicy if policy is None else policy


# ----- struct conversion ------------------------------------------------------


def to_variant_impl(obj: Any, policy: Any = None) -> dict[str, Any]:
    """Convert the dataclass instance ``obj`` to a variant dictionary."""
    policy = _resolve(policy)
    cls = _struct_type(obj)
    hints = _field_types(cls)
    defaults = policy.defaults(cls)
    result: dict[str, Any] = {}
    for field in dataclasses.fields(cls):
        renamed = policy.rename(cls, field.name)
        value = getattr(obj, field.name)
        hint = hints.get(field.name, Any)
        if _is_optional(hint):
            if value is not None:
                result[renamed] = policy.to_variant(value)
            continue
        if (
            not policy.serialize_default_value
            and field.name in defaults
            and defaults[field.name] == value
        ):
            continue
        if _is_container(hint) and policy.empty_container_not_required and len(value) == 0:
            continue
        result[renamed] = policy.to_variant(value)
    if policy.tag is not None:
        result[TAG_KEY] = policy.to_variant(policy.tag)
    return result


def from_variant_impl(cls: type, data: Any, policy: Any = None) -> Any:
    """Build an instance of the dataclass ``cls`` from a variant dictionary."""
    policy = _resolve(policy)
    _struct_type(cls)
    mapping = _require_map(data)

    if policy.tag is not None:
        if TAG_KEY not in mapping:
            raise ValueError(f"'{TAG_KEY}' is required")
        _member(policy.from_variant, typing.Literal[policy.tag], mapping[TAG_KEY], TAG_KEY)

    hints = _field_types(cls)
    defaults = policy.defaults(cls)
    fields = [f for f in dataclasses.fields(cls) if f.init]
    values: dict[str, Any] = {}
    for field in fields:
        renamed = policy.rename(cls, field.name)
        hint = hints.get(field.name, Any)
        has_default = (
            field.default is not dataclasses.MISSING
            or field.default_factory is not dataclasses.MISSING
        )
        if renamed not in mapping:
            if field.name in defaults:
                values[field.name] = copy.deepcopy(defaults[field.name])
            elif _is_optional(hint):
                if not has_default:
                    values[field.name] = None
            elif _is_container(hint) and policy.empty_container_not_required:
                if not has_default:
                    values[field.name] = _empty(hint)
            else:
                raise ValueError(f"'{renamed}' is required")
            continue
        values[field.name] = _member(policy.from_variant, hint, mapping[renamed], renamed)

    if not policy.allow_additional_properties:
        known = {policy.rename(cls, f.name) for f in dataclasses.fields(cls)}
        if policy.tag is not None:
            known.add(TAG_KEY)
        for key in mapping:
            if key not in known:
                raise ValueError(f"'{key}' is unknown")

    result = cls(**values)
    policy.post_from_variant(result, data)
    return result


def update_var_impl(obj: Any, data: Any, policy: Any = None) -> None:
    """Update the fields of ``obj`` named in the variant dictionary ``data``.

    Fields whose value has an ``update_var`` method are updated in place.
    """
    policy = _resolve(policy)
    cls = _struct_type(obj)
    hints = _field_types(cls)
    fields = dataclasses.fields(cls)
    for key, value in _require_map(data).items():
        found = False
        for field in fields:
            if policy.rename(cls, field.name) != key:
                continue
            current = getattr(obj, field.name)
            updater = getattr(current, "update_var", None)
            if callable(updater):
                updater(value)
            else:
                hint = hints.get(field.name, Any)
                setattr(obj, field.name, _member(from_variant, hint, value, key))
            found = True
        if not policy.allow_additional_properties and not found:
            raise ValueError(f"'{key}' is unknown")


def update_opt_impl(obj: Any, opt: Any) -> None:
    """Copy the set fields of ``opt`` onto ``obj``.

    ``opt`` is a dataclass or a mapping; optional fields holding ``None`` and
    mapping entries holding ``None`` are skipped.
    """
    if dataclasses.is_dataclass(opt) and not isinstance(opt, type):
        hints = _field_types(type(opt))
        items = [
            (f.name, getattr(opt, f.name), _is_optional(hints.get(f.name, Any)))
            for f in dataclasses.fields(opt)
        ]
    elif isinstance(opt, collections.abc.Mapping):
        items = [(name, value, True) for name, value in opt.items()]
    else:
        raise TypeError(f"cannot update from {type(opt).__name__}")

    cls = _struct_type(obj)
    known = {f.name for f in dataclasses.fields(cls)}
    for name, value, optional in items:
        if name not in known:
            raise AttributeError(f"{cls.__name__} has no field '{name}'")
        if optional and value is None:
            continue
        setattr(obj, name, value)


# ----- mixins -----------------------------------------------------------------


class _PolicyHolder:
    _var_policy: ClassVar[Any] = None

    def __init_subclass__(cls, policy: Any = None, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if policy is not None:
            cls._var_policy = policy


class Var(_PolicyHolder):
    """Adds variant conversion to a dataclass; pass ``policy=`` when subclassing."""

    def to_variant(self) -> dict[str, Any]:
        return to_variant_impl(self, self._var_policy)

    @classmethod
    def from_variant(cls, data: Any) -> Any:
        return from_variant_impl(cls, data, cls._var_policy)


class UpdateFromVar(_PolicyHolder):
    """Adds ``update_var`` to a dataclass."""

    def update_var(self, data: Any) -> None:
        update_var_impl(self, data, self._var_policy)


class UpdateFromOpt:
    """Adds ``update_opt`` to a dataclass."""

    def update_opt(self, opt: Any) -> None:
        update_opt_impl(self, opt)