"""Field-wise equality for dataclass structs."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterator
from typing import Any

__all__ = ["struct_equal", "struct_not_equal", "EqualityComparison"]


def _member_pairs(lhs: Any, rhs: Any) -> Iterator[tuple[Any, Any]]:
    cls = type(lhs)
    if not dataclasses.is_dataclass(cls) or isinstance(lhs, type):
        raise TypeError(f"{cls.__name__} is not a dataclass instance")
    if type(rhs) is not cls:
        raise TypeError(
            f"cannot compare {cls.__name__} with {type(rhs).__name__}"
        )
    for field in dataclasses.fields(cls):
        yield getattr(lhs, field.name), getattr(rhs, field.name)


def struct_equal(lhs: Any, rhs: Any) -> bool:
    """True when every field of ``lhs`` equals the same field of ``rhs``.

    Both arguments must be instances of the same dataclass.
    """
    return all(a == b for a, b in _member_pairs(lhs, rhs))


def struct_not_equal(lhs: Any, rhs: Any) -> bool:
    """True when any field of ``lhs`` differs from the same field of ``rhs``."""
    return any(a != b for a, b in _member_pairs(lhs, rhs))


class EqualityComparison:
    """Adds field-wise ``==`` and ``!=`` to a dataclass.

    Declare the dataclass with ``eq=False`` so that the generated ``__eq__``
    does not replace these methods.
    """

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return struct_equal(self, other)

    def __ne__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return struct_not_equal(self, other)

    __hash__ = None  # type: ignore[assignment]