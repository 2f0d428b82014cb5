"""Errors raised while converting values to and from variants and strings."""

from __future__ import annotations

from typing import Any

from varstruct.type_names import type_name


def _describe(expected: Any) -> str:
    """Return a readable name for a type, or the string itself if one is given."""
    if isinstance(expected, str):
        return expected
    return type_name(expected)


class VariantError(RuntimeError):
    """A variant conversion error carrying a JSON-pointer style path."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.path = ""

    def __str__(self) -> str:
        return self.message

    def prepend_path(self, segment: Any) -> None:
        """Prefix the path with one escaped segment (``~`` -> ``~0``, ``/`` -> ``~1``)."""
        escaped = str(segment).replace("~", "~0").replace("/", "~1")
        self.path = f"/{escaped}{self.path}"


class VariantEmpty(VariantError):
    """A value was expected but the variant holds nothing."""

    def __init__(self, expected: Any) -> None:
        super().__init__(f"expected '{_describe(expected)}', actual: 'Empty'")


class VariantBadType(VariantError):
    """The variant holds a value of a different type than requested."""

    @classmethod
    def mismatch(cls, expected: Any, actual: Any) -> VariantBadType:
        """Error for a variant holding ``actual`` where ``expected`` was wanted."""
        return cls(f"expected '{_describe(expected)}', actual '{_describe(actual)}'")

    @classmethod
    def not_of_type(cls, value: Any, expected: Any) -> VariantBadType:
        """Error for a value that cannot be read as ``expected``."""
        return cls(f"'{value}' is not of type '{_describe(expected)}'")


class VariantIntegralOverflow(VariantError):
    """The requested integral type cannot hold the stored value."""

    def __init__(self, type_name: str, value: Any) -> None:
        super().__init__(f"The type '{type_name}' can not hold the value '{value}'")
        self.type_name = type_name
        self.value = value


class StringConversionError(ValueError):
    """A value could not be converted to or from its string form."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message

    @classmethod
    def not_of_type(cls, value: Any, expected: Any) -> StringConversionError:
        """Error for a string that does not name a value of ``expected``."""
        return cls(f"'{value}' is not of type '{_describe(expected)}'")