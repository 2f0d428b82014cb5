"""Parsing of URL query strings into nested dictionaries and lists.

Keys may carry bracket operators: ``a[0]=x`` addresses a list element,
``a[b]=x`` a dictionary property and ``a[]=x`` appends to a list.  Repeated
keys collect their values into a list.  Brackets may also be written
percent-encoded (``%5B`` / ``%5D``), ``+`` stands for a space and other
``%XX`` escapes are decoded.  Parsing stops quietly at the first character
that cannot continue the query string, so trailing text is ignored.
"""

from __future__ import annotations

import string
from dataclasses import dataclass
from typing import Any

__all__ = ["QueryStringParseSettings", "QueryStringError", "parse_query_string"]

_PLAIN = frozenset(string.ascii_letters + string.digits + "-._~" + "!$'()*,;" + ":@")
_HEX = frozenset(string.hexdigits)
_DIGITS = frozenset(string.digits)
_ULONG_LONG_MAX = 2**64 - 1
_INDEX_MASK = 0xFFFF


@dataclass(frozen=True)
class QueryStringParseSettings:
    """Limits applied while building the parsed structure."""

    object_depth_limit: int = 5
    object_property_count_limit: int = 255
    array_length_limit: int = 255

    def __post_init__(self) -> None:
        for name in ("object_depth_limit", "object_property_count_limit", "array_length_limit"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")


class QueryStringError(ValueError):
    """A query string that is malformed or exceeds the parse limits."""

    def __init__(self, message: str, text: str = "", expected: str = "", error_pos: int = 0) -> None:
        super().__init__(message)
        self.message = message
        self.text = text
        self.expected = expected
        self.error_pos = error_pos

    def __str__(self) -> str:
        return self.message

    def pretty_parse_error(self) -> str:
        """Two lines: the input with what was expected, and a caret under the error."""
        pos = self.error_pos
        highlight = "_" * pos + "^" + "_" * max(len(self.text) - pos - 1, 0)
        prefix = f"Error! Expecting {self.expected} here: "
        line = f'{prefix}"{self.text}"'
        highlight = " " * len(prefix) + f" {highlight} "
        return f"{line}\n{highlight}"


class _ExpectationFailure(Exception):
    def __init__(self, expected: str, pos: int) -> None:
        super().__init__(expected, pos)
        self.expected = expected
        self.pos = pos


def _decode(raw: bytes | bytearray) -> str:
    return bytes(raw).decode("utf-8", errors="replace")


def _kind(value: Any) -> str:
    if isinstance(value, list):
        return "vec"
    if isinstance(value, dict):
        return "map"
    return "string"


def _mixed_types(key: str, expected: str, actual: str) -> QueryStringError:
    return QueryStringError(f"mixed types for {key}: {expected} and {actual}")


class _Parser:
    """Recursive-descent parser that builds the result as it goes."""

    def __init__(self, text: str, settings: QueryStringParseSettings) -> None:
        self._text = text
        self._settings = settings
        self.result: dict[str, Any] = {}
        self._container: Any = self.result
        self._slot: Any = None
        self._param_name = ""
        self._param_key = ""
        self._depth = 0

    # ----- lexical helpers -------------------------------------------------

    def _char(self, pos: int) -> str:
        return self._text[pos] if pos < len(self._text) else ""

    def _bracket(self, pos: int, char: str, encoded: str) -> int | None:
        if self._text.startswith(encoded, pos) or self._text.startswith(encoded.upper(), pos):
            return pos + 3
        if self._char(pos) == char:
            return pos + 1
        return None

    def _open(self, pos: int) -> int | None:
        return self._bracket(pos, "[", "%5b")

    def _close(self, pos: int) -> int | None:
        return self._bracket(pos, "]", "%5d")

    def _at_separator(self, pos: int) -> bool:
        return pos >= len(self._text) or self._text[pos] == "&"

    def _pchar(self, pos: int) -> tuple[bytes, int] | None:
        ch = self._char(pos)
        if not ch:
            return None
        if ch in _PLAIN:
            return ch.encode("ascii"), pos + 1
        if ch == "+":
            return b" ", pos + 1
        if ch == "%":
            if self._open(pos) is not None or self._close(pos) is not None:
                return None
            for offset in (1, 2):
                if self._char(pos + offset) not in _HEX:
                    raise _ExpectationFailure("<xdigit>", pos + offset)
            return bytes([int(self._text[pos + 1 : pos + 3], 16)]), pos + 3
        return None

    def _pchars(self, pos: int) -> tuple[bytes, int]:
        collected = bytearray()
        while (match := self._pchar(pos)) is not None:
            chunk, pos = match
            collected += chunk
        return bytes(collected), pos

    def _value(self, pos: int) -> tuple[str, int] | None:
        start = pos
        collected = bytearray()
        while True:
            match = self._pchar(pos)
            if match is None:
                end = self._open(pos)
                if end is not None:
                    match = (b"[", end)
                else:
                    end = self._close(pos)
                    if end is None:
                        break
                    match = (b"]", end)
            chunk, pos = match
            collected += chunk
        if pos == start:
            return None
        return _decode(collected), pos

    def _index(self, pos: int) -> tuple[int, int] | None:
        start = self._open(pos)
        if start is None:
            return None
        end = start
        while self._char(end) in _DIGITS:
            end += 1
        if end == start:
            return None
        number = int(self._text[start:end])
        if number > _ULONG_LONG_MAX:
            return None
        close = self._close(end)
        if close is None:
            raise _ExpectationFailure("<omit><close_bracket>", end)
        return number & _INDEX_MASK, close

    def _property(self, pos: int) -> tuple[str, int] | None:
        start = self._open(pos)
        if start is None:
            return None
        raw, end = self._pchars(start)
        if end == start:
            return None
        close = self._close(end)
        if close is None:
            raise _ExpectationFailure("<omit><close_bracket>", end)
        return _decode(raw), close

    # ----- grammar ---------------------------------------------------------

    def _key(self, pos: int) -> int | None:
        raw, end = self._pchars(pos)
        if end == pos:
            return None
        self._begin_parameter(_decode(raw))
        pos = end
        while True:
            index = self._index(pos)
            if index is not None:
                number, pos = index
                self._index_op(number)
                continue
            prop = self._property(pos)
            if prop is not None:
                name, pos = prop
                self._property_op(name)
                continue
            break
        open_end = self._open(pos)
        if open_end is not None:
            close = self._close(open_end)
            if close is None:
                raise _ExpectationFailure("<close_bracket>", open_end)
            self._empty_index_op()
            pos = close
        return pos

    def _parameter(self, pos: int) -> int | None:
        end = self._key(pos)
        if end is None:
            return None
        if self._char(end) != "=":
            raise _ExpectationFailure('"="', end)
        end += 1
        value = self._value(end)
        if value is not None:
            text, end = value
            self._assign(text)
            return end
        if self._at_separator(end):
            self._assign("")
            return end
        raise _ExpectationFailure("<alternative><value><empty_value>", end)

    def parse(self) -> dict[str, Any]:
        pos = 0
        while True:
            end = self._parameter(pos)
            if end is None:
                if not self._at_separator(pos):
                    raise _ExpectationFailure("<alternative><parameter><empty_parameter>", pos)
                end = pos
            pos = end
            if self._char(pos) != "&":
                return self.result
            pos += 1

    # ----- building the result ---------------------------------------------

    def _current(self) -> Any:
        return self._container[self._slot]

    def _replace(self, value: Any) -> None:
        self._container[self._slot] = value

    def _deepen(self) -> None:
        self._depth += 1
        limit = self._settings.object_depth_limit
        if self._depth > limit:
            raise QueryStringError(f"object depth limit exceed {limit} for {self._param_name}")

    def _begin_parameter(self, name: str) -> None:
        self.result.setdefault(name, None)
        limit = self._settings.object_property_count_limit
        if len(self.result) > limit:
            raise QueryStringError(f"object property count limit exceed {limit}")
        self._container, self._slot = self.result, name
        self._param_key = name
        self._param_name = name
        self._depth = 0

    def _as_list(self) -> list[Any]:
        current = self._current()
        if current is None:
            current = []
            self._replace(current)
        elif isinstance(current, dict):
            raise _mixed_types(self._param_key, "vec", "map")
        elif not isinstance(current, list):
            current = [current]
            self._replace(current)
        return current

    def _index_op(self, index: int) -> None:
        limit = self._settings.array_length_limit
        if index >= limit:
            raise QueryStringError(
                f"array index out of range [0, {limit - 1}] for {self._param_key}"
            )
        vec = self._as_list()
        vec.extend([None] * (index + 1 - len(vec)))
        self._container, self._slot = vec, index
        self._param_key += f"[{index}]"
        self._deepen()

    def _property_op(self, key: str) -> None:
        current = self._current()
        if current is None:
            current = {}
            self._replace(current)
        elif not isinstance(current, dict):
            raise _mixed_types(self._param_key, "map", _kind(current))
        current.setdefault(key, None)
        limit = self._settings.object_property_count_limit
        if len(current) > limit:
            raise QueryStringError(
                f"object property count exceed {limit} for {self._param_key}"
            )
        self._container, self._slot = current, key
        self._param_key += f"[{key}]"
        self._deepen()

    def _empty_index_op(self) -> None:
        self._as_list()

    def _assign(self, value: str) -> None:
        current = self._current()
        if current is None:
            self._replace(value)
        elif isinstance(current, list):
            current.append(value)
            limit = self._settings.array_length_limit
            if len(current) > limit:
                raise QueryStringError(f"array length exceed {limit} for {self._param_key}")
        elif isinstance(current, dict):
            raise _mixed_types(self._param_key, "map", "string")
        else:
            self._replace([current, value])


def parse_query_string(
    text: str, settings: QueryStringParseSettings | None = None
) -> dict[str, Any]:
    """Parse ``text`` into a dictionary of strings, lists and nested dictionaries.

    Raises ``QueryStringError`` on malformed input or when a limit is exceeded.
    """
    parser = _Parser(text, settings if settings is not None else QueryStringParseSettings())
    try:
        return parser.parse()
    except _ExpectationFailure as failure:
        raise QueryStringError(
            f'expecting {failure.expected} here: "{text[failure.pos:]}"',
            text,
            failure.expected,
            failure.pos,
        ) from None