"""Conversion of dataclass structs to and from plain variant data, type names,
conversion errors with paths, nested query-string parsing, and struct
comparison and formatting."""

__version__ = "0.1.0"

__all__ = [
    "comparison",
    "exceptions",
    "formatting",
    "query_string",
    "traits",
    "type_names",
]