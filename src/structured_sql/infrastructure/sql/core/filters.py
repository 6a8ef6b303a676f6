"""
Filter specification model.

A filter is an ordered sequence of entries, each one of:

- ``Predicate``: column, operator and value (scalar, sequence or Column)
- ``BooleanOp``: AND/OR applied to the next entry only
- ``Group``: a nested filter, compiled in parentheses

``parse_filters`` turns the structured Python literal accepted by the public
API into these entries::

    [{"id": 1}, "or", [{"author": "joe"}, "or", {"author": "suzy"}]]

Dict items become predicates joined by AND in insertion order, ``"and"`` /
``"or"`` strings become boolean operators and nested lists become groups.
"""

import re
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, List, Mapping, Sequence, Tuple, Union

from structured_sql.exceptions import InvalidFilterError

SCALAR_TYPES = (str, bytes, int, float, bool, Decimal, date, datetime, time, uuid.UUID)

BOOLEAN_OPERATORS = ("AND", "OR")
DEFAULT_OPERATOR = "="
FILTER_OPERATORS = frozenset(
    {"=", "<>", "!=", "<", ">", "<=", ">=", "LIKE", "NOT LIKE"}
)

_WHITESPACE = re.compile(r"\s+")


def is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, SCALAR_TYPES)


def split_column_operator(key: str, default: str = DEFAULT_OPERATOR) -> Tuple[str, str]:
    """
    Split a decorated column key into column and operator.

    Examples:
        >>> split_column_operator("id")
        ('id', '=')
        >>> split_column_operator("created >=")
        ('created', '>=')
        >>> split_column_operator("name not  like")
        ('name', 'NOT LIKE')
    """
    parts = key.strip().split(None, 1)
    if not parts:
        return key, default
    if len(parts) == 1:
        return parts[0], default
    return parts[0], _WHITESPACE.sub(" ", parts[1]).upper()


@dataclass(frozen=True)
class Column:
    """A column reference used as a predicate value (compiled unbound)."""

    name: str


@dataclass(frozen=True)
class Predicate:
    column: str
    operator: str
    value: Any

    @classmethod
    def from_key(cls, key: str, value: Any) -> "Predicate":
        column, operator = split_column_operator(key)
        return cls(column, operator, value)


@dataclass(frozen=True)
class BooleanOp:
    operator: str

    def __post_init__(self) -> None:
        normalized = self.operator.upper() if isinstance(self.operator, str) else None
        if normalized not in BOOLEAN_OPERATORS:
            raise InvalidFilterError(f"Unknown boolean operator: {self.operator!r}")
        object.__setattr__(self, "operator", normalized)


AND = BooleanOp("AND")
OR = BooleanOp("OR")


@dataclass(frozen=True)
class Group:
    entries: Tuple["FilterEntry", ...] = field(default_factory=tuple)


FilterEntry = Union[Predicate, BooleanOp, Group]
FilterLiteral = Union[Mapping[str, Any], Sequence[Any], Group, Predicate]


def _parse_entry(entry: Any) -> List[FilterEntry]:
    if isinstance(entry, (Predicate, BooleanOp, Group)):
        return [entry]
    if isinstance(entry, str):
        if entry.strip().upper() in BOOLEAN_OPERATORS:
            return [BooleanOp(entry.strip())]
        raise InvalidFilterError(
            f"Filter must be a key/value pair or a nested filter, got {entry!r}"
        )
    if isinstance(entry, Mapping):
        predicates: List[FilterEntry] = []
        for key, value in entry.items():
            if not isinstance(key, str):
                raise InvalidFilterError(f"Filter column must be a string, got {key!r}")
            predicates.append(Predicate.from_key(key, value))
        return predicates
    if isinstance(entry, (list, tuple)):
        return [Group(tuple(parse_filters(entry)))]
    raise InvalidFilterError(
        f"Filter must be a key/value pair or a nested filter, got {type(entry).__name__}"
    )


def parse_filters(filters: FilterLiteral) -> List[FilterEntry]:
    """
    Parse a structured filter literal into filter entries.

    Args:
        filters: A dict, a list of entries, a Group or a single Predicate

    Returns:
        Flat list of top-level entries

    Raises:
        InvalidFilterError: If an entry has an unsupported shape
    """
    if isinstance(filters, Group):
        return list(filters.entries)
    if isinstance(filters, (Mapping, Predicate)):
        return _parse_entry(filters)
    if isinstance(filters, (list, tuple)):
        entries: List[FilterEntry] = []
        for entry in filters:
            entries.extend(_parse_entry(entry))
        return entries
    raise InvalidFilterError(
        f"Filters must be a mapping or a sequence, got {type(filters).__name__}"
    )


def where(*entries: Any, **predicates: Any) -> Group:
    """
    Build a filter group from positional entries and keyword predicates.

    Keyword predicates are appended after positional entries and use the
    default operator.

    Example:
        >>> where({"id": 1}, OR, {"created >": "2020-01-01"})
        Group(entries=(Predicate(column='id', operator='=', value=1), ...))
    """
    parsed: List[FilterEntry] = parse_filters(list(entries))
    parsed.extend(Predicate(column, DEFAULT_OPERATOR, value) for column, value in predicates.items())
    return Group(tuple(parsed))

