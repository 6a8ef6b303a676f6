"""
SQL identifier handling utilities.

Provides quoting of table and column names with a driver-specific delimiter.
Plain identifiers must consist of word characters (Unicode letters, digits,
underscore), so Chinese column names are accepted while expressions such as
COUNT(*) are rejected.
"""

import re
from typing import Any

from structured_sql.exceptions import InvalidIdentifierError

_PLAIN_IDENTIFIER = re.compile(r"\w+")
_ALIAS_SUFFIX = re.compile(r"[\w\s]+")

WILDCARD = "*"


def quote_identifier(name: str, delimiter: str = '"') -> str:
    """
    Wrap a single identifier in the delimiter, doubling embedded delimiters.

    Examples:
        >>> quote_identifier("年金计划号")
        '"年金计划号"'
        >>> quote_identifier("table", delimiter="`")
        '`table`'
        >>> quote_identifier('column"name')
        '"column""name"'
    """
    escaped = name.replace(delimiter, delimiter + delimiter)
    return f"{delimiter}{escaped}{delimiter}"


class IdentifierQuoter:
    """
    Quotes table and column references for one driver.

    Recognized forms:
    - plain identifier: ``guestbook`` -> ``"guestbook"``
    - wildcard: ``*`` -> ``*``
    - aliased: ``guestbook as gb`` -> ``"guestbook" as gb``,
      ``id DESC`` -> ``"id" DESC``
    - qualified: ``gb.id`` -> ``"gb"."id"``

    Example:
        >>> IdentifierQuoter("`").quote("gb.id")
        '`gb`.`id`'
    """

    def __init__(self, delimiter: str = '"'):
        self.delimiter = delimiter

    def quote(self, value: Any) -> str:
        """
        Quote a table or column reference.

        Raises:
            InvalidIdentifierError: If value does not match any recognized form
        """
        if not isinstance(value, str) or not value:
            raise InvalidIdentifierError(
                f"Identifier must be a non-empty string, got {value!r}"
            )

        if _PLAIN_IDENTIFIER.fullmatch(value):
            return quote_identifier(value, self.delimiter)

        if value == WILDCARD:
            return value

        parts = value.strip().split(None, 1)
        if len(parts) == 2:
            name, suffix = parts
            if not _ALIAS_SUFFIX.fullmatch(suffix):
                raise InvalidIdentifierError(f"Invalid identifier suffix in {value!r}")
            return f"{self.quote(name)} {suffix}"

        if "." in value:
            qualifier, rest = value.split(".", 1)
            return f"{self.quote(qualifier)}.{self.quote(rest)}"

        raise InvalidIdentifierError(f"Invalid identifier: {value!r}")

    def __call__(self, value: Any) -> str:
        return self.quote(value)
