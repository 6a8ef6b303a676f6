"""
Unit tests for identifier quoting.
"""

import pytest

from structured_sql.exceptions import InvalidIdentifierError
from structured_sql.infrastructure.sql.core.identifier import IdentifierQuoter, quote_identifier


class TestQuoteIdentifier:
    """Tests for quote_identifier function."""

    def test_quote_ascii_column(self):
        """Plain ASCII names are wrapped in double quotes."""
        assert quote_identifier("company_id") == '"company_id"'

    def test_quote_chinese_column(self):
        """Unicode word characters are accepted."""
        assert quote_identifier("年金计划号") == '"年金计划号"'

    def test_quote_with_internal_quotes(self):
        """Internal delimiters are doubled."""
        assert quote_identifier('column"name') == '"column""name"'

    def test_quote_backtick_delimiter(self):
        """Backtick delimiters are doubled the same way."""
        assert quote_identifier("column`name", delimiter="`") == "`column``name`"


@pytest.mark.unit
class TestIdentifierQuoter:
    """Tests for IdentifierQuoter."""

    @pytest.fixture
    def quoter(self):
        """Quoter using the double-quote delimiter."""
        return IdentifierQuoter('"')

    @pytest.mark.parametrize(
        "identifier, expected",
        [
            ("standard", '"standard"'),
            ("*", "*"),
            ("table.id", '"table"."id"'),
            ("table as t", '"table" as t'),
            ("id DESC", '"id" DESC'),
            ("gb.id DESC", '"gb"."id" DESC'),
            ("schema.table.column", '"schema"."table"."column"'),
            ("gb.*", '"gb".*'),
            ("计划全称", '"计划全称"'),
            ("  t as x ", '"t" as x'),
            ("t   as   alias", '"t" as   alias'),
        ],
    )
    def test_quote_recognized_forms(self, quoter, identifier, expected):
        """Plain, wildcard, aliased and qualified forms are quoted."""
        assert quoter.quote(identifier) == expected

    def test_mysql_delimiter(self):
        """The quoter uses its own delimiter for every part."""
        quoter = IdentifierQuoter("`")
        assert quoter.quote("guestbook.id") == "`guestbook`.`id`"
        assert quoter.quote("guestbook AS gb") == "`guestbook` AS gb"

    def test_quoter_is_callable(self, quoter):
        """Calling the quoter is the same as quote()."""
        assert quoter("id") == '"id"'

    @pytest.mark.parametrize(
        "identifier",
        [
            "COUNT(*)",
            "",
            "id;",
            "a.",
            ".a",
            "id DESC; DROP TABLE guestbook",
            "t as 'alias'",
            't AS "x"',
            None,
            42,
        ],
    )
    def test_rejects_invalid_identifiers(self, quoter, identifier):
        """Expressions, quoted aliases and non-strings are rejected."""
        with pytest.raises(InvalidIdentifierError):
            quoter.quote(identifier)

    def test_invalid_identifier_is_value_error(self, quoter):
        """InvalidIdentifierError can be caught as ValueError."""
        with pytest.raises(ValueError):
            quoter.quote("COUNT(*)")
