import datetime
import decimal
import logging

import pytest
from sqlalchemy import (
    Column,
    Identity,
    Integer,
    MetaData,
    String,
    Table,
    select,
    union,
)
from sqlalchemy.schema import (
    CreateTable,
    DropColumnComment,
    DropTableComment,
    SetColumnComment,
    SetTableComment,
)

from sqlanywhere.sqlalchemy.base import SQLAnywhereDialect
from sqlanywhere.sqlalchemy.exc import InvalidParameterError, NotSupportedError


class DDLTestBase:
    dialect = SQLAnywhereDialect()

    def compile(self, stmt, literal_binds=False):
        compile_kwargs = {"literal_binds": True} if literal_binds else {}
        output = str(stmt.compile(dialect=self.dialect, compile_kwargs=compile_kwargs))
        return " ".join(output.split())


@pytest.fixture
def metadata() -> MetaData:
    """Assemble a metadata object with one table containing a commented column."""
    metadata = MetaData()

    Table(
        "users",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("name", String(50), comment="the name"),
        comment="people",
    )

    return metadata


@pytest.fixture
def table(metadata) -> Table:
    return metadata.tables.get("users")


@pytest.fixture
def column(table) -> Column:
    return table.columns["name"]


class TestIdentifierQuoting(DDLTestBase):
    @pytest.fixture
    def preparer(self):
        return self.dialect.identifier_preparer

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("users", '"users"'),
            ("DBA.users", '"DBA"."users"'),
            ('"users"', '"users"'),
            ('DBA."users"', '"DBA"."users"'),
            ("(SELECT 1)", "(SELECT 1)"),
        ],
    )
    def test_quote_table_name(self, preparer, name, expected):
        assert preparer.quote_table_name(name) == expected

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("id", '"id"'),
            ("u.id", '"u"."id"'),
            ("DBA.u.id", '"DBA"."u"."id"'),
            ("*", "*"),
            ("u.*", '"u".*'),
            ("COUNT(*)", "COUNT(*)"),
            ('"id"', '"id"'),
        ],
    )
    def test_quote_column_name(self, preparer, name, expected):
        assert preparer.quote_column_name(name) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, "NULL"),
            (True, "1"),
            (False, "0"),
            (42, "42"),
            (1.5, "1.5"),
            (decimal.Decimal("12.30"), "12.30"),
            ("it's", "'it''s'"),
            (b"\x01\xff", "0x01ff"),
            (datetime.date(2024, 1, 31), "'2024-01-31'"),
            (datetime.datetime(2024, 1, 31, 12, 30), "'2024-01-31 12:30:00'"),
            (datetime.time(12, 30), "'12:30:00'"),
        ],
    )
    def test_quote_value(self, preparer, value, expected):
        assert preparer.quote_value(value) == expected

    def test_quote_value_rejects_unknown_objects(self, preparer):
        with pytest.raises(InvalidParameterError):
            preparer.quote_value(object())

    def test_sqlalchemy_quoting_uses_double_quotes(self):
        table = Table("select", MetaData(), Column("top", Integer))
        assert self.compile(select(table)) == 'SELECT "select"."top" FROM "select"'


class TestCreateTable(DDLTestBase):
    def test_autoincrement_primary_key_is_an_identity(self, table):
        output = self.compile(CreateTable(table))
        assert "id INTEGER NOT NULL IDENTITY" in output
        assert "name nvarchar(50)" in output
        assert "PRIMARY KEY (id)" in output

    def test_comments_are_not_inline(self, table):
        output = self.compile(CreateTable(table))
        assert "COMMENT" not in output
        assert "the name" not in output

    def test_explicit_identity(self, caplog):
        table = Table(
            "t", MetaData(), Column("id", Integer, Identity(start=10), primary_key=True)
        )

        with caplog.at_level(logging.WARNING):
            output = self.compile(CreateTable(table))

        assert "id INTEGER IDENTITY" in output
        assert output.count("IDENTITY") == 1
        assert "ignores Identity() start and increment" in caplog.text

    def test_non_integer_primary_key_is_not_an_identity(self):
        table = Table("t", MetaData(), Column("code", String(10), primary_key=True))
        assert "IDENTITY" not in self.compile(CreateTable(table))


class TestComments(DDLTestBase):
    def test_set_table_comment(self, table):
        assert self.compile(SetTableComment(table)) == (
            "sp_updateextendedproperty @name = N'MS_Description', @value = 'people', "
            "@level1type = N'Table', @level1name = \"users\""
        )

    def test_drop_table_comment(self, table):
        assert self.compile(DropTableComment(table)) == (
            "sp_dropextendedproperty @name = N'MS_Description', "
            "@level1type = N'Table', @level1name = \"users\""
        )

    def test_set_column_comment(self, column):
        assert self.compile(SetColumnComment(column)) == (
            "sp_updateextendedproperty @name = N'MS_Description', @value = 'the name', "
            "@level1type = N'Table', @level1name = \"users\", "
            "@level2type = N'Column', @level2name = \"name\""
        )

    def test_drop_column_comment(self, column):
        assert self.compile(DropColumnComment(column)) == (
            "sp_dropextendedproperty @name = N'MS_Description', "
            "@level1type = N'Table', @level1name = \"users\", "
            "@level2type = N'Column', @level2name = \"name\""
        )

    def test_schema_qualified_table(self):
        table = Table("users", MetaData(), Column("id", Integer), schema="app", comment="c")
        assert '@level1name = "app"."users"' in self.compile(SetTableComment(table))


class TestPagination(DDLTestBase):
    def test_limit(self, table):
        assert self.compile(select(table).limit(10), literal_binds=True) == (
            "SELECT TOP 10 users.id, users.name FROM users ORDER BY (SELECT NULL)"
        )

    def test_limit_and_offset(self, table):
        stmt = select(table).order_by(table.c.id).limit(5).offset(20)
        assert self.compile(stmt, literal_binds=True) == (
            "SELECT TOP 5 START AT (20 + 1) users.id, users.name FROM users ORDER BY users.id"
        )

    def test_offset_without_limit(self, table):
        stmt = select(table).order_by(table.c.id).offset(20)
        assert self.compile(stmt, literal_binds=True) == (
            "SELECT TOP ALL START AT (20 + 1) users.id, users.name FROM users ORDER BY users.id"
        )

    def test_distinct(self, table):
        stmt = select(table.c.name).distinct().limit(3)
        assert self.compile(stmt, literal_binds=True) == (
            "SELECT DISTINCT TOP 3 users.name FROM users ORDER BY (SELECT NULL)"
        )

    def test_limit_stays_a_bound_parameter(self, table):
        output = self.compile(select(table).limit(10))
        assert "TOP __[POSTCOMPILE_param_1]" in output
        assert "LIMIT" not in output

    def test_offset_stays_a_bound_parameter(self, table):
        output = self.compile(select(table).order_by(table.c.id).limit(10).offset(20))
        assert "START AT (__[POSTCOMPILE_param_" in output
        assert "?" not in output

    def test_no_pagination(self, table):
        assert self.compile(select(table)) == "SELECT users.id, users.name FROM users"

    def test_compound_select_cannot_be_paginated(self, table):
        stmt = union(select(table.c.id), select(table.c.id)).limit(5)
        with pytest.raises(NotSupportedError):
            self.compile(stmt)
