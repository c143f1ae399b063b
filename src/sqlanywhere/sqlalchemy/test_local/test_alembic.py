import pytest
from sqlalchemy import String

alembic = pytest.importorskip("alembic")

from alembic.ddl.base import ColumnName, ColumnType, RenameTable  # noqa: E402
from alembic.ddl.impl import DefaultImpl  # noqa: E402

from sqlanywhere.sqlalchemy.base import SQLAnywhereDialect  # noqa: E402


def compile(element) -> str:
    return str(element.compile(dialect=SQLAnywhereDialect()))


def test_impl_is_registered_for_the_dialect():
    impl_class = DefaultImpl.get_by_dialect(SQLAnywhereDialect())
    assert impl_class.__dialect__ == "sqlanywhere"


def test_rename_table():
    assert compile(RenameTable("old", "new")) == 'sp_rename "old", "new"'


def test_rename_table_in_schema():
    assert compile(RenameTable("old", "new", schema="app")) == 'sp_rename "app"."old", "new"'


def test_rename_column():
    assert (
        compile(ColumnName("users", "name", "full_name"))
        == "sp_rename '\"users\".\"name\"', \"full_name\", 'COLUMN'"
    )


def test_alter_column_type():
    assert (
        compile(ColumnType("users", "name", String(64)))
        == 'ALTER TABLE "users" ALTER COLUMN "name" nvarchar(64)'
    )
