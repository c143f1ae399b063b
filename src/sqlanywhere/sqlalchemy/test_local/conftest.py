from typing import Any, Dict, List, Mapping, Optional

import pytest
from sqlalchemy.dialects import registry

from sqlanywhere.sqlalchemy.base import SQLAnywhereDialect

registry.register("sqlanywhere", "sqlanywhere.sqlalchemy", "SQLAnywhereDialect")
registry.register(
    "sqlanywhere.sqlanydb", "sqlanywhere.sqlalchemy", "SQLAnywhereDialect"
)


def catalog_query_kind(stmt) -> str:
    """Name the catalog query a statement from _catalog.py represents"""

    compiled = stmt.compile(dialect=SQLAnywhereDialect())
    sql = str(compiled)

    if "SYSFKEY" in sql:
        return "foreign_keys"
    if "SYSTABCOL" in sql:
        return "columns"
    if "SYSIDX" in sql:
        return {1: "primary_key", 3: "unique"}[compiled.params["index_category"]]
    if "SYSREMARK" in sql:
        return "comment"
    return "table_names"


class FakeResult:
    def __init__(self, rows: List[Mapping[str, Any]]):
        self._rows = rows

    def mappings(self):
        return self

    def all(self):
        return list(self._rows)


class FakeConnection:
    """Stands in for a SQLAlchemy Connection when running catalog queries.

    responses maps a query kind (see catalog_query_kind) to the rows it returns, or to an
    exception to raise. Every executed statement is recorded in `statements`.
    """

    def __init__(self, responses: Optional[Dict[str, Any]] = None):
        self.responses = responses or {}
        self.statements: List[Any] = []

    def execute(self, stmt):
        self.statements.append(stmt)
        response = self.responses.get(catalog_query_kind(stmt), [])
        if isinstance(response, Exception):
            raise response
        return FakeResult(response)

    @property
    def executed_kinds(self) -> List[str]:
        return [catalog_query_kind(stmt) for stmt in self.statements]


def column_row(
    name,
    data_type,
    nulls="Y",
    default=None,
    is_identity=0,
    comment=None,
) -> Dict[str, Any]:
    """A row as returned by the column discovery query"""

    return {
        "column_name": name,
        "nulls": nulls,
        "data_type": data_type,
        "column_default": default,
        "is_identity": is_identity,
        "comment": comment,
    }


@pytest.fixture
def dialect() -> SQLAnywhereDialect:
    return SQLAnywhereDialect()


@pytest.fixture
def users_catalog() -> Dict[str, Any]:
    """Catalog rows for

    CREATE TABLE users (
        id integer DEFAULT AUTOINCREMENT PRIMARY KEY,
        username nvarchar(64) NOT NULL UNIQUE,
        active bit DEFAULT 1,
        balance decimal(10,2) DEFAULT 0,
        created timestamp DEFAULT CURRENT TIMESTAMP,
        team_id integer REFERENCES teams(id)
    )
    """

    return {
        "primary_key": [{"index_name": "users", "field_name": "id"}],
        "columns": [
            column_row("id", "integer(4)", nulls="N", default="autoincrement", is_identity=1),
            column_row("username", "nvarchar(64)", nulls="N", comment="login name"),
            column_row("active", "bit(1)", default="1"),
            column_row("balance", "decimal(10,2)", default="0"),
            column_row("created", "timestamp(8)", default="current timestamp"),
            column_row("team_id", "integer(4)"),
        ],
        "foreign_keys": [
            {
                "constraint_name": "fk_users_team",
                "fk_column_name": "team_id",
                "uq_table_name": "teams",
                "uq_column_name": "id",
            }
        ],
        "unique": [{"index_name": "users_username_uq", "field_name": "username"}],
        "comment": [{"remarks": "application users"}],
        "table_names": [{"table_name": "teams"}, {"table_name": "users"}],
    }


@pytest.fixture
def users_connection(users_catalog) -> FakeConnection:
    return FakeConnection(users_catalog)
