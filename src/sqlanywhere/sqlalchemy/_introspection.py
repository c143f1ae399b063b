import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql import Select

from sqlanywhere.sqlalchemy import _catalog
from sqlanywhere.sqlalchemy._parse import (
    build_column_descriptor,
    column_names_from_constraint_rows,
    group_constraint_rows,
)
from sqlanywhere.sqlalchemy.descriptors import (
    ColumnDescriptor,
    ForeignKeyDescriptor,
    TableDescriptor,
)
from sqlanywhere.sqlalchemy.exc import InvalidParameterError

logger = logging.getLogger(__name__)

# Constraint types accepted by find_table_constraints() and the SYSIDX category each one reads
CONSTRAINT_INDEX_CATEGORIES = {
    "PRIMARY KEY": _catalog.INDEX_CATEGORY_PRIMARY_KEY,
    "UNIQUE": _catalog.INDEX_CATEGORY_UNIQUE,
}


class SchemaIntrospector:
    """Reconstructs table metadata from the SQL Anywhere system catalog.

    Nothing is cached here: every call runs its catalog queries on the connection it is
    given. The connection only needs `execute(statement)` returning a result whose
    `.mappings().all()` yields the rows, which a SQLAlchemy Connection provides.

    default_schema
        The schema (owner) of the current session. Tables in that schema keep an
        unqualified full_name.
    """

    def __init__(self, default_schema: str = ""):
        self.default_schema = default_schema

    def _fetch(self, connection, stmt: Select) -> List[Mapping[str, Any]]:
        logger.debug("Running catalog query: %s", stmt)
        return connection.execute(stmt).mappings().all()

    def resolve_table_name(self, name: str) -> Tuple[str, str, str]:
        """Split a raw, possibly quoted and schema-qualified table name.

        Returns (schema_name, table_name, full_name). An unqualified name is placed in
        the default schema.
        """

        parts = name.replace('"', "").split(".")
        if len(parts) == 2:
            schema_name, table_name = parts
        else:
            schema_name, table_name = self.default_schema, parts[-1]

        if schema_name and schema_name != self.default_schema:
            full_name = f"{schema_name}.{table_name}"
        else:
            full_name = table_name

        return schema_name, table_name, full_name

    def load_table(self, connection, name: str) -> Optional[TableDescriptor]:
        """Load the metadata of the named table, or return None if it doesn't exist.

        Errors raised while reading primary or foreign keys propagate. A failing
        column query is treated the same as a table without columns.
        """

        schema_name, table_name, full_name = self.resolve_table_name(name)

        primary_key = self.find_primary_keys(connection, table_name)

        try:
            columns = self.find_columns(connection, table_name, primary_key)
        except SQLAlchemyError as e:
            logger.debug("Column discovery failed for %s: %s", full_name, e)
            return None

        if not columns:
            logger.debug("Table %s not found", full_name)
            return None

        foreign_keys = self.find_foreign_keys(connection, table_name)

        auto_increment_pk = any(
            column.is_primary_key and column.auto_increment
            for column in columns.values()
        )

        return TableDescriptor(
            schema_name=schema_name,
            name=table_name,
            full_name=full_name,
            columns=columns,
            primary_key=tuple(primary_key),
            foreign_keys=tuple(foreign_keys),
            sequence_name="" if auto_increment_pk else None,
        )

    def find_table_constraints(
        self, connection, table_name: str, constraint_type: str
    ) -> List[Mapping[str, Any]]:
        """Return the (index_name, field_name) rows of a table's PRIMARY KEY or UNIQUE constraints"""

        try:
            index_category = CONSTRAINT_INDEX_CATEGORIES[constraint_type]
        except KeyError:
            raise InvalidParameterError(
                f"Constraint type must be one of {sorted(CONSTRAINT_INDEX_CATEGORIES)}, got {constraint_type!r}"
            ) from None

        return self._fetch(
            connection, _catalog.constraint_query(table_name, index_category)
        )

    def find_primary_keys(self, connection, table_name: str) -> List[str]:
        """Return the primary key column names of table_name in key order"""
        rows = self.find_table_constraints(connection, table_name, "PRIMARY KEY")
        return column_names_from_constraint_rows(rows)

    def find_columns(
        self, connection, table_name: str, primary_key: Sequence[str] = ()
    ) -> Dict[str, ColumnDescriptor]:
        rows = self._fetch(connection, _catalog.columns_query(table_name))

        columns = {}
        for row in rows:
            column = build_column_descriptor(row, primary_key)
            columns[column.name] = column
        return columns

    def find_foreign_keys(
        self, connection, table_name: str
    ) -> List[ForeignKeyDescriptor]:
        """Return one ForeignKeyDescriptor per foreign key declared on table_name.

        Rows come back one per key column, in key order, so composite keys are
        grouped by constraint name.
        """

        rows = self._fetch(connection, _catalog.foreign_keys_query(table_name))

        grouped: Dict[str, Dict[str, Any]] = {}
        for row in rows:
            constraint = grouped.setdefault(
                row["constraint_name"],
                {"referred_table": row["uq_table_name"], "columns": {}},
            )
            constraint["columns"][row["fk_column_name"]] = row["uq_column_name"]

        return [
            ForeignKeyDescriptor(
                referred_table=constraint["referred_table"],
                columns=constraint["columns"],
                name=name,
            )
            for name, constraint in grouped.items()
        ]

    def find_unique_indexes(
        self, connection, table: Union[str, TableDescriptor]
    ) -> Dict[str, List[str]]:
        """Return {index_name: [column_name, ...]} for the unique indexes of table.

        For example, given

            CREATE TABLE mytable (
              id integer primary key,
              username nvarchar(255),
              email nvarchar(255),
              UNIQUE (username),
              UNIQUE (email)
            );

        the result is something like {"username_idx": ["username"], "email_idx": ["email"]}.
        """

        table_name = table.name if isinstance(table, TableDescriptor) else table
        rows = self.find_table_constraints(connection, table_name, "UNIQUE")
        return group_constraint_rows(rows)

    def find_table_names(
        self,
        connection,
        schema: str = "",
        table_types: Sequence[int] = (
            _catalog.TABLE_TYPE_BASE,
            _catalog.TABLE_TYPE_VIEW,
        ),
    ) -> List[str]:
        """Return the names of the tables and views in schema (every schema when empty), ordered by name"""

        rows = self._fetch(
            connection, _catalog.table_names_query(table_types, schema or None)
        )
        return [row["table_name"] for row in rows]

    def find_view_names(
        self, connection, schema: str = "", materialized: bool = False
    ) -> List[str]:
        table_type = (
            _catalog.TABLE_TYPE_MATERIALIZED_VIEW
            if materialized
            else _catalog.TABLE_TYPE_VIEW
        )
        return self.find_table_names(connection, schema, table_types=(table_type,))

    def find_table_comment(self, connection, table_name: str) -> Optional[str]:
        rows = self._fetch(connection, _catalog.table_comment_query(table_name))
        if not rows:
            return None
        return rows[0]["remarks"]
