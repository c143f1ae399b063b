from sqlanywhere.sqlalchemy.base import SQLAnywhereDialect
from sqlanywhere.sqlalchemy._types import (
    MONEY,
    TINYINT,
    AbstractType,
    get_column_type,
    to_abstract,
    to_physical,
)
from sqlanywhere.sqlalchemy._introspection import SchemaIntrospector
from sqlanywhere.sqlalchemy._query_builder import SQLAnywhereQueryBuilder
from sqlanywhere.sqlalchemy.descriptors import (
    ColumnDescriptor,
    ForeignKeyDescriptor,
    TableDescriptor,
)

dialect = SQLAnywhereDialect

__all__ = [
    "SQLAnywhereDialect",
    "MONEY",
    "TINYINT",
    "AbstractType",
    "get_column_type",
    "to_abstract",
    "to_physical",
    "SchemaIntrospector",
    "SQLAnywhereQueryBuilder",
    "ColumnDescriptor",
    "ForeignKeyDescriptor",
    "TableDescriptor",
]
