from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple

from sqlanywhere.sqlalchemy._types import AbstractType, PYTHON_TYPE_MAP


@dataclass(frozen=True)
class ColumnDescriptor:
    """One physical column as reconstructed from the system catalog.

    Attributes:
        name: The column name as stored in SYSTABCOL
        abstract_type: The portable type the physical type was classified into
        physical_type: The raw type string synthesised by the catalog query, e.g. `nvarchar(255)`
        size, precision, scale: Parsed from the parenthesised part of physical_type, if any
        allow_null: Whether the column accepts NULL
        is_primary_key: Only known after the table's primary key columns have been read
        auto_increment: Whether the column default is AUTOINCREMENT
        unsigned: Whether the physical type is an unsigned integer type
        comment: The column remark, or an empty string
        default_value: The column default cast to `python_type`, or None
    """

    name: str
    abstract_type: AbstractType
    physical_type: str
    size: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    allow_null: bool = True
    is_primary_key: bool = False
    auto_increment: bool = False
    unsigned: bool = False
    comment: str = ""
    default_value: Any = None

    @property
    def python_type(self) -> type:
        return PYTHON_TYPE_MAP.get(self.abstract_type, str)


@dataclass(frozen=True)
class ForeignKeyDescriptor:
    """A foreign key constraint: the referred table plus a mapping of local column -> referred column.

    Unpacks like a pair so `referred_table, columns = fk` works.
    """

    referred_table: str
    columns: Dict[str, str] = field(default_factory=dict)
    name: Optional[str] = None

    def __iter__(self) -> Iterator[Any]:
        return iter((self.referred_table, self.columns))


@dataclass(frozen=True)
class TableDescriptor:
    """Metadata of one table or view.

    full_name is schema-qualified only when the schema differs from the session default schema.

    sequence_name is an empty string when a primary key column is an identity column
    (the table acts as its own sequence) and None when the table has no auto-increment key.
    """

    schema_name: str
    name: str
    full_name: str
    columns: Dict[str, ColumnDescriptor] = field(default_factory=dict)
    primary_key: Tuple[str, ...] = ()
    foreign_keys: Tuple[ForeignKeyDescriptor, ...] = ()
    sequence_name: Optional[str] = None

    @property
    def column_names(self):
        return list(self.columns)

    def get_column(self, name: str) -> Optional[ColumnDescriptor]:
        return self.columns.get(name)
