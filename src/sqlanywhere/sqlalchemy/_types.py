import decimal
import enum
import re
from types import MappingProxyType
from typing import Mapping, Optional, Type, Union

import sqlalchemy
from sqlalchemy.ext.compiler import compiles

"""
Two lookup tables live here. PHYSICAL_TYPE_MAP is read by reflection and turns the
domain names found in SYSDOMAIN into portable abstract types. ABSTRACT_TYPE_MAP is
read by DDL generation and turns abstract types into the declaration SQL Anywhere
expects. They are not inverses of each other: several physical types
collapse onto one abstract type, and each abstract type expands to one canonical
declaration.
"""


class AbstractType(enum.Enum):
    """Portable, engine-neutral column types"""

    PK = "pk"
    BIGPK = "bigpk"
    STRING = "string"
    TEXT = "text"
    CHAR = "char"
    SMALLINT = "smallint"
    INTEGER = "integer"
    BIGINT = "bigint"
    FLOAT = "float"
    DOUBLE = "double"
    DECIMAL = "decimal"
    DATETIME = "datetime"
    TIMESTAMP = "timestamp"
    TIME = "time"
    DATE = "date"
    BINARY = "binary"
    BOOLEAN = "boolean"
    MONEY = "money"


# The keys of this mapping are the lower-cased values of SYSDOMAIN.domain_name
PHYSICAL_TYPE_MAP: Mapping[str, AbstractType] = MappingProxyType(
    {
        # exact numbers
        "bigint": AbstractType.BIGINT,
        "numeric": AbstractType.DECIMAL,
        "bit": AbstractType.SMALLINT,
        "smallint": AbstractType.SMALLINT,
        "decimal": AbstractType.DECIMAL,
        "integer": AbstractType.INTEGER,
        "int": AbstractType.INTEGER,
        "tinyint": AbstractType.SMALLINT,
        "unsigned bigint": AbstractType.BIGINT,
        "unsigned int": AbstractType.INTEGER,
        "unsigned smallint": AbstractType.SMALLINT,
        "unsigned tinyint": AbstractType.SMALLINT,
        "money": AbstractType.MONEY,
        "smallmoney": AbstractType.MONEY,
        # approximate numbers
        "float": AbstractType.FLOAT,
        "real": AbstractType.FLOAT,
        "double": AbstractType.DOUBLE,
        # date and time
        "date": AbstractType.DATE,
        "time": AbstractType.TIME,
        "datetime": AbstractType.DATETIME,
        "smalldatetime": AbstractType.DATETIME,
        # character strings
        "char": AbstractType.CHAR,
        "varchar": AbstractType.STRING,
        "text": AbstractType.TEXT,
        "long varchar": AbstractType.TEXT,
        "xml": AbstractType.TEXT,
        # unicode character strings
        "nchar": AbstractType.CHAR,
        "nvarchar": AbstractType.STRING,
        "ntext": AbstractType.TEXT,
        "long nvarchar": AbstractType.TEXT,
        # binary strings
        "binary": AbstractType.BINARY,
        "varbinary": AbstractType.BINARY,
        "long binary": AbstractType.BINARY,
        "image": AbstractType.BINARY,
        "varbit": AbstractType.BINARY,
        "long varbit": AbstractType.BINARY,
        # other data types
        "timestamp": AbstractType.TIMESTAMP,
        "uniqueidentifier": AbstractType.STRING,
        "uniqueidentifierstr": AbstractType.STRING,
    }
)

ABSTRACT_TYPE_MAP: Mapping[AbstractType, str] = MappingProxyType(
    {
        AbstractType.PK: "integer IDENTITY PRIMARY KEY",
        AbstractType.BIGPK: "bigint IDENTITY PRIMARY KEY",
        AbstractType.CHAR: "nchar(1)",
        AbstractType.STRING: "nvarchar(255)",
        AbstractType.TEXT: "ntext",
        AbstractType.SMALLINT: "smallint",
        AbstractType.INTEGER: "integer",
        AbstractType.BIGINT: "bigint",
        AbstractType.FLOAT: "float",
        AbstractType.DOUBLE: "float",
        AbstractType.DECIMAL: "decimal",
        AbstractType.DATETIME: "datetime",
        AbstractType.TIMESTAMP: "timestamp",
        AbstractType.TIME: "time",
        AbstractType.DATE: "date",
        AbstractType.BINARY: "binary(1)",
        AbstractType.BOOLEAN: "bit",
        AbstractType.MONEY: "decimal(19,4)",
    }
)

# The Python type a column's values (and its reflected default) are cast to
PYTHON_TYPE_MAP: Mapping[AbstractType, type] = MappingProxyType(
    {
        AbstractType.PK: int,
        AbstractType.BIGPK: int,
        AbstractType.SMALLINT: int,
        AbstractType.INTEGER: int,
        AbstractType.BIGINT: int,
        AbstractType.BOOLEAN: bool,
        AbstractType.FLOAT: float,
        AbstractType.DOUBLE: float,
        AbstractType.DECIMAL: decimal.Decimal,
        AbstractType.MONEY: decimal.Decimal,
    }
)

_ABSTRACT_BY_NAME = {t.value: t for t in AbstractType}


def _normalise_type_name(name: str) -> str:
    return " ".join(name.lower().split())


def to_abstract(physical_type_name: str) -> AbstractType:
    """Return the abstract type for a bare physical type name like `nvarchar` or `long varchar`.

    Unknown names fall back to AbstractType.STRING rather than raising.
    """

    return PHYSICAL_TYPE_MAP.get(
        _normalise_type_name(physical_type_name), AbstractType.STRING
    )


def to_physical(abstract_type: Union[AbstractType, str]) -> str:
    """Return the column declaration used for an abstract type.

    Strings that don't name an abstract type are assumed to already be physical and are returned unchanged.
    """

    if isinstance(abstract_type, AbstractType):
        return ABSTRACT_TYPE_MAP[abstract_type]

    member = _ABSTRACT_BY_NAME.get(abstract_type)
    if member is None:
        return abstract_type
    return ABSTRACT_TYPE_MAP[member]


_TYPE_WITH_ARGUMENTS = re.compile(r"^(\w+)\((.+?)\)(.*)$", re.DOTALL)
_TYPE_WITH_MODIFIERS = re.compile(r"^(\w+)(\s+.*)$", re.DOTALL)
_PHYSICAL_ARGUMENTS = re.compile(r"\(.+\)")


def get_column_type(type_: Union[AbstractType, str]) -> str:
    """Convert an abstract column type, optionally carrying arguments and modifiers, into a physical one.

    For example:

      string            -> nvarchar(255)
      string(64)        -> nvarchar(64)
      string not null   -> nvarchar(255) not null
      decimal(10,2)     -> decimal(10,2)
      varchar(20) null  -> varchar(20) null      (not abstract, kept as is)
    """

    if isinstance(type_, AbstractType) or type_ in _ABSTRACT_BY_NAME:
        return to_physical(type_)

    match = _TYPE_WITH_ARGUMENTS.match(type_)
    if match and match.group(1) in _ABSTRACT_BY_NAME:
        physical = to_physical(match.group(1))
        arguments = match.group(2)
        if _PHYSICAL_ARGUMENTS.search(physical):
            physical = _PHYSICAL_ARGUMENTS.sub(
                lambda _: f"({arguments})", physical, count=1
            )
        elif " " not in physical:
            physical = f"{physical}({arguments})"
        return physical + match.group(3)

    match = _TYPE_WITH_MODIFIERS.match(type_)
    if match and match.group(1) in _ABSTRACT_BY_NAME:
        return to_physical(match.group(1)) + match.group(2)

    return type_


class TINYINT(sqlalchemy.types.TypeDecorator):
    """Represents 1-byte unsigned integers

    Acts like a sqlalchemy SmallInteger() in Python but writes to a TINYINT field in SQL Anywhere.
    Note that reflection reports TINYINT columns as Boolean, since the catalog width of a TINYINT is 1.
    """

    impl = sqlalchemy.types.SmallInteger
    cache_ok = True


@compiles(TINYINT, "sqlanywhere")
def compile_tinyint(type_, compiler, **kw):
    return "tinyint"


class MONEY(sqlalchemy.types.TypeDecorator):
    """A DECIMAL(19,4) column, the declaration used for the abstract `money` type"""

    impl = sqlalchemy.types.Numeric
    cache_ok = True

    def __init__(self):
        super().__init__(precision=19, scale=4, asdecimal=True)

    @property
    def python_type(self):
        return decimal.Decimal


@compiles(MONEY, "sqlanywhere")
def compile_money(type_, compiler, **kw):
    return to_physical(AbstractType.MONEY)


@compiles(sqlalchemy.types.String, "sqlanywhere")
@compiles(sqlalchemy.types.Unicode, "sqlanywhere")
@compiles(sqlalchemy.types.Enum, "sqlanywhere")
def compile_string_sqlanywhere(type_, compiler, **kw):
    """
    String(), Unicode() and Enum() are all stored as NVARCHAR. When no length is given we fall back to
    the declaration used for the abstract `string` type, since SQL Anywhere rejects a bare VARCHAR.
    """
    length = getattr(type_, "length", None)
    if length:
        return f"nvarchar({length})"
    return to_physical(AbstractType.STRING)


@compiles(sqlalchemy.types.Text, "sqlanywhere")
@compiles(sqlalchemy.types.UnicodeText, "sqlanywhere")
def compile_text_sqlanywhere(type_, compiler, **kw):
    return to_physical(AbstractType.TEXT)


@compiles(sqlalchemy.types.Boolean, "sqlanywhere")
def compile_boolean_sqlanywhere(type_, compiler, **kw):
    """SQL Anywhere has no BOOLEAN. A single BIT is used instead."""
    return to_physical(AbstractType.BOOLEAN)


@compiles(sqlalchemy.types.DateTime, "sqlanywhere")
def compile_datetime_sqlanywhere(type_, compiler, **kw):
    return to_physical(AbstractType.DATETIME)


@compiles(sqlalchemy.types.LargeBinary, "sqlanywhere")
def compile_binary_sqlanywhere(type_, compiler, **kw):
    """
    We need to override the default LargeBinary compilation rendering because SQL Anywhere uses "LONG BINARY" instead of "BLOB"
    """
    return "long binary"


@compiles(sqlalchemy.types.Numeric, "sqlanywhere")
def compile_numeric_sqlanywhere(type_, compiler, **kw):
    """
    The built-in visit_DECIMAL behaviour captures the precision and scale. Here we're just mapping calls to compile Numeric
    to the SQLAlchemy Decimal() implementation
    """
    return compiler.visit_DECIMAL(type_, **kw)


@compiles(sqlalchemy.types.Uuid, "sqlanywhere")
def compile_uuid_sqlanywhere(type_, compiler, **kw):
    return "uniqueidentifier"


# Used by reflection to turn a classified column into a SQLAlchemy type
SQLALCHEMY_TYPE_MAP: Mapping[AbstractType, Type[sqlalchemy.types.TypeEngine]] = (
    MappingProxyType(
        {
            AbstractType.PK: sqlalchemy.types.Integer,
            AbstractType.BIGPK: sqlalchemy.types.BigInteger,
            AbstractType.STRING: sqlalchemy.types.String,
            AbstractType.TEXT: sqlalchemy.types.Text,
            AbstractType.CHAR: sqlalchemy.types.CHAR,
            AbstractType.SMALLINT: sqlalchemy.types.SmallInteger,
            AbstractType.INTEGER: sqlalchemy.types.Integer,
            AbstractType.BIGINT: sqlalchemy.types.BigInteger,
            AbstractType.FLOAT: sqlalchemy.types.Float,
            AbstractType.DOUBLE: sqlalchemy.types.Double,
            AbstractType.DECIMAL: sqlalchemy.types.Numeric,
            AbstractType.DATETIME: sqlalchemy.types.DateTime,
            AbstractType.TIMESTAMP: sqlalchemy.types.TIMESTAMP,
            AbstractType.TIME: sqlalchemy.types.Time,
            AbstractType.DATE: sqlalchemy.types.Date,
            AbstractType.BINARY: sqlalchemy.types.LargeBinary,
            AbstractType.BOOLEAN: sqlalchemy.types.Boolean,
            AbstractType.MONEY: MONEY,
        }
    )
)


def to_sqlalchemy_type(
    abstract_type: AbstractType,
    size: Optional[int] = None,
    precision: Optional[int] = None,
    scale: Optional[int] = None,
) -> sqlalchemy.types.TypeEngine:
    """Return an instantiated SQLAlchemy type that preserves the size, precision and scale read from the catalog"""

    type_class = SQLALCHEMY_TYPE_MAP[abstract_type]

    if abstract_type in (AbstractType.STRING, AbstractType.CHAR):
        return type_class(size)
    if abstract_type == AbstractType.DECIMAL:
        return type_class(precision, scale)
    return type_class()
