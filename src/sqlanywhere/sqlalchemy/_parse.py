import decimal
import logging
import re
from typing import Any, Iterable, List, Mapping, NamedTuple, Optional

from sqlanywhere.sqlalchemy._types import AbstractType, PYTHON_TYPE_MAP, to_abstract
from sqlanywhere.sqlalchemy.descriptors import ColumnDescriptor
from sqlanywhere.sqlalchemy.exc import SQLAnywhereParseException

"""
This module contains helper functions that turn the rows returned by the catalog
queries in _catalog.py into column descriptors. Most of the work is parsing the
synthesised `domain_name(width)` type string and applying SQL Anywhere's
narrowing rules to it.
"""

logger = logging.getLogger(__name__)


class PhysicalType(NamedTuple):
    name: str
    arguments: Optional[str]


class ClassifiedType(NamedTuple):
    abstract_type: AbstractType
    size: Optional[int]
    precision: Optional[int]
    scale: Optional[int]
    unsigned: bool


# Domain names can contain spaces (`long varchar`, `unsigned int`) so the name is
# everything up to the first parenthesis.
_PHYSICAL_TYPE_PATTERN = re.compile(r"^\s*([A-Za-z_][\w ]*)(?:\(([^)]+)\))?")

# Defaults that SQL Anywhere fills in itself when a row is written
AUTO_POPULATED_TIMESTAMP_DEFAULTS = frozenset(
    ["current_timestamp", "current timestamp", "timestamp", "current utc timestamp"]
)

NULL_DEFAULTS = frozenset(["(null)", "null"])

AUTOINCREMENT_DEFAULT = "autoincrement"


def parse_physical_type(physical_type: str) -> PhysicalType:
    """For a string like `numeric(30,6)` return PhysicalType(name="numeric", arguments="30,6").

    The name is lower-cased with its whitespace collapsed. arguments is None when
    there is no parenthesised part.

    Raise a SQLAnywhereParseException if no type name can be found.
    """

    match = _PHYSICAL_TYPE_PATTERN.match(physical_type or "")
    if not match:
        raise SQLAnywhereParseException(
            f"Could not parse physical type string {physical_type!r}"
        )

    name = " ".join(match.group(1).lower().split())
    return PhysicalType(name, match.group(2))


def _parse_int(value: str) -> Optional[int]:
    try:
        return int(value.strip())
    except ValueError:
        return None


def classify_physical_type(physical_type: str) -> ClassifiedType:
    """Classify a physical type string into an abstract type plus size, precision and scale.

    SQL Anywhere narrowing rules are applied after the lookup:

      bit(1), tinyint(1)  -> boolean
      bit(n), n > 32      -> bigint
      bit(32)             -> integer

    A string that can't be parsed is classified as a string column.
    """

    unsigned = "unsigned" in (physical_type or "").lower()

    try:
        parsed = parse_physical_type(physical_type)
    except SQLAnywhereParseException:
        logger.warning(
            "Unparseable column type %r, treating it as a string", physical_type
        )
        return ClassifiedType(AbstractType.STRING, None, None, None, unsigned)

    abstract_type = to_abstract(parsed.name)
    size = precision = scale = None

    if parsed.arguments:
        values = parsed.arguments.split(",")
        size = precision = _parse_int(values[0])
        if len(values) > 1:
            scale = _parse_int(values[1])

        if size == 1 and parsed.name in ("tinyint", "bit"):
            abstract_type = AbstractType.BOOLEAN
        elif parsed.name == "bit" and size is not None:
            if size > 32:
                abstract_type = AbstractType.BIGINT
            elif size == 32:
                abstract_type = AbstractType.INTEGER

    return ClassifiedType(abstract_type, size, precision, scale, unsigned)


def is_auto_populated_default(raw_default: Optional[str]) -> bool:
    """Return True if the default is one SQL Anywhere computes itself for timestamp columns"""

    if raw_default is None:
        return False
    return " ".join(raw_default.lower().split()) in AUTO_POPULATED_TIMESTAMP_DEFAULTS


def _unquote_literal(text: str) -> str:
    """Strip the single quotes SYSTABCOL keeps around string defaults, e.g. `'it''s'` -> `it's`"""

    if len(text) >= 2 and text.startswith("'") and text.endswith("'"):
        return text[1:-1].replace("''", "'")
    return text


def typecast_default(raw_default: Optional[str], abstract_type: AbstractType) -> Any:
    """Cast the textual default stored in the catalog to the Python type of the column.

    Returns None for no default, `(NULL)` and `autoincrement`. Defaults that are
    expressions rather than literals (e.g. `current date`) are returned as text.
    """

    if raw_default is None:
        return None

    text = raw_default.strip()
    if text.lower() in NULL_DEFAULTS or text.lower() == AUTOINCREMENT_DEFAULT:
        return None

    text = _unquote_literal(text)
    python_type = PYTHON_TYPE_MAP.get(abstract_type, str)

    if python_type is str:
        return text
    if text == "":
        return None

    if python_type is bool:
        lowered = text.lower()
        if lowered in ("1", "true", "on", "yes"):
            return True
        if lowered in ("0", "false", "off", "no"):
            return False
        return text

    try:
        return python_type(text)
    except (ValueError, decimal.InvalidOperation):
        logger.debug("Default %r is not a %s literal", text, python_type.__name__)
        return text


def build_column_descriptor(
    row: Mapping[str, Any], primary_key: Iterable[str] = ()
) -> ColumnDescriptor:
    """Build a ColumnDescriptor from one row of the column discovery query.

    The row must provide column_name, nulls, data_type, column_default, is_identity and comment.

    is_primary_key is set when the column name matches (case-insensitively) one of primary_key.
    The default value is left unset for primary key columns and for timestamp columns populated
    by the engine, since SQL Anywhere manages those values itself.
    """

    name = row["column_name"]
    physical_type = row["data_type"]
    raw_default = row["column_default"]
    classified = classify_physical_type(physical_type)

    is_primary_key = any(name.lower() == pk.lower() for pk in primary_key)

    default_value = None
    if not is_primary_key and not (
        classified.abstract_type == AbstractType.TIMESTAMP
        and is_auto_populated_default(raw_default)
    ):
        default_value = typecast_default(raw_default, classified.abstract_type)

    return ColumnDescriptor(
        name=name,
        abstract_type=classified.abstract_type,
        physical_type=physical_type,
        size=classified.size,
        precision=classified.precision,
        scale=classified.scale,
        allow_null=row["nulls"] == "Y",
        is_primary_key=is_primary_key,
        auto_increment=int(row["is_identity"] or 0) == 1,
        unsigned=classified.unsigned,
        comment=row["comment"] or "",
        default_value=default_value,
    )


def group_constraint_rows(rows: Iterable[Mapping[str, Any]]) -> dict:
    """For rows of (index_name, field_name) return {index_name: [field_name, ...]} preserving row order"""

    output: dict = {}
    for row in rows:
        output.setdefault(row["index_name"], []).append(row["field_name"])
    return output


def column_names_from_constraint_rows(rows: Iterable[Mapping[str, Any]]) -> List[str]:
    return [row["field_name"] for row in rows]
