from typing import Iterable, Optional

from sqlalchemy import (
    Column,
    Integer,
    MetaData,
    SmallInteger,
    String,
    Table,
    and_,
    bindparam,
    case,
    func,
    literal_column,
    select,
)
from sqlalchemy.sql import Select

"""
SQL Anywhere system catalog tables used by reflection, plus builders for the
queries run against them. Only the columns the dialect reads are declared.

Table names are rendered unquoted because they are the engine's own catalog
names (SYS.SYSTABCOL and friends). The join graph and filters of each query
can be checked by compiling the returned Select without a live database.
"""

TABLE_TYPE_BASE = 1
TABLE_TYPE_MATERIALIZED_VIEW = 2
TABLE_TYPE_VIEW = 21

INDEX_CATEGORY_PRIMARY_KEY = 1
INDEX_CATEGORY_FOREIGN_KEY = 2
INDEX_CATEGORY_UNIQUE = 3

metadata = MetaData()

systab = Table(
    "SYSTAB",
    metadata,
    Column("table_id", Integer),
    Column("table_name", String),
    Column("table_type", SmallInteger),
    Column("creator", Integer),
    Column("object_id", Integer),
    quote=False,
)

systabcol = Table(
    "SYSTABCOL",
    metadata,
    Column("table_id", Integer),
    Column("column_id", Integer),
    Column("domain_id", SmallInteger),
    Column("nulls", String),
    Column("width", Integer),
    Column("scale", SmallInteger),
    Column("object_id", Integer),
    Column("default", String),
    Column("column_name", String),
    quote=False,
)

sysobject = Table(
    "SYSOBJECT",
    metadata,
    Column("object_id", Integer),
    Column("object_type", SmallInteger),
    quote=False,
)

sysremark = Table(
    "SYSREMARK",
    metadata,
    Column("object_id", Integer),
    Column("remarks", String),
    quote=False,
)

sysdomain = Table(
    "SYSDOMAIN",
    metadata,
    Column("domain_id", SmallInteger),
    Column("domain_name", String),
    quote=False,
)

sysidx = Table(
    "SYSIDX",
    metadata,
    Column("table_id", Integer),
    Column("index_id", Integer),
    Column("index_name", String),
    Column("index_category", SmallInteger),
    quote=False,
)

sysidxcol = Table(
    "SYSIDXCOL",
    metadata,
    Column("table_id", Integer),
    Column("index_id", Integer),
    Column("sequence", SmallInteger),
    Column("column_id", Integer),
    Column("primary_column_id", Integer),
    quote=False,
)

sysfkey = Table(
    "SYSFKEY",
    metadata,
    Column("foreign_table_id", Integer),
    Column("foreign_index_id", Integer),
    Column("primary_table_id", Integer),
    Column("primary_index_id", Integer),
    quote=False,
)

sysuser = Table(
    "SYSUSER",
    metadata,
    Column("user_id", Integer),
    Column("user_name", String),
    quote=False,
)

# Compatibility views, still used by the constraint query
systable = Table(
    "SYSTABLE",
    metadata,
    Column("table_id", Integer),
    Column("table_name", String),
    quote=False,
)

syscolumn = Table(
    "SYSCOLUMN",
    metadata,
    Column("table_id", Integer),
    Column("column_id", Integer),
    Column("column_name", String),
    quote=False,
)


def columns_query(table_name: str) -> Select:
    """One row per column of table_name with keys:

    column_name, nulls ('Y' or 'N'), data_type (`domain_name(width)`),
    column_default (raw text), is_identity (1 for AUTOINCREMENT, else 0), comment
    """

    t1 = systabcol.alias("t1")
    t2 = systab.alias("t2")
    t3 = sysobject.alias("t3")
    t4 = sysremark.alias("t4")
    t5 = sysdomain.alias("t5")

    data_type = func.STRING(
        t5.c.domain_name, literal_column("'('"), t1.c.width, literal_column("')'")
    )
    is_identity = case(
        (t1.c["default"] == literal_column("'autoincrement'"), literal_column("1")),
        else_=literal_column("0"),
    )

    return (
        select(
            t1.c.column_name,
            t1.c.nulls,
            data_type.label("data_type"),
            t1.c["default"].label("column_default"),
            is_identity.label("is_identity"),
            t4.c.remarks.label("comment"),
        )
        .select_from(
            t1.join(t2, t2.c.table_id == t1.c.table_id)
            .join(t3, t3.c.object_id == t1.c.object_id)
            .outerjoin(t4, t4.c.object_id == t1.c.object_id)
            .join(t5, t5.c.domain_id == t1.c.domain_id)
        )
        .where(t2.c.table_name == bindparam("table_name", table_name))
        .order_by(t1.c.column_id)
    )


def constraint_query(table_name: str, index_category: int) -> Select:
    """One row per (index, column) of the indexes of table_name in index_category,
    with keys index_name and field_name, in key order.
    """

    return (
        select(sysidx.c.index_name, syscolumn.c.column_name.label("field_name"))
        .select_from(
            sysidx.join(
                systable,
                and_(
                    systable.c.table_id == sysidx.c.table_id,
                    systable.c.table_name == bindparam("table_name", table_name),
                ),
            )
            .join(
                sysidxcol,
                and_(
                    sysidxcol.c.index_id == sysidx.c.index_id,
                    sysidxcol.c.table_id == sysidx.c.table_id,
                ),
            )
            .join(
                syscolumn,
                and_(
                    sysidxcol.c.column_id == syscolumn.c.column_id,
                    sysidxcol.c.table_id == syscolumn.c.table_id,
                ),
            )
        )
        .where(sysidx.c.index_category == bindparam("index_category", index_category))
        .order_by(sysidx.c.index_id, sysidxcol.c.sequence)
    )


def foreign_keys_query(table_name: str) -> Select:
    """One row per column of every foreign key declared on table_name, with keys
    constraint_name, fk_column_name, uq_table_name and uq_column_name.

    The referencing side is SYSFKEY.foreign_table_id. Each column of the foreign key
    index carries the id of the primary key column it points at (primary_column_id),
    which is what pairs local and referred columns of composite keys.
    """

    fk = sysfkey.alias("t1")
    ft = systab.alias("ft2")
    fi = sysidx.alias("fi")
    fic = sysidxcol.alias("ft3")
    fc = systabcol.alias("ft4")
    pt = systab.alias("pt2")
    pc = systabcol.alias("pt4")

    return (
        select(
            fi.c.index_name.label("constraint_name"),
            fc.c.column_name.label("fk_column_name"),
            pt.c.table_name.label("uq_table_name"),
            pc.c.column_name.label("uq_column_name"),
        )
        .select_from(
            fk.join(ft, ft.c.table_id == fk.c.foreign_table_id)
            .join(
                fi,
                and_(
                    fi.c.table_id == fk.c.foreign_table_id,
                    fi.c.index_id == fk.c.foreign_index_id,
                ),
            )
            .join(
                fic,
                and_(
                    fic.c.table_id == fk.c.foreign_table_id,
                    fic.c.index_id == fk.c.foreign_index_id,
                ),
            )
            .join(
                fc,
                and_(
                    fc.c.table_id == fk.c.foreign_table_id,
                    fc.c.column_id == fic.c.column_id,
                ),
            )
            .join(pt, pt.c.table_id == fk.c.primary_table_id)
            .join(
                pc,
                and_(
                    pc.c.table_id == fk.c.primary_table_id,
                    pc.c.column_id == fic.c.primary_column_id,
                ),
            )
        )
        .where(ft.c.table_name == bindparam("table_name", table_name))
        .order_by(fk.c.foreign_index_id, fic.c.sequence)
    )


def table_names_query(
    table_types: Iterable[int], schema: Optional[str] = None
) -> Select:
    """Names of the tables whose table_type is one of table_types, ordered by name.

    When schema is given only tables created by that user are returned.
    """

    stmt = (
        select(systab.c.table_name)
        .where(systab.c.table_type.in_(list(table_types)))
        .order_by(systab.c.table_name)
    )

    if schema:
        stmt = stmt.join_from(
            systab, sysuser, sysuser.c.user_id == systab.c.creator
        ).where(sysuser.c.user_name == bindparam("schema", schema))

    return stmt


def table_comment_query(table_name: str) -> Select:
    return (
        select(sysremark.c.remarks)
        .select_from(systab.join(sysremark, sysremark.c.object_id == systab.c.object_id))
        .where(systab.c.table_name == bindparam("table_name", table_name))
    )
