import datetime
import decimal
import logging

from sqlalchemy.sql import compiler
from sqlalchemy.sql.selectable import CompoundSelect

from sqlanywhere.sqlalchemy._query_builder import SQLAnywhereQueryBuilder
from sqlanywhere.sqlalchemy.exc import InvalidParameterError, NotSupportedError

logger = logging.getLogger(__name__)

# Words SQL Anywhere reserves on top of the ones SQLAlchemy already quotes
SQLANYWHERE_RESERVED_WORDS = {
    "backup",
    "bottom",
    "checkpoint",
    "compressed",
    "dynamic",
    "encrypted",
    "identified",
    "integrated",
    "kerberos",
    "long",
    "message",
    "nchar",
    "new",
    "nvarchar",
    "openstring",
    "openxml",
    "option",
    "pivot",
    "readtext",
    "remote",
    "save",
    "start",
    "stop",
    "top",
    "truncate",
    "tsequal",
    "unpivot",
    "validate",
    "varbit",
    "writetext",
}


class SQLAnywhereIdentifierPreparer(compiler.IdentifierPreparer):
    """Quotes identifiers with double quotes.

    On top of SQLAlchemy's own quoting this class is the quoting collaborator of
    SQLAnywhereQueryBuilder: quote_table_name() and quote_column_name() always
    quote every dot-separated part of a raw name, and quote_value() renders literals.
    """

    reserved_words = compiler.RESERVED_WORDS | SQLANYWHERE_RESERVED_WORDS

    def __init__(self, dialect):
        super().__init__(dialect, initial_quote='"')

    @staticmethod
    def quote_simple_name(name: str) -> str:
        """Quote a name without a prefix, leaving already quoted names and `*` alone"""
        if '"' in name or name == "*":
            return name
        return f'"{name}"'

    def quote_table_name(self, name: str) -> str:
        """Quote a table name that may carry a schema prefix, e.g. `DBA.users` -> `"DBA"."users"`.

        Names containing parentheses are treated as expressions and returned unchanged.
        """
        if "(" in name:
            return name
        return ".".join(self.quote_simple_name(part) for part in name.split("."))

    def quote_column_name(self, name: str) -> str:
        """Quote a column name that may be prefixed with a table name, e.g. `u.id` -> `"u"."id"`"""
        if "(" in name:
            return name
        if "." in name:
            prefix, _, name = name.rpartition(".")
            return self.quote_table_name(prefix) + "." + self.quote_simple_name(name)
        return self.quote_simple_name(name)

    def quote_value(self, value) -> str:
        """Render a Python value as a SQL Anywhere literal"""

        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return "1" if value else "0"
        if isinstance(value, (int, float, decimal.Decimal)):
            return str(value)
        if isinstance(value, bytes):
            return "0x" + value.hex()
        if isinstance(value, datetime.datetime):
            return "'{}'".format(value.isoformat(sep=" "))
        if isinstance(value, (datetime.date, datetime.time)):
            return "'{}'".format(value.isoformat())
        if isinstance(value, str):
            return "'{}'".format(value.replace("'", "''"))

        raise InvalidParameterError(f"Unsupported object {value!r}")


def _table_name(table) -> str:
    return f"{table.schema}.{table.name}" if table.schema else table.name


class SQLAnywhereDDLCompiler(compiler.DDLCompiler):
    @property
    def query_builder(self) -> SQLAnywhereQueryBuilder:
        return SQLAnywhereQueryBuilder(self.preparer)

    def visit_set_table_comment(self, create, **kw):
        table = create.element
        return self.query_builder.add_comment_on_table(
            _table_name(table), table.comment
        )

    def visit_drop_table_comment(self, drop, **kw):
        return self.query_builder.drop_comment_from_table(_table_name(drop.element))

    def visit_set_column_comment(self, create, **kw):
        column = create.element
        return self.query_builder.add_comment_on_column(
            _table_name(column.table), column.name, column.comment
        )

    def visit_drop_column_comment(self, drop, **kw):
        column = drop.element
        return self.query_builder.drop_comment_from_column(
            _table_name(column.table), column.name
        )

    def visit_identity_column(self, identity, **kw):
        """SQL Anywhere has no GENERATED ... AS IDENTITY. Only plain IDENTITY is emitted,
        start / increment options are ignored.
        """
        if identity.start is not None or identity.increment is not None:
            logger.warning(
                "SQL Anywhere ignores Identity() start and increment options"
            )
        return "IDENTITY"

    def get_column_specification(self, column, **kwargs):
        """Autoincrement integer primary keys are declared with IDENTITY, the same declaration
        the abstract `pk` type maps to.
        """
        colspec = super().get_column_specification(column, **kwargs)

        if (
            column is column.table._autoincrement_column
            and column.identity is None
            and column.server_default is None
        ):
            colspec += " IDENTITY"

        return colspec


class SQLAnywhereStatementCompiler(compiler.SQLCompiler):
    @property
    def query_builder(self) -> SQLAnywhereQueryBuilder:
        return SQLAnywhereQueryBuilder(self.preparer)

    def get_select_precolumns(self, select, **kw):
        """Paginate with `SELECT [DISTINCT] TOP n START AT m` instead of LIMIT / OFFSET.

        SQLAlchemy offsets count the rows to skip while START AT takes the 1-based
        number of the first row returned, hence the `+ 1`. Limit and offset are
        literal-execute parameters, inlined when the statement runs, so the compiled
        statement can still be cached.
        """
        text = super().get_select_precolumns(select, **kw)

        if select._limit_clause is None and select._offset_clause is None:
            return text

        # TOP and START AT don't accept driver-side parameters
        kw["literal_execute"] = True

        if select._limit_clause is not None:
            text += "TOP %s " % self.process(select._limit_clause, **kw)
        else:
            text += "TOP ALL "

        if select._offset_clause is not None:
            text += "START AT (%s + 1) " % self.process(select._offset_clause, **kw)

        return text

    def limit_clause(self, select, **kw):
        """The row limit is rendered by get_select_precolumns(). All that's left here is the
        ORDER BY that TOP / START AT require when the statement has none.
        """
        if isinstance(select, CompoundSelect):
            raise NotSupportedError(
                "SQL Anywhere can't paginate a compound SELECT, wrap it in a subquery first"
            )

        if select._order_by_clauses:
            return ""
        return " ORDER BY (SELECT NULL)"

    def visit_savepoint(self, savepoint_stmt, **kw):
        return self.query_builder.create_savepoint(
            self.preparer.format_savepoint(savepoint_stmt)
        )

    def visit_rollback_to_savepoint(self, savepoint_stmt, **kw):
        return self.query_builder.rollback_savepoint(
            self.preparer.format_savepoint(savepoint_stmt)
        )

    def visit_release_savepoint(self, savepoint_stmt, **kw):
        return self.query_builder.release_savepoint(
            self.preparer.format_savepoint(savepoint_stmt)
        )
