import logging
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Union

from sqlanywhere.sqlalchemy._tokens import inject_after_select
from sqlanywhere.sqlalchemy._types import AbstractType, get_column_type
from sqlanywhere.sqlalchemy.descriptors import TableDescriptor
from sqlanywhere.sqlalchemy.exc import InvalidParameterError, NotSupportedError

logger = logging.getLogger(__name__)

PARAM_PREFIX = ":qp"

# The extended property SQL Anywhere's T-SQL compatible procedures store comments under
COMMENT_PROPERTY_NAME = "MS_Description"

OrderBy = Union[str, Sequence[str], Mapping[str, Any], None]


def _has_limit(limit) -> bool:
    if isinstance(limit, bool) or limit is None:
        return False
    if isinstance(limit, int):
        return limit >= 0
    return isinstance(limit, str) and limit.isdigit()


def _has_offset(offset) -> bool:
    return _has_limit(offset) and int(offset) != 0


def pagination_clause(limit=None, offset=None) -> str:
    """Return the `TOP n [START AT m]` clause that goes right after SELECT.

    START AT can only follow TOP, so an offset without a limit renders `TOP ALL START AT m`.
    offset is used as given: START AT takes the 1-based row number of the first row returned.
    """

    clause = f"TOP {limit}" if _has_limit(limit) else "TOP ALL"
    if _has_offset(offset):
        clause += f" START AT {offset}"
    return clause


class SQLAnywhereQueryBuilder:
    """Rewrites engine-neutral statements and fragments into the forms SQL Anywhere accepts.

    quoter
        Provides quote_table_name(), quote_column_name() and quote_value(). The dialect passes
        its SQLAnywhereIdentifierPreparer.

    table_lookup
        A callable returning a TableDescriptor (or None) for a table name. Only check_integrity()
        needs it.

    Every method either returns a complete statement or raises before producing any SQL.
    """

    separator = " "

    def __init__(
        self,
        quoter,
        table_lookup: Optional[Callable[[str], Optional[TableDescriptor]]] = None,
    ):
        self.quoter = quoter
        self.table_lookup = table_lookup

    def build_order_by(self, order_by: OrderBy) -> str:
        """Render an ORDER BY clause from a string, a list of expressions or a mapping of column -> direction.

        Directions can be "ASC"/"DESC" or a truthy `descending` flag.
        """

        if not order_by:
            return ""

        if isinstance(order_by, str):
            if order_by.strip().upper().startswith("ORDER BY"):
                return order_by.strip()
            return f"ORDER BY {order_by}"

        if isinstance(order_by, Mapping):
            parts = []
            for column, direction in order_by.items():
                if isinstance(direction, str):
                    descending = direction.strip().upper() == "DESC"
                else:
                    descending = bool(direction)
                parts.append(
                    self.quoter.quote_column_name(column)
                    + (" DESC" if descending else "")
                )
            return "ORDER BY " + ", ".join(parts)

        return "ORDER BY " + ", ".join(order_by)

    def build_order_by_and_limit(
        self, sql: str, order_by: OrderBy = None, limit=None, offset=None
    ) -> str:
        """Append ORDER BY to sql and paginate it with TOP / START AT.

        Without limit and offset only the ORDER BY clause (if any) is appended.

        Otherwise `TOP <limit> [START AT <offset>]` is injected right after the leading
        SELECT [DISTINCT]. Pagination needs a deterministic order so `ORDER BY (SELECT NULL)`
        is used when none was given. offset is passed to START AT unchanged, callers
        holding a 0-based skip count must add one.
        """

        order_by_sql = self.build_order_by(order_by)

        if not _has_limit(limit) and not _has_offset(offset):
            return sql if order_by_sql == "" else sql + self.separator + order_by_sql

        if order_by_sql == "":
            order_by_sql = "ORDER BY (SELECT NULL)"

        sql = inject_after_select(sql, pagination_clause(limit, offset))

        return sql + self.separator + order_by_sql

    def rename_table(self, old_name: str, new_name: str) -> str:
        old_name = self.quoter.quote_table_name(old_name)
        new_name = self.quoter.quote_table_name(new_name)
        return f"sp_rename {old_name}, {new_name}"

    def rename_column(self, table: str, old_name: str, new_name: str) -> str:
        table = self.quoter.quote_table_name(table)
        old_name = self.quoter.quote_column_name(old_name)
        new_name = self.quoter.quote_column_name(new_name)
        return f"sp_rename '{table}.{old_name}', {new_name}, 'COLUMN'"

    def alter_column(
        self, table: str, column: str, type_: Union[AbstractType, str]
    ) -> str:
        """type_ may be an abstract type (optionally with arguments and modifiers) or a physical declaration"""

        return (
            f"ALTER TABLE {self.quoter.quote_table_name(table)}"
            f" ALTER COLUMN {self.quoter.quote_column_name(column)}"
            f" {get_column_type(type_)}"
        )

    def check_integrity(self, check: bool = True, schema: str = "", table: str = "") -> str:
        """Enable or disable constraint checking on a table.

        Raises InvalidParameterError if the table is not known to the schema.
        """

        if schema:
            table = f"{schema}.{table}"

        if self.table_lookup is None or self.table_lookup(table) is None:
            raise InvalidParameterError(f"Table not found: {table}")

        enable = "CHECK" if check else "NOCHECK"
        return f"ALTER TABLE {self.quoter.quote_table_name(table)} {enable} CONSTRAINT ALL"

    def add_comment_on_column(self, table: str, column: str, comment: str) -> str:
        return (
            f"sp_updateextendedproperty @name = N'{COMMENT_PROPERTY_NAME}',"
            f" @value = {self.quoter.quote_value(comment)},"
            f" @level1type = N'Table',  @level1name = {self.quoter.quote_table_name(table)},"
            f" @level2type = N'Column', @level2name = {self.quoter.quote_column_name(column)}"
        )

    def add_comment_on_table(self, table: str, comment: str) -> str:
        return (
            f"sp_updateextendedproperty @name = N'{COMMENT_PROPERTY_NAME}',"
            f" @value = {self.quoter.quote_value(comment)},"
            f" @level1type = N'Table',  @level1name = {self.quoter.quote_table_name(table)}"
        )

    def drop_comment_from_column(self, table: str, column: str) -> str:
        return (
            f"sp_dropextendedproperty @name = N'{COMMENT_PROPERTY_NAME}',"
            f" @level1type = N'Table',  @level1name = {self.quoter.quote_table_name(table)},"
            f" @level2type = N'Column', @level2name = {self.quoter.quote_column_name(column)}"
        )

    def drop_comment_from_table(self, table: str) -> str:
        return (
            f"sp_dropextendedproperty @name = N'{COMMENT_PROPERTY_NAME}',"
            f" @level1type = N'Table',  @level1name = {self.quoter.quote_table_name(table)}"
        )

    @staticmethod
    def _check_in_operator(operator: str) -> str:
        normalised = " ".join(operator.upper().split())
        if normalised not in ("IN", "NOT IN"):
            raise InvalidParameterError(
                f"Invalid IN operator {operator!r}, use IN or NOT IN"
            )
        return normalised

    @staticmethod
    def _bind(params: Dict[str, Any], value: Any) -> str:
        name = f"{PARAM_PREFIX}{len(params)}"
        params[name] = value
        return name

    def _quote_condition_column(self, column: str) -> str:
        return column if "(" in column else self.quoter.quote_column_name(column)

    def build_composite_in_condition(
        self,
        operator: str,
        columns: Sequence[str],
        values: Sequence[Mapping[str, Any]],
        params: Dict[str, Any],
    ) -> str:
        """Expand a row-constructor IN / NOT IN, which SQL Anywhere can't express, into plain predicates.

        For IN every row becomes `(a = :qp0 AND b = :qp1)` and rows are joined with OR.
        For NOT IN every row becomes `(a != :qp0 OR b != :qp1)` and rows are joined with AND.
        A value that is missing (or None) renders `IS NULL` / `IS NOT NULL` instead of a parameter.

        Bound values are added to params under names continuing from its current size.
        """

        positive = self._check_in_operator(operator) == "IN"
        quoted_columns = [self._quote_condition_column(column) for column in columns]

        row_conditions = []
        for row in values:
            conditions = []
            for column, quoted in zip(columns, quoted_columns):
                value = row.get(column)
                if value is not None:
                    placeholder = self._bind(params, value)
                    conditions.append(
                        f"{quoted} {'=' if positive else '!='} {placeholder}"
                    )
                else:
                    conditions.append(
                        f"{quoted} {'IS' if positive else 'IS NOT'} NULL"
                    )
            row_conditions.append(
                "(" + (" AND " if positive else " OR ").join(conditions) + ")"
            )

        return "(" + (" OR " if positive else " AND ").join(row_conditions) + ")"

    def build_subquery_in_condition(
        self,
        operator: str,
        columns: Union[str, Sequence[str]],
        subquery_sql: str,
        params: Dict[str, Any],
    ) -> str:
        """Render `column IN (subquery)`.

        Raises NotSupportedError for more than one column since SQL Anywhere has no row constructors.
        """

        operator = self._check_in_operator(operator)

        if not isinstance(columns, str):
            if len(columns) != 1:
                raise NotSupportedError(
                    "Multi-column IN conditions against a subquery are not supported by SQL Anywhere"
                )
            columns = columns[0]

        return f"{self._quote_condition_column(columns)} {operator} ({subquery_sql})"

    def build_in_condition(
        self,
        operator: str,
        columns: Union[str, Sequence[str]],
        values: Any,
        params: Dict[str, Any],
    ) -> str:
        """Render any IN / NOT IN condition.

        values may be a subquery (a SQL string), a list of rows (mappings, for more than one column)
        or a list of scalars for a single column.
        """

        operator = self._check_in_operator(operator)

        if isinstance(values, str):
            return self.build_subquery_in_condition(operator, columns, values, params)

        if not isinstance(columns, str) and len(columns) > 1:
            return self.build_composite_in_condition(operator, columns, values, params)

        column = columns if isinstance(columns, str) else columns[0]
        scalars = [
            value.get(column) if isinstance(value, Mapping) else value
            for value in values
        ]

        if not scalars:
            return "0=1" if operator == "IN" else ""

        quoted = self._quote_condition_column(column)
        placeholders = [self._bind(params, v) for v in scalars if v is not None]
        has_null = len(placeholders) != len(scalars)

        if len(placeholders) == 1:
            condition = f"{quoted} {'=' if operator == 'IN' else '<>'} {placeholders[0]}"
        elif placeholders:
            condition = f"{quoted} {operator} ({', '.join(placeholders)})"
        else:
            condition = ""

        if not has_null:
            return condition

        null_condition = f"{quoted} {'IS' if operator == 'IN' else 'IS NOT'} NULL"
        if not condition:
            return null_condition
        joiner = " OR " if operator == "IN" else " AND "
        return f"({condition}{joiner}{null_condition})"

    def select_exists(self, raw_sql: str) -> str:
        return f"SELECT CASE WHEN EXISTS({raw_sql}) THEN 1 ELSE 0 END"

    def create_savepoint(self, name: str) -> str:
        return f"SAVE TRANSACTION {name}"

    def release_savepoint(self, name: str) -> str:
        return f"RELEASE TRANSACTION {name}"

    def rollback_savepoint(self, name: str) -> str:
        return f"ROLLBACK TRANSACTION {name}"
