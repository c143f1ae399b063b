import logging
from typing import Iterator, Optional, Tuple

from sqlparse import lexer
from sqlparse import tokens as T

logger = logging.getLogger(__name__)

# TOP goes after these when they follow SELECT
SET_QUANTIFIERS = ("DISTINCT", "ALL")


def _tokens_with_offsets(sql: str) -> Iterator[Tuple[object, str, int]]:
    """Yield (ttype, value, end_offset) for each lexer token of sql.

    sqlparse tokens cover the input without gaps, so end offsets are a running sum of token lengths.
    """

    position = 0
    for ttype, value in lexer.tokenize(sql):
        position += len(value)
        yield ttype, value, position


def _is_insignificant(ttype) -> bool:
    return ttype in T.Whitespace or ttype in T.Comment


def find_select_insertion_point(sql: str) -> Optional[int]:
    """Return the offset right after the leading `SELECT` (or `SELECT DISTINCT` / `SELECT ALL`) of sql.

    Leading whitespace, comments and opening parentheses are skipped. Returns None when:

      - the statement doesn't start with SELECT
      - the select list already starts with TOP, i.e. pagination was already injected

    Only the first SELECT of the statement is considered, so a SELECT inside a
    subquery, a string literal, a quoted alias or a comment is never matched.
    """

    insertion_point = None
    seen_quantifier = False

    for ttype, value, end in _tokens_with_offsets(sql):
        if _is_insignificant(ttype):
            continue

        keyword = value.upper()

        if insertion_point is None:
            if ttype in T.Punctuation and value == "(":
                continue
            if keyword == "SELECT":
                insertion_point = end
                continue
            return None

        if keyword in SET_QUANTIFIERS and not seen_quantifier:
            seen_quantifier = True
            insertion_point = end
            continue

        if keyword == "TOP":
            logger.debug("Statement is already paginated, not injecting TOP")
            return None

        return insertion_point

    return insertion_point


def inject_after_select(sql: str, clause: str) -> str:
    """Insert clause right after the leading SELECT [DISTINCT | ALL] of sql.

    sql is returned unchanged when there is no insertion point (see find_select_insertion_point).
    """

    position = find_select_insertion_point(sql)
    if position is None:
        return sql
    return f"{sql[:position]} {clause}{sql[position:]}"
