import sqlalchemy.exc


class SQLAnywhereDialectError(sqlalchemy.exc.SQLAlchemyError):
    """Base class for errors raised by the SQL Anywhere dialect itself (as opposed to the driver)."""

    pass


class InvalidParameterError(SQLAnywhereDialectError, sqlalchemy.exc.ArgumentError):
    """Thrown when a caller passes a semantically invalid argument, for example
    an integrity check against a table that does not exist or a constraint type
    other than PRIMARY KEY or UNIQUE.
    """

    pass


class NotSupportedError(SQLAnywhereDialectError, sqlalchemy.exc.CompileError):
    """Thrown when a translation is requested that SQL Anywhere cannot express,
    such as a multi-column IN against a subquery.
    """

    pass


class SQLAnywhereParseException(SQLAnywhereDialectError):
    """Thrown when catalog output cannot be parsed"""

    pass
