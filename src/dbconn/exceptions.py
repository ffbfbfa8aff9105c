"""
Connection-layer exception classes.
"""
import sqlalchemy as sa


class DatabaseError(Exception):
    """Base class for all dbconn errors.
    """


class ConnectionError(DatabaseError):
    """Error establishing a physical connection or persisting a Connection.
    """


class NotFoundError(DatabaseError, KeyError):
    """Lookup of an unregistered connection name.
    """

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ''


# Driver errors raised from prepare/bind/execute are passed through
# untouched; this group exists for callers' except clauses.
StatementError = (
    sa.exc.StatementError,    # SQLAlchemy statement compilation/execution errors
    sa.exc.DBAPIError,        # Wrapped DBAPI driver errors
    )
