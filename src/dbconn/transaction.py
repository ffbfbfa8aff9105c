"""
Transaction context manager over a Connection's nesting counter.
"""
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from dbconn.connection import Connection

logger = logging.getLogger(__name__)


class Transaction:
    """Context manager for running multiple commands in a transaction.

    Entering calls `begin_transaction()`, a clean exit calls `commit()` and
    an exception calls `rollback()`. Blocks may be nested, including inside
    manual begin/commit pairs: only the outermost level reaches the server.
    A rollback at any level unwinds every level.

    Examples
        with Transaction(cn) as tx:
            tx.execute('delete from ...', args)
            tx.execute('update from ...', args)
    """

    def __init__(self, cn: 'Connection') -> None:
        self.connection = cn

    def __enter__(self):
        self.connection.begin_transaction()
        logger.debug(f'Entered transaction block on {self.connection.name} '
                     f'(depth {self.connection.transaction_depth})')
        return self

    def __exit__(self, exc_type: type | None, value: Exception | None, traceback: Any | None) -> None:
        if exc_type is not None:
            logger.warning(f'Rolling back the current transaction on {self.connection.name}')
            self.connection.rollback()
        else:
            self.connection.commit()

    def __getattr__(self, name: str) -> Any:
        """Delegate query methods to the connection.
        """
        if name == 'connection':
            raise AttributeError(name)
        return getattr(self.connection, name)
