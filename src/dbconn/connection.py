"""
Database connection handling with SQLAlchemy.

This module provides:
1. The `Connection` class managing lazy write/read physical connections
2. Nested, reference-counted transactions on the write connection
3. The statement pipeline: parameter normalization, event logging, execution
4. The `connect()` function for creating a Connection from options

The Connection is the primary client, providing methods like:
- execute(sql, params) - Execute SQL on the write connection, return affected row count
- fetch_one(sql, params) - First row as a mapping, or None
- fetch_all(sql, params) - All rows as mappings
- fetch_column(sql, params, column) - All values of one column
- yield_all(sql, params) / yield_column(sql, params, column) - Lazy variants
"""
import logging
import traceback
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import fields
from functools import partial
from typing import Any, Self

import sqlalchemy as sa
from dbconn.bind import BindParameterList
from dbconn.cursor import ResultIterator, column_value, row_mapping
from dbconn.driver import DriverInfo, last_insert_id_query
from dbconn.exceptions import ConnectionError
from dbconn.log import LogEntry, Logger
from dbconn.options import DEFAULT_NAME, ConnectionOptions
from dbconn.transaction import Transaction
from dbconn.utils import mask_dsn
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

from libb import attrdict, load_options

__all__ = ['Connection', 'connect', 'open_handle']

logger = logging.getLogger(__name__)


def open_handle(dsn: str, username: str | None = None,
                password: str | None = None) -> tuple[sa.engine.Connection, Engine]:
    """Open a physical connection for a DSN.

    Credentials given here override those embedded in the DSN. Pooling is
    disabled: the handle owns its DBAPI connection until closed.
    """
    try:
        url = sa.engine.make_url(dsn)
        if username is not None:
            url = url.set(username=username)
        if password is not None:
            url = url.set(password=password)
        engine = sa.create_engine(url, poolclass=NullPool)
    except (sa.exc.ArgumentError, ImportError) as err:
        raise ConnectionError(f'Invalid DSN {mask_dsn(dsn)}: {err}') from err

    try:
        handle = engine.connect()
    except sa.exc.DBAPIError as err:
        engine.dispose()
        raise ConnectionError(f'Unable to connect to {mask_dsn(dsn)}: {err}') from err

    logger.debug(f'Opened connection to {mask_dsn(dsn)}')
    return handle, engine


class Connection:
    """Lazy read/write connection pair with nested transactions.

    Physical connections are created on first use: the write connection
    from `dsn` and, when `read_dsn` is set, a separate read connection.
    Reads go to the read connection unless a transaction is open, in which
    case they go to the write connection so they see uncommitted writes.

    A Connection is not thread-safe. It does no locking; callers needing
    concurrency use one Connection per thread or task.

    Outside a transaction each statement is committed once its result is
    consumed. Inside a transaction nothing is committed until the outermost
    `commit()`, and a failing statement does not roll back by itself.
    """

    def __init__(self, dsn: str | None, username: str | None = None,
                 password: str | None = None, read_dsn: str | None = None,
                 name: str = DEFAULT_NAME, logger: Logger | None = None) -> None:
        self._dsn = dsn
        self._username = username
        self._password = password
        self._read_dsn = read_dsn
        self._name = name
        self._logger = logger

        self._write_handle: sa.engine.Connection | None = None
        self._read_handle: sa.engine.Connection | None = None
        self._driver_info: DriverInfo | None = None
        self._transactions = 0
        self._from_handles = False
        self._owned: list[tuple[sa.engine.Connection, Engine]] = []

    @classmethod
    def from_handles(cls, handle: sa.engine.Connection,
                     read_handle: sa.engine.Connection | None = None,
                     name: str = DEFAULT_NAME, logger: Logger | None = None) -> Self:
        """Create a Connection around already open SQLAlchemy connections.

        The handles stay owned by the caller: `close()` leaves them open.
        Such a Connection has no DSN and cannot be pickled.
        """
        cn = cls(None, name=name, logger=logger)
        cn._write_handle = handle
        cn._read_handle = read_handle
        cn._from_handles = True
        return cn

    @classmethod
    def from_options(cls, options: ConnectionOptions) -> Self:
        return cls(options.dsn, options.username, options.password,
                   options.read_dsn, options.name, options.logger)

    def __getstate__(self) -> dict[str, Any]:
        if self._from_handles:
            raise ConnectionError('Connection created from handles')

        return {
            'dsn': self._dsn,
            'username': self._username,
            'password': self._password,
            'read_dsn': self._read_dsn,
            'name': self._name,
            'logger': self._logger,
        }

    def __setstate__(self, state: dict[str, Any]) -> None:
        self.__init__(**state)

    def __repr__(self) -> str:
        dsn = 'handles' if self._from_handles else mask_dsn(self._dsn or '')
        return f'{type(self).__name__}(name={self._name!r}, dsn={dsn!r})'

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    @property
    def name(self) -> str:
        return self._name

    @property
    def logger(self) -> Logger | None:
        return self._logger

    @property
    def dsn(self) -> str | None:
        return self._dsn

    @property
    def read_dsn(self) -> str | None:
        return self._read_dsn

    @property
    def transaction_depth(self) -> int:
        """Number of open begin_transaction() calls not yet committed.
        """
        return self._transactions

    @contextmanager
    def _log_entry(self, statement: str, parameters: BindParameterList | None = None,
                   trace: str | None = None, **kw: Any) -> Iterator[LogEntry | None]:
        """Scope a logger entry around an event; no-op without a logger.
        """
        entry = None
        if self._logger is not None:
            entry = self._logger.new_entry(self._name, statement, parameters, trace, **kw)
        try:
            yield entry
        finally:
            if entry is not None:
                entry.end()

    def _open(self, dsn: str) -> sa.engine.Connection:
        handle, engine = open_handle(dsn, self._username, self._password)
        self._owned.append((handle, engine))
        return handle

    def get_write_handle(self) -> sa.engine.Connection:
        """Get the write connection, opening it on first use.
        """
        if self._write_handle is not None:
            return self._write_handle

        if self._dsn is None:
            raise ConnectionError(f'Connection {self._name} has no DSN')

        with self._log_entry(f'CONNECTION {mask_dsn(self._dsn)}', type=LogEntry.TYPE_CONNECTION):
            self._write_handle = self._open(self._dsn)

        return self._write_handle

    def get_read_handle(self) -> sa.engine.Connection:
        """Get the read connection.

        Inside a transaction this is always the write connection.
        """
        if self._transactions > 0:
            return self.get_write_handle()

        if self._read_handle is not None:
            return self._read_handle

        if self._read_dsn is None:
            return self.get_write_handle()

        # Entry keeps the default type; only the write connection is tagged.
        with self._log_entry(f'CONNECTION {mask_dsn(self._read_dsn)}'):
            self._read_handle = self._open(self._read_dsn)

        return self._read_handle

    def get_driver_info(self) -> DriverInfo:
        """Driver family and server version, computed once from the write connection.
        """
        if self._driver_info is None:
            self._driver_info = DriverInfo.from_handle(self.get_write_handle())
        return self._driver_info

    def get_last_insert_id(self, sequence: str | None = None) -> str | None:
        """Last identity generated on the write connection.
        """
        handle = self.get_write_handle()
        statement, parameters = last_insert_id_query(self.get_driver_info().driver, sequence)
        try:
            value = handle.exec_driver_sql(statement, parameters or None).scalar()
        finally:
            self._release(handle)
        return None if value is None else str(value)

    def begin_transaction(self) -> None:
        """Open a transaction, or join the one already open.

        Only the outermost call begins on the server; no savepoints are used.
        """
        if self._transactions == 0:
            handle = self.get_write_handle()
            if handle.in_transaction():
                handle.commit()
            handle.begin()
            logger.debug(f'Began transaction on {self._name}')

        self._transactions += 1

    def commit(self) -> None:
        """Commit the outermost transaction, or leave one nesting level.

        Does nothing when no transaction is open.
        """
        if self._transactions <= 0:
            return

        if self._transactions == 1:
            self.get_write_handle().commit()
            logger.debug(f'Committed transaction on {self._name}')

        self._transactions -= 1

    def rollback(self) -> None:
        """Roll back the transaction, unwinding every nesting level at once.
        """
        if self._transactions > 0:
            self.get_write_handle().rollback()
            logger.debug(f'Rolled back transaction on {self._name} '
                         f'(depth {self._transactions})')
            self._transactions = 0

    def in_transaction(self) -> bool:
        """Live transaction status of the write connection.
        """
        return self.get_write_handle().in_transaction()

    def transaction(self) -> Transaction:
        """Context manager wrapping begin_transaction/commit/rollback.
        """
        return Transaction(self)

    def _release(self, handle: sa.engine.Connection) -> None:
        """End the implicit transaction of a statement run outside a transaction.
        """
        if self._transactions == 0 and handle.in_transaction():
            handle.commit()

    def _discard(self, handle: sa.engine.Connection) -> None:
        if self._transactions == 0 and handle.in_transaction():
            handle.rollback()

    def _execute_on(self, handle: sa.engine.Connection, statement: str,
                    parameters: BindParameterList | Any | None = None) -> sa.engine.CursorResult:
        """Execute a statement on a physical connection and return its live result.

        The log entry is ended on every exit path; driver errors propagate
        unchanged.
        """
        parameters = BindParameterList(parameters)
        trace = None
        if self._logger is not None:
            trace = ''.join(traceback.format_stack()[:-2])

        with self._log_entry(statement, parameters, trace):
            positional = parameters.is_positional
            try:
                if positional:
                    result = handle.exec_driver_sql(statement, parameters.positional_values() or None)
                else:
                    clause = sa.text(statement).bindparams(*[p.to_sa() for p in parameters])
                    result = handle.execute(clause)
            except Exception:
                logger.error(f'Error with query:\nSQL:\n{statement}\nargs: {parameters.to_dict()}')
                self._discard(handle)
                raise

        return result

    def execute(self, statement: str, parameters: BindParameterList | Any | None = None) -> int:
        """Execute a statement on the write connection and return affected row count.
        """
        handle = self.get_write_handle()
        result = self._execute_on(handle, statement, parameters)
        try:
            return result.rowcount
        finally:
            result.close()
            self._release(handle)

    def fetch_one(self, statement: str, parameters: BindParameterList | Any | None = None) -> attrdict | None:
        """First row as a field-name keyed mapping, None if there are no rows.
        """
        handle = self.get_read_handle()
        result = self._execute_on(handle, statement, parameters)
        try:
            row = result.fetchone()
            return None if row is None else row_mapping(result, row)
        finally:
            result.close()
            self._release(handle)

    def fetch_all(self, statement: str, parameters: BindParameterList | Any | None = None) -> list[attrdict]:
        """All rows as field-name keyed mappings.
        """
        handle = self.get_read_handle()
        result = self._execute_on(handle, statement, parameters)
        try:
            return [row_mapping(result, row) for row in result.fetchall()]
        finally:
            result.close()
            self._release(handle)

    def fetch_column(self, statement: str, parameters: BindParameterList | Any | None = None,
                     column: int = 0) -> list[Any]:
        """Values of one column (0-based index) across all rows.
        """
        handle = self.get_read_handle()
        result = self._execute_on(handle, statement, parameters)
        try:
            return [row[column] for row in result.fetchall()]
        finally:
            result.close()
            self._release(handle)

    def yield_all(self, statement: str, parameters: BindParameterList | Any | None = None) -> ResultIterator:
        """Rows as mappings, fetched one at a time.

        The statement runs immediately; rows are pulled from the open cursor
        as the iterator advances. Single pass.
        """
        handle = self.get_read_handle()
        result = self._execute_on(handle, statement, parameters)
        return ResultIterator(result, row_mapping, on_close=partial(self._release, handle))

    def yield_column(self, statement: str, parameters: BindParameterList | Any | None = None,
                     column: int = 0) -> ResultIterator:
        """Values of one column, fetched one row at a time. Single pass.
        """
        handle = self.get_read_handle()
        result = self._execute_on(handle, statement, parameters)
        return ResultIterator(result, column_value(column), on_close=partial(self._release, handle))

    def close(self) -> None:
        """Close the physical connections this Connection opened.

        Handles supplied to `from_handles` stay open. The Connection
        reconnects lazily if used again.
        """
        for handle, engine in self._owned:
            try:
                handle.close()
            finally:
                engine.dispose()
        if self._owned:
            logger.debug(f'Closed {len(self._owned)} connection(s) for {self._name}')
        self._owned.clear()

        if not self._from_handles:
            self._write_handle = None
            self._read_handle = None
            self._transactions = 0


@load_options(cls=ConnectionOptions)
def connect(options: ConnectionOptions | dict[str, Any] | str,
            config: Any | None = None, **kw: Any) -> Connection:
    """Create a lazy Connection from options.

    Args:
        options: Can be:
                - ConnectionOptions object
                - String path to configuration
                - Dictionary of options
                - Options specified as keyword arguments
        config: Configuration object (for loading from config files)
        **kw: Additional keyword arguments to override options

    Returns
        Connection; no physical connection is opened until first use
    """
    if isinstance(options, ConnectionOptions):
        for field in fields(options):
            kw.pop(field.name, None)
    else:
        options_func = load_options(cls=ConnectionOptions)(lambda o, c: o)
        options = options_func(options, config, **kw)

    return Connection.from_options(options)
