"""
Connection and query event recording.

A Logger is an append-only sink of timed LogEntry objects. A Connection asks
it for a new entry before each event and ends the entry once the event is
over, whether it succeeded or not. Completed entries are also written to the
standard `logging` tree at debug level.
"""
import logging
import time
from collections.abc import Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dbconn.bind import BindParameterList

logger = logging.getLogger(__name__)

__all__ = ['LogEntry', 'Logger']


class LogEntry:
    """One connection-establishment or statement-execution event.
    """

    TYPE_CONNECTION = 'connection'
    TYPE_QUERY = 'query'

    def __init__(self, connection: str, statement: str,
                 parameters: 'BindParameterList | None' = None,
                 trace: str | None = None,
                 type: str = TYPE_QUERY) -> None:
        self.connection = connection
        self.statement = statement
        self.parameters = parameters
        self.trace = trace
        self.type = type
        self.start = time.time()
        self.end_time: float | None = None

    def __repr__(self) -> str:
        return f'LogEntry({self.connection!r}, {self.statement!r}, type={self.type!r})'

    def end(self) -> None:
        """Mark the event as completed. Only the first call counts.
        """
        if self.end_time is not None:
            return
        self.end_time = time.time()
        logger.debug(f'[{self.connection}] {self.type}: {self.statement}'
                     f'{self._params_suffix()} ({self.duration:.4f}s)')

    def _params_suffix(self) -> str:
        if not self.parameters:
            return ''
        return f'\nargs: {self.parameters.to_dict()}'

    @property
    def is_ended(self) -> bool:
        return self.end_time is not None

    @property
    def duration(self) -> float | None:
        """Elapsed seconds, None while the event is running.
        """
        if self.end_time is None:
            return None
        return self.end_time - self.start


class Logger:
    """Append-only recorder of LogEntry objects, in creation order.
    """

    def __init__(self) -> None:
        self._entries: list[LogEntry] = []

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def new_entry(self, connection: str, statement: str,
                  parameters: 'BindParameterList | None' = None,
                  trace: str | None = None,
                  type: str = LogEntry.TYPE_QUERY) -> LogEntry:
        """Create and record a running entry.
        """
        entry = LogEntry(connection, statement, parameters, trace, type)
        self._entries.append(entry)
        return entry

    @property
    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()
