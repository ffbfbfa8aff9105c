"""
Lazy, single-pass iteration over an open result cursor.
"""
import logging
from collections.abc import Callable
from typing import Any, Self

from libb import attrdict

logger = logging.getLogger(__name__)

__all__ = ['ResultIterator', 'row_mapping', 'column_value']


def row_mapping(result: Any, row: Any) -> attrdict:
    """Row as a field-name keyed mapping.
    """
    return attrdict(dict(zip(result.keys(), row)))


def column_value(column: int) -> Callable[[Any, Any], Any]:
    """Extractor for one column of a row, by 0-based index.
    """
    def extract(result: Any, row: Any) -> Any:
        return row[column]
    return extract


class ResultIterator:
    """Iterator pulling one row at a time from an open result.

    Each `next()` performs exactly one driver fetch. The iterator is not
    restartable: once exhausted or closed it stays empty and nothing is
    re-executed. The result is closed and `on_close` runs exactly once,
    on exhaustion, `close()`, context exit or garbage collection.

    Examples
        with cn.yield_all('select * from big_table') as rows:
            for row in rows:
                if done(row):
                    break
    """

    def __init__(self, result: Any, extract: Callable[[Any, Any], Any] = row_mapping,
                 on_close: Callable[[], None] | None = None) -> None:
        self._result = result
        self._extract = extract
        self._on_close = on_close
        self._closed = False
        self.fetched = 0

    def __iter__(self) -> Self:
        return self

    def __next__(self) -> Any:
        if self._closed:
            raise StopIteration
        try:
            row = self._result.fetchone()
        except Exception:
            self.close()
            raise
        if row is None:
            self.close()
            raise StopIteration
        self.fetched += 1
        return self._extract(self._result, row)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    def __del__(self) -> None:
        if not getattr(self, '_closed', True):
            self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the cursor. Safe to call more than once.
        """
        if self._closed:
            return
        self._closed = True
        try:
            self._result.close()
        finally:
            if self._on_close is not None:
                self._on_close()
            logger.debug(f'Result cursor released after {self.fetched} rows')
