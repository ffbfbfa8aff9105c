"""
Named registry of Connections.
"""
import logging
from collections.abc import Iterator

from dbconn.connection import Connection
from dbconn.exceptions import NotFoundError
from dbconn.log import Logger
from dbconn.options import DEFAULT_NAME

logger = logging.getLogger(__name__)

__all__ = ['ConnectionSet']


class ConnectionSet:
    """Connections keyed by name, in insertion order.

    Adding a connection under a name already present replaces the previous
    one in place.

    Examples
        connections = ConnectionSet(Connection('sqlite:///main.db'),
                                    Connection('sqlite:///audit.db', name='audit'))
        connections.get('audit').execute('delete from events')
    """

    def __init__(self, *connections: Connection) -> None:
        self._connections: dict[str, Connection] = {}
        for connection in connections:
            self.add(connection)

    def __len__(self) -> int:
        return len(self._connections)

    def __iter__(self) -> Iterator[Connection]:
        return iter(list(self._connections.values()))

    def __contains__(self, name: object) -> bool:
        return name in self._connections

    def add(self, connection: Connection) -> None:
        if connection.name in self._connections:
            logger.debug(f'Replacing connection {connection.name}')
        self._connections[connection.name] = connection

    def has(self, name: str = DEFAULT_NAME) -> bool:
        return name in self._connections

    def get(self, name: str = DEFAULT_NAME) -> Connection:
        """Connection registered under a name.

        Raises NotFoundError naming the missing key.
        """
        try:
            return self._connections[name]
        except KeyError:
            raise NotFoundError(f'Connection "{name}" not found') from None

    def names(self) -> list[str]:
        return list(self._connections)

    def loggers(self) -> Iterator[Logger]:
        """Distinct loggers of the member connections, for central aggregation.
        """
        seen: set[int] = set()
        for connection in self._connections.values():
            connection_logger = connection.logger
            if connection_logger is None or id(connection_logger) in seen:
                continue
            seen.add(id(connection_logger))
            yield connection_logger

    def close(self) -> None:
        """Close the physical connections of every member.
        """
        for connection in self._connections.values():
            connection.close()
