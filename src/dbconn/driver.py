"""
Driver identification and capability classification.

Each driver family registers one DriverCapabilities variant. A variant is a
pure function of the server version: nothing is probed at runtime, callers
consult the flags to decide which SQL features are safe to emit.

    @register_capabilities('mariadb')
    class MariaDBCapabilities(DriverCapabilities):
        ...
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from dbconn.exceptions import DatabaseError
from dbconn.utils import get_driver_name, get_server_version
from dbconn.utils import version_at_least

logger = logging.getLogger(__name__)

__all__ = [
    'DriverInfo',
    'DriverCapabilities',
    'GenericCapabilities',
    'MariaDBCapabilities',
    'MySQLCapabilities',
    'PostgresCapabilities',
    'SQLiteCapabilities',
    'get_capabilities',
    'register_capabilities',
    'last_insert_id_query',
]

# Registry of driver name -> capabilities class
_CAPABILITIES_REGISTRY: dict[str, type['DriverCapabilities']] = {}


def register_capabilities(driver: str):
    """Decorator to register a capabilities class for a driver family.
    """
    def decorator(cls: type['DriverCapabilities']) -> type['DriverCapabilities']:
        _CAPABILITIES_REGISTRY[driver] = cls
        return cls
    return decorator


@dataclass(frozen=True)
class DriverInfo:
    """Driver family and server version of a physical connection.
    """
    driver: str
    version: str

    @classmethod
    def from_handle(cls, handle: Any) -> 'DriverInfo':
        """Identify the driver behind a SQLAlchemy connection.
        """
        return cls(get_driver_name(handle), get_server_version(handle))

    @property
    def capabilities(self) -> 'DriverCapabilities':
        return get_capabilities(self)


class DriverCapabilities(ABC):
    """Feature flags of one driver family at one version.
    """

    def __init__(self, driver_info: DriverInfo) -> None:
        self.driver_info = driver_info

    def _since(self, version: str) -> bool:
        return version_at_least(self.driver_info.version, version)

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.driver_info.version!r})'

    @abstractmethod
    def has_lock(self) -> bool:
        """Row locking with SELECT ... FOR UPDATE.
        """

    @abstractmethod
    def has_lock_and_skip(self) -> bool:
        """Row locking with SKIP LOCKED.
        """

    @abstractmethod
    def has_window_functions(self) -> bool:
        """Window functions (OVER clauses).
        """

    @abstractmethod
    def has_json(self) -> bool:
        """Native JSON type and functions.
        """

    @abstractmethod
    def has_strict_mode(self) -> bool:
        """Strict typing or SQL mode.
        """


class GenericCapabilities(DriverCapabilities):
    """Unknown driver: assume nothing.
    """

    def has_lock(self) -> bool:
        return False

    def has_lock_and_skip(self) -> bool:
        return False

    def has_window_functions(self) -> bool:
        return False

    def has_json(self) -> bool:
        return False

    def has_strict_mode(self) -> bool:
        return False


@register_capabilities('mariadb')
class MariaDBCapabilities(DriverCapabilities):

    def has_lock(self) -> bool:
        return True

    def has_lock_and_skip(self) -> bool:
        return self._since('10.6.0')

    def has_window_functions(self) -> bool:
        return self._since('10.2.0')

    def has_json(self) -> bool:
        return self._since('10.2.0')

    def has_strict_mode(self) -> bool:
        return True


@register_capabilities('mysql')
class MySQLCapabilities(DriverCapabilities):

    def has_lock(self) -> bool:
        return True

    def has_lock_and_skip(self) -> bool:
        return self._since('8.0.1')

    def has_window_functions(self) -> bool:
        return self._since('8.0.2')

    def has_json(self) -> bool:
        return self._since('5.7.8')

    def has_strict_mode(self) -> bool:
        return True


@register_capabilities('postgresql')
class PostgresCapabilities(DriverCapabilities):

    def has_lock(self) -> bool:
        return True

    def has_lock_and_skip(self) -> bool:
        return self._since('9.5')

    def has_window_functions(self) -> bool:
        return self._since('8.4')

    def has_json(self) -> bool:
        return self._since('9.2')

    def has_strict_mode(self) -> bool:
        return True


@register_capabilities('sqlite')
class SQLiteCapabilities(DriverCapabilities):
    """SQLite has no row locks; STRICT tables arrived in 3.37.
    """

    def has_lock(self) -> bool:
        return False

    def has_lock_and_skip(self) -> bool:
        return False

    def has_window_functions(self) -> bool:
        return self._since('3.25.0')

    def has_json(self) -> bool:
        return self._since('3.38.0')

    def has_strict_mode(self) -> bool:
        return self._since('3.37.0')


def get_capabilities(driver_info: DriverInfo) -> DriverCapabilities:
    """Capabilities variant for a driver family and version.
    """
    cls = _CAPABILITIES_REGISTRY.get(driver_info.driver)
    if cls is None:
        logger.debug(f'No capabilities registered for driver {driver_info.driver}, assuming none')
        cls = GenericCapabilities
    return cls(driver_info)


def last_insert_id_query(driver: str, sequence: str | None = None) -> tuple[str, tuple]:
    """Statement and positional parameters returning the last generated id.

    Only PostgreSQL honours `sequence`; other drivers track one identity per
    connection.
    """
    if driver == 'sqlite':
        return 'SELECT last_insert_rowid()', ()
    if driver in {'mysql', 'mariadb'}:
        return 'SELECT LAST_INSERT_ID()', ()
    if driver == 'postgresql':
        if sequence:
            return 'SELECT currval(%s)', (sequence,)
        return 'SELECT lastval()', ()
    raise DatabaseError(f'Last insert id is not supported for driver {driver}')
