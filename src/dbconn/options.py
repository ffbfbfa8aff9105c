from dataclasses import dataclass
from typing import Any

import sqlalchemy as sa

from libb import ConfigOptions

__all__ = ['ConnectionOptions', 'DEFAULT_NAME']

DEFAULT_NAME = 'default'


@dataclass
class ConnectionOptions(ConfigOptions):
    """Options

    - dsn: SQLAlchemy URL of the write (primary) server, required
    - read_dsn: SQLAlchemy URL of a read replica (default: None, reads go to dsn)
    - username, password: override the credentials embedded in the DSNs
    - name: key of the connection inside a ConnectionSet (default: 'default')
    - logger: dbconn.log.Logger receiving connection and query events (default: None)
    """
    dsn: str = None
    read_dsn: str = None
    username: str = None
    password: str = None
    name: str = DEFAULT_NAME
    logger: Any = None

    def __post_init__(self):
        if not self.dsn:
            raise ValueError('dsn is required')
        for dsn in (self.dsn, self.read_dsn):
            if dsn is not None:
                try:
                    sa.engine.make_url(dsn)
                except sa.exc.ArgumentError as err:
                    raise ValueError(f'Invalid DSN: {err}') from err
        if not self.name:
            raise ValueError('name must not be empty')
