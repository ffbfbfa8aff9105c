"""
Connection management over SQLAlchemy with lazy read/write connections,
nested transactions, normalized bind parameters and event logging.

    import dbconn

    cn = dbconn.connect({'dsn': 'sqlite:///app.db', 'read_dsn': 'sqlite:///replica.db'})
    with cn.transaction():
        cn.execute('update account set balance = balance - ? where id = ?', (10, 1))
    rows = cn.fetch_all('select * from account where owner = :owner', {'owner': 'alice'})
"""
__version__ = '0.1.0'

from dbconn.bind import BindParameter, BindParameterList, DataType
from dbconn.connection import Connection, connect
from dbconn.connection_set import ConnectionSet
from dbconn.cursor import ResultIterator
from dbconn.driver import DriverCapabilities, DriverInfo, get_capabilities
from dbconn.driver import register_capabilities
from dbconn.exceptions import ConnectionError, DatabaseError, NotFoundError
from dbconn.exceptions import StatementError
from dbconn.log import LogEntry, Logger
from dbconn.options import DEFAULT_NAME, ConnectionOptions
from dbconn.transaction import Transaction as transaction

__all__ = [
    'connect',
    'Connection',
    'ConnectionSet',
    'ConnectionOptions',
    'DEFAULT_NAME',
    'transaction',
    'BindParameter',
    'BindParameterList',
    'DataType',
    'ResultIterator',
    'DriverInfo',
    'DriverCapabilities',
    'get_capabilities',
    'register_capabilities',
    'Logger',
    'LogEntry',
    'DatabaseError',
    'ConnectionError',
    'NotFoundError',
    'StatementError',
]
