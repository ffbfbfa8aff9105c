import dbconn
import pytest
from dbconn.connection import Connection
from dbconn.log import Logger
from dbconn.options import DEFAULT_NAME, ConnectionOptions


def test_init_defaults():
    """Test default initialization"""
    options = ConnectionOptions(dsn='sqlite:///app.db')

    assert options.read_dsn is None
    assert options.username is None
    assert options.password is None
    assert options.name == DEFAULT_NAME
    assert options.logger is None


def test_all_options():
    log = Logger()
    options = ConnectionOptions(
        dsn='postgresql+psycopg://db-primary/app',
        read_dsn='postgresql+psycopg://db-replica/app',
        username='app',
        password='secret',
        name='main',
        logger=log,
    )

    cn = Connection.from_options(options)

    assert cn.name == 'main'
    assert cn.dsn == 'postgresql+psycopg://db-primary/app'
    assert cn.read_dsn == 'postgresql+psycopg://db-replica/app'
    assert cn.logger is log
    assert cn._username == 'app'
    assert cn._password == 'secret'


def test_validation():
    """Test validation rules"""
    with pytest.raises(ValueError, match='dsn is required'):
        ConnectionOptions()

    with pytest.raises(ValueError, match='Invalid DSN'):
        ConnectionOptions(dsn='not a url')

    with pytest.raises(ValueError, match='Invalid DSN'):
        ConnectionOptions(dsn='sqlite:///app.db', read_dsn='::')

    with pytest.raises(ValueError, match='name'):
        ConnectionOptions(dsn='sqlite:///app.db', name='')


def test_connect_from_dict(opened_handles):
    handles, _ = opened_handles
    cn = dbconn.connect({'dsn': 'sqlite:///app.db', 'name': 'main'})

    assert isinstance(cn, Connection)
    assert cn.name == 'main'
    assert cn.dsn == 'sqlite:///app.db'
    assert handles == {}


def test_connect_from_options(opened_handles):
    handles, _ = opened_handles
    cn = dbconn.connect(ConnectionOptions(dsn='sqlite:///app.db', read_dsn='sqlite:///replica.db'))

    assert cn.read_dsn == 'sqlite:///replica.db'
    assert handles == {}
