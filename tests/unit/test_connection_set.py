"""Unit tests for the named connection registry."""
import pytest
from dbconn.connection import Connection
from dbconn.connection_set import ConnectionSet
from dbconn.exceptions import NotFoundError
from dbconn.log import Logger


def make(name='default', logger=None):
    return Connection(f'sqlite:///{name}.db', name=name, logger=logger)


def test_constructor_registers_connections():
    main, audit = make(), make('audit')
    connections = ConnectionSet(main, audit)

    assert len(connections) == 2
    assert list(connections) == [main, audit]
    assert connections.names() == ['default', 'audit']


def test_default_name_lookup():
    main = make()
    connections = ConnectionSet(main)

    assert connections.has()
    assert connections.get() is main
    assert 'default' in connections


def test_duplicate_name_replaces_prior_entry():
    first, audit, second = make(), make('audit'), make()
    connections = ConnectionSet(first, audit)
    connections.add(second)

    assert len(connections) == 2
    assert connections.get() is second
    assert list(connections) == [second, audit]


def test_missing_connection():
    connections = ConnectionSet(make())

    assert not connections.has('missing')
    assert 'missing' not in connections
    with pytest.raises(NotFoundError, match='Connection "missing" not found'):
        connections.get('missing')


def test_not_found_is_a_key_error():
    with pytest.raises(KeyError):
        ConnectionSet().get()


def test_empty_set():
    connections = ConnectionSet()
    assert len(connections) == 0
    assert not connections.has()
    assert list(connections.loggers()) == []


def test_loggers_are_distinct_and_skip_missing():
    shared, own = Logger(), Logger()
    connections = ConnectionSet(
        make('a', shared),
        make('b'),
        make('c', shared),
        make('d', own),
    )

    loggers = list(connections.loggers())

    assert len(loggers) == 2
    assert loggers[0] is shared
    assert loggers[1] is own


def test_close_closes_members(mocker):
    main, audit = make(), make('audit')
    close_main = mocker.patch.object(main, 'close')
    close_audit = mocker.patch.object(audit, 'close')

    ConnectionSet(main, audit).close()

    close_main.assert_called_once_with()
    close_audit.assert_called_once_with()
