"""Unit tests for the event logger."""
import logging

from dbconn.bind import BindParameterList
from dbconn.log import LogEntry, Logger


def test_new_entry_is_recorded_in_order():
    log = Logger()
    first = log.new_entry('default', 'CONNECTION sqlite://', type=LogEntry.TYPE_CONNECTION)
    second = log.new_entry('default', 'select 1')

    assert log.entries == [first, second]
    assert list(log) == [first, second]
    assert len(log) == 2
    assert first.type == LogEntry.TYPE_CONNECTION
    assert second.type == LogEntry.TYPE_QUERY


def test_entry_fields():
    params = BindParameterList({'id': 1})
    entry = Logger().new_entry('reports', 'select * from t where id = :id', params, 'stack')

    assert entry.connection == 'reports'
    assert entry.statement == 'select * from t where id = :id'
    assert entry.parameters is params
    assert entry.trace == 'stack'
    assert entry.start > 0


def test_end_is_recorded_once(mocker):
    clock = mocker.patch('dbconn.log.time')
    clock.time.side_effect = [100.0, 100.5, 200.0]
    entry = LogEntry('default', 'select 1')

    assert entry.duration is None
    assert not entry.is_ended

    entry.end()
    entry.end()

    assert entry.is_ended
    assert entry.end_time == 100.5
    assert entry.duration == 0.5
    assert clock.time.call_count == 2


def test_end_writes_debug_line(caplog):
    entry = LogEntry('default', 'select :id', BindParameterList({'id': 3}))
    with caplog.at_level(logging.DEBUG, logger='dbconn.log'):
        entry.end()

    assert 'select :id' in caplog.text
    assert "':id': 3" in caplog.text


def test_clear():
    log = Logger()
    log.new_entry('default', 'select 1')
    log.clear()
    assert len(log) == 0
