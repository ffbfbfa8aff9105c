import logging

import pytest


@pytest.fixture(autouse=True)
def debug_logging(caplog):
    """Capture dbconn debug output for every test."""
    caplog.set_level(logging.DEBUG, logger='dbconn')
    yield


pytest_plugins = [
    'tests.fixtures.mocks',
    'tests.fixtures.sqlite',
]
