import functools
import json
import logging

import click.testing
import pytest

from statebox import FileStorage, SQLiteStorage
from statebox.cli import main


@pytest.fixture(autouse=True)
def _restore_root_logging():
    # Every command configures the logging; the handlers must not leak to other tests.
    logger = logging.getLogger()
    handlers = list(logger.handlers)
    level = logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)


@pytest.fixture()
def runner():
    runner = click.testing.CliRunner()
    return runner


@pytest.fixture()
def invoke(runner):
    return functools.partial(runner.invoke, main)


@pytest.fixture()
def statedir(tmp_path):
    storage = FileStorage(tmp_path)
    storage.set_item('counter', json.dumps({'state': {'count': 5}, 'version': 2}))
    storage.set_item('settings', json.dumps({'state': {'theme': 'dark'}}))
    return tmp_path


@pytest.fixture()
def statedb(tmp_path):
    path = tmp_path / 'states.db'
    storage = SQLiteStorage(path)
    try:
        storage.set_item('counter', json.dumps({'state': {'count': 5}, 'version': 2}))
    finally:
        storage.close()
    return path
