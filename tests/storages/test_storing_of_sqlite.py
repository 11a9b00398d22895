import sqlite3
import threading

import pytest

from statebox import SQLiteStorage


def test_values_survive_reconnections(tmp_path):
    storage1 = SQLiteStorage(tmp_path / 'db.sqlite')
    storage1.set_item('name', 'value')
    storage1.close()

    storage2 = SQLiteStorage(tmp_path / 'db.sqlite')
    try:
        assert storage2.get_item('name') == 'value'
    finally:
        storage2.close()


def test_custom_table(tmp_path):
    storage = SQLiteStorage(tmp_path / 'db.sqlite', table='my_states')
    try:
        storage.set_item('name', 'value')
    finally:
        storage.close()

    conn = sqlite3.connect(str(tmp_path / 'db.sqlite'))
    try:
        rows = conn.execute('SELECT name, value FROM my_states').fetchall()
    finally:
        conn.close()
    assert rows == [('name', 'value')]


@pytest.mark.parametrize('table', ['', 'a b', 'x; DROP TABLE y', '1abc'])
def test_invalid_table_names_are_rejected(tmp_path, table):
    with pytest.raises(ValueError, match=r"not a valid identifier"):
        SQLiteStorage(tmp_path / 'db.sqlite', table=table)


def test_closing_twice_is_harmless(sqlite_storage):
    sqlite_storage.set_item('name', 'value')
    sqlite_storage.close()
    sqlite_storage.close()


def test_reconnects_after_closing(sqlite_storage):
    sqlite_storage.set_item('name', 'value')
    sqlite_storage.close()
    assert sqlite_storage.get_item('name') == 'value'


def test_usable_from_other_threads(sqlite_storage):
    errors = []

    def write(idx):
        try:
            sqlite_storage.set_item(f'name{idx}', f'value{idx}')
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=write, args=(idx,)) for idx in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert not errors
    assert sqlite_storage.keys() == [f'name{idx}' for idx in range(5)]
