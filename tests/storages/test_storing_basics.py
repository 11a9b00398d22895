import pytest

from statebox import AsyncMemoryStorage, MemoryStorage, get_default_storage


@pytest.fixture(params=['memory_storage', 'file_storage', 'sqlite_storage'])
def storage(request):
    return request.getfixturevalue(request.param)


def test_absent_items_are_none(storage):
    assert storage.get_item('absent') is None


def test_items_are_stored(storage):
    storage.set_item('name', '{"state": 1}')
    assert storage.get_item('name') == '{"state": 1}'


def test_items_are_overwritten(storage):
    storage.set_item('name', 'first')
    storage.set_item('name', 'second')
    assert storage.get_item('name') == 'second'


def test_items_are_removed(storage):
    storage.set_item('name', 'value')
    storage.remove_item('name')
    assert storage.get_item('name') is None


def test_removing_absent_items_does_nothing(storage):
    storage.remove_item('absent')
    assert storage.get_item('absent') is None


def test_items_are_independent(storage):
    storage.set_item('name1', 'value1')
    storage.set_item('name2', 'value2')
    storage.remove_item('name1')
    assert storage.get_item('name1') is None
    assert storage.get_item('name2') == 'value2'


def test_keys_are_listed(storage):
    storage.set_item('b', 'value')
    storage.set_item('a', 'value')
    assert sorted(storage.keys()) == ['a', 'b']


def test_unicode_values(storage):
    storage.set_item('name', '{"text": "héllo ✓"}')
    assert storage.get_item('name') == '{"text": "héllo ✓"}'


def test_memory_storage_with_initial_items():
    items = {'name': 'value'}
    storage = MemoryStorage(items)
    storage.set_item('name', 'other')
    assert items == {'name': 'value'}
    assert storage.get_item('name') == 'other'


async def test_async_memory_storage(async_storage):
    assert await async_storage.get_item('name') is None
    await async_storage.set_item('name', 'value')
    assert await async_storage.get_item('name') == 'value'
    await async_storage.remove_item('name')
    assert await async_storage.get_item('name') is None


def test_async_memory_storage_is_a_memory_storage():
    storage = AsyncMemoryStorage({'name': 'value'})
    assert isinstance(storage, MemoryStorage)
    assert storage.keys() == ['name']


def test_default_storage_is_shared():
    assert isinstance(get_default_storage(), MemoryStorage)
    assert get_default_storage() is get_default_storage()
