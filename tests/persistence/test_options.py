import json

import pytest

from statebox import MemoryStorage, PersistOptions, create_store, dump_json, dump_yaml, \
                     get_default_storage, load_json, load_yaml, persist, shallow_merge


def initial(set_state, get_state, store):
    return {'count': 0}


def test_option_defaults():
    options = PersistOptions(name='counter')
    assert options.name == 'counter'
    assert options.get_storage is get_default_storage
    assert options.serialize is dump_json
    assert options.deserialize is load_json
    assert options.partialize({'a': 1}) == {'a': 1}
    assert options.on_rehydrate_storage is None
    assert options.version == 0
    assert options.migrate is None
    assert options.merge is shallow_merge


@pytest.mark.parametrize('name', ['', None, 123])
def test_invalid_names(name):
    with pytest.raises(ValueError):
        PersistOptions(name=name)


@pytest.mark.parametrize('persisted, current, expected', [
    ({'a': 1}, {'a': 0, 'b': 0}, {'a': 1, 'b': 0}),
    ({'c': 1}, {'a': 0}, {'a': 0, 'c': 1}),
    (None, {'a': 0}, {'a': 0}),
    ({'a': 1}, None, {'a': 1}),
    ('garbage', {'a': 0}, {'a': 0}),
])
def test_shallow_merge(persisted, current, expected):
    assert shallow_merge(persisted, current) == expected


def test_shallow_merge_copies_the_current_state():
    current = {'a': 0}
    merged = shallow_merge(None, current)
    assert merged == current
    assert merged is not current


def test_getting_the_options(memory_storage):
    store = create_store(persist(initial, name='counter', get_storage=lambda: memory_storage,
                                 version=3))
    options = store.persist.get_options()
    assert isinstance(options, PersistOptions)
    assert options.name == 'counter'
    assert options.version == 3


def test_got_options_are_copies(memory_storage):
    store = create_store(persist(initial, name='counter', get_storage=lambda: memory_storage))
    options = store.persist.get_options()
    options.version = 100
    assert store.persist.get_options().version == 0


def test_setting_some_options_keeps_others(memory_storage):
    store = create_store(persist(initial, name='counter', get_storage=lambda: memory_storage,
                                 version=3))
    store.persist.set_options(name='renamed')
    options = store.persist.get_options()
    assert options.name == 'renamed'
    assert options.version == 3


def test_renamed_stores_write_to_new_names(memory_storage):
    store = create_store(persist(initial, name='counter', get_storage=lambda: memory_storage))
    store.persist.set_options(name='renamed')
    store.set_state({'count': 1})
    assert json.loads(memory_storage.get_item('counter'))['state'] == {'count': 0}
    assert json.loads(memory_storage.get_item('renamed'))['state'] == {'count': 1}


def test_replacing_the_storage(memory_storage):
    store = create_store(persist(initial, name='counter', get_storage=lambda: memory_storage))
    other_storage = MemoryStorage()
    store.persist.set_options(get_storage=lambda: other_storage)
    store.set_state({'count': 1})
    assert store.persist.storage is other_storage
    assert json.loads(memory_storage.get_item('counter'))['state'] == {'count': 0}
    assert json.loads(other_storage.get_item('counter'))['state'] == {'count': 1}


def test_invalid_options_are_not_applied(memory_storage):
    store = create_store(persist(initial, name='counter', get_storage=lambda: memory_storage))
    with pytest.raises(ValueError):
        store.persist.set_options(name='')
    assert store.persist.get_options().name == 'counter'


def test_stores_do_not_share_the_options(memory_storage):
    initializer = persist(initial, name='counter', get_storage=lambda: memory_storage)
    store1 = create_store(initializer)
    store2 = create_store(initializer)
    store1.persist.set_options(version=5)
    assert store2.persist.get_options().version == 0


def test_yaml_serializers(memory_storage):
    store = create_store(persist(initial, name='counter', get_storage=lambda: memory_storage,
                                 serialize=dump_yaml, deserialize=load_yaml))
    store.set_state({'count': 1})
    assert memory_storage.get_item('counter') == 'state:\n  count: 1\nversion: 0\n'

    store2 = create_store(persist(initial, name='counter', get_storage=lambda: memory_storage,
                                  serialize=dump_yaml, deserialize=load_yaml))
    assert store2.get_state() == {'count': 1}
