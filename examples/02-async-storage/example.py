import asyncio

import statebox


async def migrate(state, version):
    await asyncio.sleep(0.1)  # e.g. fetching the defaults from a remote service
    return {'count': state.get('cnt', 0)}


async def main() -> None:
    storage = statebox.AsyncMemoryStorage({'counter': '{"state": {"cnt": 5}, "version": 1}'})
    store = statebox.create_store(statebox.persist(
        lambda set_state, get_state, store: {'count': 0},
        name='counter',
        get_storage=lambda: storage,
        version=2,
        migrate=migrate,
    ))
    print(f"Before the hydration: {store.get_state()}")
    await store.persist.rehydrate()
    print(f"After the hydration: {store.get_state()}")

    store.set_state({'count': 10})
    await store.persist.flush()
    print(f"Persisted: {await storage.get_item('counter')}")


if __name__ == '__main__':
    asyncio.run(main())
