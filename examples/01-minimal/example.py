import statebox

statebox.configure(verbose=True)

store = statebox.create_store(
    statebox.subscribe_with_selector(
        statebox.persist(
            lambda set_state, get_state, store: {'count': 0, 'step': 1},
            name='counter',
            get_storage=lambda: statebox.FileStorage('/tmp/statebox-example'),
            partialize=lambda state: {'count': state['count']},
        ),
    ),
)

store.subscribe(lambda state: state['count'], lambda new, old: print(f"Counted: {old} -> {new}"))
store.set_state(lambda state: {'count': state['count'] + state['step']})
