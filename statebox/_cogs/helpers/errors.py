"""
All the library's own exceptions.

Most failures of the persistence side-channel are not raised, but logged
(see :mod:`statebox._core.engines.persistence`). Only the explicit calls
to the persistence namespace can fail with these errors.
"""


class StateboxError(Exception):
    """ A base class for all the library's errors. """


class PersistenceError(StateboxError):
    """ Persisting or hydrating the state has failed. """


class StorageUnavailableError(PersistenceError):
    """
    The storage is not available for an explicitly requested operation.

    The implicit writes (on every state change) do not raise this error,
    but log a warning and continue with the unpersisted in-memory state.
    """
