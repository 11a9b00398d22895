"""
A shallow (one-level-deep) equality of the states and their slices.

It is used by the selector subscriptions to decide if the selected slice
has changed, and is exposed publicly as ``statebox.shallow`` for the same
purpose in the framework bindings.

The comparison is intentionally narrow: only the first level of the builtin
containers is looked into, and the nested values are compared by identity
(or by value for primitives, which have no meaningful identity in Python).
Everything else (e.g. datetimes, dataclasses, custom objects) is compared
by identity only, even if the objects are equal by value.
"""
import collections.abc
import math
from typing import Any

# Values of these types are compared by value, not by identity: e.g. two ints of 1000
# from two separately parsed documents are distinct objects, but are the same number.
PRIMITIVES = (type(None), bool, int, float, complex, str, bytes)


def same(a: Any, b: Any) -> bool:
    """
    Compare two values as single values: by identity, or by value for primitives.

    Booleans never equal to the numbers, despite ``True == 1`` in Python.
    NaNs are equal to themselves (and to other NaNs), unlike in Python.
    """
    if a is b:
        return True
    if not isinstance(a, PRIMITIVES) or not isinstance(b, PRIMITIVES):
        return False
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    if isinstance(a, float) and isinstance(b, float) and math.isnan(a) and math.isnan(b):
        return True
    return bool(a == b)


def shallow(a: Any, b: Any) -> bool:
    """
    Compare two values one level deep.

    * Identical values, or equal primitives, are equal.
    * Mappings are equal if they have the same keys with the same values.
    * Lists (or tuples) are equal if they have the same values in the same order.
    * Sets are equal if they have the same items regardless of the order.
    * Everything else, including functions, is equal only if identical.
    """
    if same(a, b):
        return True

    if isinstance(a, collections.abc.Mapping) and isinstance(b, collections.abc.Mapping):
        if len(a) != len(b):
            return False
        for key, val in a.items():
            if key not in b or not same(val, b[key]):
                return False
        return True

    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        if type(a) is not type(b) or len(a) != len(b):
            return False
        return all(same(x, y) for x, y in zip(a, b))

    if isinstance(a, collections.abc.Set) and isinstance(b, collections.abc.Set):
        if len(a) != len(b):
            return False
        return all(item in b for item in a)

    return False
