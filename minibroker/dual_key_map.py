"""A map whose values can be looked up by either of two independent keys."""

from __future__ import annotations

from collections import deque
from typing import Callable, Generic, Hashable, TypeVar

K1 = TypeVar("K1", bound=Hashable)
K2 = TypeVar("K2", bound=Hashable)
V = TypeVar("V")


class DualKeyHashMap(Generic[K1, K2, V]):
    """Stores values reachable through a first key and a second key.

    Slots freed by removal are reset to a default value and reused by
    later insertions, oldest freed slot first.
    """

    def __init__(self, default_factory: Callable[[], V]) -> None:
        self._default_factory = default_factory
        self._values: list[V] = []
        self._removed: deque[int] = deque()
        self._map1: dict[K1, int] = {}
        self._map2: dict[K2, int] = {}

    def insert(self, key1: K1, key2: K2, value: V) -> None:
        """Store a value under both keys."""
        if self._removed:
            index = self._removed.popleft()
            self._values[index] = value
        else:
            self._values.append(value)
            index = len(self._values) - 1
        self._map1[key1] = index
        self._map2[key2] = index

    def get_using_key1(self, key: K1) -> V | None:
        """Return the value stored under the first key, or None."""
        index = self._map1.get(key)
        return None if index is None else self._values[index]

    def get_using_key2(self, key: K2) -> V | None:
        """Return the value stored under the second key, or None."""
        index = self._map2.get(key)
        return None if index is None else self._values[index]

    def remove(self, key1: K1, key2: K2) -> bool:
        """Remove the value stored under both keys.

        Returns False if either key is unknown. Raises ValueError if the
        two keys refer to different values.
        """
        index1 = self._map1.get(key1)
        if index1 is None:
            return False
        index2 = self._map2.get(key2)
        if index2 is None:
            return False
        if index1 != index2:
            raise ValueError(
                "Attempt to remove from DualKeyHashMap with non-matching keys"
            )
        del self._map1[key1]
        del self._map2[key2]
        self._free(index1)
        return True

    def remove_using_key1(self, key1: K1, key2_of: Callable[[V], K2]) -> bool:
        """Remove by first key; key2_of extracts the second key from the value."""
        index = self._map1.get(key1)
        if index is None:
            return False
        key2 = key2_of(self._values[index])
        del self._map1[key1]
        self._map2.pop(key2, None)
        self._free(index)
        return True

    def remove_using_key2(self, key2: K2, key1_of: Callable[[V], K1]) -> bool:
        """Remove by second key; key1_of extracts the first key from the value."""
        index = self._map2.get(key2)
        if index is None:
            return False
        key1 = key1_of(self._values[index])
        self._map1.pop(key1, None)
        del self._map2[key2]
        self._free(index)
        return True

    def _free(self, index: int) -> None:
        self._values[index] = self._default_factory()
        self._removed.append(index)