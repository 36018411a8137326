"""Striped per-key asyncio locks for the in-memory registries."""

import asyncio


class KeyedLock:
    """Fixed pool of asyncio locks; a key always maps to the same lock.

    Operations on the same key are serialized. Distinct keys share a lock
    only when they collide on a stripe, and the pool never grows with the
    number of keys seen.
    """

    def __init__(self, stripes: int = 64):
        if stripes < 1:
            raise ValueError("stripes must be >= 1")
        self._locks = [asyncio.Lock() for _ in range(stripes)]

    def __call__(self, key: str) -> asyncio.Lock:
        return self._locks[hash(key) % len(self._locks)]
