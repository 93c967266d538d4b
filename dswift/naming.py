from __future__ import annotations

import threading


class NameAllocator:
    """
    Thread-safe generator of unique symbol names: ``{prefix}0``, ``{prefix}1``, ...

    Owned by the caller that orchestrates a generation run, so independent
    runs never share counters.
    """

    def __init__(self, prefix: str, start: int = 0):
        self.prefix = prefix
        self._counter = start
        self._lock = threading.Lock()

    def next(self) -> str:
        with self._lock:
            idx = self._counter
            self._counter += 1
        return f"{self.prefix}{idx}"


def class_names() -> NameAllocator:
    return NameAllocator("ClassGEN")


def library_names() -> NameAllocator:
    return NameAllocator("LibraryGEN")


__all__ = ["NameAllocator", "class_names", "library_names"]
