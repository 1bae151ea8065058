# Copyright (c) 2026 Tokchat. Licensed under the MIT License. See LICENSE.
"""Bounded FIFO record of recently processed tokens, used for repetition penalties."""

from collections.abc import Iterable

import numpy as np

DEFAULT_WINDOW_CAPACITY = 2048


class RecentTokenWindow:
    """Fixed-capacity ring buffer of token ids, oldest evicted first.

    The window is conversation-scoped: prompt tokens and generated tokens are
    pushed in the order they reach the backend, across turns.
    """

    def __init__(self, capacity: int = DEFAULT_WINDOW_CAPACITY):
        if capacity < 1:
            raise ValueError("window capacity must be >= 1")
        self._buf = np.zeros(capacity, dtype=np.int64)
        self._start = 0  # index of the oldest token
        self._size = 0

    @property
    def capacity(self) -> int:
        return self._buf.shape[0]

    def __len__(self) -> int:
        return self._size

    def push(self, token: int) -> None:
        cap = self.capacity
        end = (self._start + self._size) % cap
        self._buf[end] = token
        if self._size < cap:
            self._size += 1
        else:
            self._start = (self._start + 1) % cap

    def extend(self, tokens: Iterable[int]) -> None:
        for token in tokens:
            self.push(token)

    def contents(self) -> np.ndarray:
        """Return a copy of the window, oldest first."""
        cap = self.capacity
        end = self._start + self._size
        if end <= cap:
            return self._buf[self._start:end].copy()
        return np.concatenate((self._buf[self._start:], self._buf[: end - cap]))

    def tolist(self) -> list[int]:
        return self.contents().tolist()

    def clear(self) -> None:
        self._start = 0
        self._size = 0
