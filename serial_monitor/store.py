"""Bounded message store and the aggregator that fills it."""

from __future__ import annotations

import queue
from collections import deque
from typing import Iterator

from .const import MAX_MSG_CAPACITY
from .message import Message


class MessageStore:
    """
    Newest-first sequence of messages capped at ``capacity``.

    Backed by a deque so insert-at-front and evict-from-back are both O(1).
    The store is never cleared in place; the session swaps in a fresh one.
    """

    def __init__(self, capacity: int = MAX_MSG_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._messages: deque[Message] = deque(maxlen=capacity)

    def insert(self, msg: Message) -> None:
        # appendleft on a full deque drops the rightmost (oldest) element
        self._messages.appendleft(msg)

    def snapshot(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self._messages)


class Aggregator:
    """Single consumer of the message queue."""

    def __init__(self, in_queue: queue.Queue[Message]) -> None:
        self.in_queue = in_queue

    def drain(self, store: MessageStore) -> int:
        """Move every queued message into ``store``; return how many moved."""
        moved = 0
        while True:
            try:
                msg = self.in_queue.get_nowait()
            except queue.Empty:
                break
            store.insert(msg)
            moved += 1
        return moved
