"""
Observer registry for job progress.

Subscribers are plain callables keyed by an opaque handle. The JobManager
publishes a fresh status snapshot after every mutation.
"""

import itertools
import logging
from typing import Callable, Dict

logger = logging.getLogger(__name__)


class ProgressBroadcaster:

    def __init__(self):
        self._subscribers: Dict[int, Callable] = {}
        self._handles = itertools.count(1)

    def add(self, callback: Callable) -> int:
        handle = next(self._handles)
        self._subscribers[handle] = callback
        return handle

    def remove(self, handle: int) -> bool:
        return self._subscribers.pop(handle, None) is not None

    def publish(self, snapshot) -> None:
        # Copy: callbacks may unsubscribe while we iterate.
        for handle, callback in list(self._subscribers.items()):
            try:
                callback(snapshot)
            except Exception as e:
                logger.warning(f"Progress subscriber {handle} failed: {e}")

    def __len__(self) -> int:
        return len(self._subscribers)
