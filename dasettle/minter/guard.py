"""
Settlement Dutch Auction Reentrancy Guard

Per-project busy flags for the entry points that issue payments.
"""

from __future__ import annotations
import logging
from contextlib import contextmanager
from typing import Hashable, Iterator, Set

from dasettle.errors import ReentrantCallError

logger = logging.getLogger(__name__)


class ReentrancyGuard:
    """A nested call into a busy region fails immediately."""

    def __init__(self):
        self._busy: Set[Hashable] = set()

    def is_busy(self, key: Hashable) -> bool:
        return key in self._busy

    @contextmanager
    def enter(self, *keys: Hashable) -> Iterator[None]:
        """Hold every key for the duration of the block."""
        held = []
        try:
            for key in keys:
                if key in self._busy:
                    logger.debug(f"Reentrant call rejected for {key!r}")
                    raise ReentrantCallError(repr(key))
                self._busy.add(key)
                held.append(key)
            yield
        finally:
            for key in held:
                self._busy.discard(key)
