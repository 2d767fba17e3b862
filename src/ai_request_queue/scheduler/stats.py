# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Queue statistics with generation-based reset.

Every request records the generation current at admission and passes it
back with each later transition. ``reset()`` starts a new generation, so
work that was already in flight when the counters were reset finishes
without touching the new counters.
"""

from ..types.status import QueueStatus


class QueueStats:
    """
    Counters for the request lifecycle.

    Transitions:
        admit      -> pending += 1
        dispatch   -> pending -= 1, processing += 1
        complete   -> processing -= 1, completed += 1, total_processed += 1
        fail       -> processing -= 1, failed += 1, total_processed += 1
        abandon    -> pending -= 1 (left before dispatch)

    Invariant: completed + failed == total_processed.
    """

    def __init__(self) -> None:
        self._generation = 0
        self._zero()

    def _zero(self) -> None:
        self.pending = 0
        self.processing = 0
        self.completed = 0
        self.failed = 0
        self.total_processed = 0

    @property
    def generation(self) -> int:
        return self._generation

    def admit(self) -> int:
        """Count a newly admitted request and return the generation to carry."""
        self.pending += 1
        return self._generation

    def dispatch(self, generation: int) -> None:
        if generation != self._generation:
            return
        self.pending -= 1
        self.processing += 1

    def complete(self, generation: int) -> None:
        if generation != self._generation:
            return
        self.processing -= 1
        self.completed += 1
        self.total_processed += 1

    def fail(self, generation: int) -> None:
        if generation != self._generation:
            return
        self.processing -= 1
        self.failed += 1
        self.total_processed += 1

    def abandon(self, generation: int) -> None:
        if generation != self._generation:
            return
        self.pending -= 1

    def reset(self) -> None:
        self._generation += 1
        self._zero()

    def snapshot(self) -> QueueStatus:
        return QueueStatus(
            pending=self.pending,
            processing=self.processing,
            completed=self.completed,
            failed=self.failed,
            total_processed=self.total_processed,
        )


__all__ = ["QueueStats"]
