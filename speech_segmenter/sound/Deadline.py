# speech_segmenter/sound/Deadline.py
"""
Tests for this module:
- tests/test_deadline.py
"""
from typing import Optional


class Deadline:
    """A cancellable absolute due time guarded by a generation token.

    arm() records a due time, cancel() forgets it. Every arm/cancel bumps
    the generation, so a caller that collected (deadline, generation) for
    firing can check is_current() right before acting and skip the stale
    ones, even if the cancel happened after collection.

    Args:
        name: Label used in logs
    """

    def __init__(self, name: str):
        self.name: str = name
        self.due_ms: Optional[float] = None
        self.generation: int = 0

    @property
    def armed(self) -> bool:
        return self.due_ms is not None

    def arm(self, due_ms: float) -> bool:
        """Arm the deadline if it is not already armed.

        Returns:
            True if armed by this call, False if it was already pending
        """
        if self.due_ms is not None:
            return False
        self.rearm(due_ms)
        return True

    def rearm(self, due_ms: float) -> None:
        """Arm unconditionally, replacing any pending due time."""
        self.generation += 1
        self.due_ms = due_ms

    def cancel(self) -> None:
        if self.due_ms is None:
            return
        self.generation += 1
        self.due_ms = None

    def is_due(self, now_ms: float) -> bool:
        return self.due_ms is not None and now_ms >= self.due_ms

    def is_current(self, generation: int) -> bool:
        """True if generation still identifies the pending arm."""
        return self.due_ms is not None and generation == self.generation

    def consume(self, generation: int) -> bool:
        """Disarm the deadline if generation is current.

        Returns:
            True if the caller should run the handler
        """
        if not self.is_current(generation):
            return False
        self.generation += 1
        self.due_ms = None
        return True
