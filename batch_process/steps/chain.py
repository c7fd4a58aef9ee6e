"""
ChainStep -- ordered composite of steps.

Contract:
    - Children run in order for the same iteration.
    - Membership is by identity: the same step object is held at most once,
      while two equal-but-distinct objects are both kept.
    - The first child that raises stops the chain; its error propagates
      unchanged.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from batch_process.domain.iteration import Iteration
from batch_process.steps.base import Step


class ChainStep:
    """Composite step running its children in insertion order."""

    def __init__(self, steps: Iterable[Step] = ()):
        self._steps: list[Step] = []
        for step in steps:
            self.append(step)

    def __call__(self, iteration: Iteration) -> None:
        for step in tuple(self._steps):
            step(iteration)

    def append(self, step: Step) -> ChainStep:
        """Add ``step`` at the end unless already present."""
        if step not in self:
            self._steps.append(step)
        return self

    def prepend(self, step: Step) -> ChainStep:
        """Add ``step`` at the front unless already present."""
        if step not in self:
            self._steps.insert(0, step)
        return self

    def remove(self, step: Step) -> ChainStep:
        """Remove ``step`` if present; no error otherwise."""
        self._steps = [s for s in self._steps if s is not step]
        return self

    def clear(self) -> ChainStep:
        self._steps.clear()
        return self

    def first(self) -> Step | None:
        return self._steps[0] if self._steps else None

    def last(self) -> Step | None:
        return self._steps[-1] if self._steps else None

    def __contains__(self, step: object) -> bool:
        return any(s is step for s in self._steps)

    def __iter__(self) -> Iterator[Step]:
        return iter(tuple(self._steps))

    def __len__(self) -> int:
        return len(self._steps)

    def __repr__(self) -> str:
        return f"ChainStep({self._steps!r})"
