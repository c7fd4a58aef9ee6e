"""CallableStep -- adapts a plain ``fn(payload, iteration)`` function."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from batch_process.domain.iteration import Iteration


class CallableStep:
    """Step that calls ``fn(iteration.data, iteration)``."""

    def __init__(self, fn: Callable[[Any, Iteration], None]):
        self._fn = fn

    def __call__(self, iteration: Iteration) -> None:
        self._fn(iteration.data, iteration)

    def __repr__(self) -> str:
        name = getattr(self._fn, "__qualname__", repr(self._fn))
        return f"CallableStep({name})"
