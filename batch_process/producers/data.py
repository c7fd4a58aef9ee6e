"""Producers over in-memory data: fixed iterables and callables."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from typing import Any

from batch_process.producers.base import BoundProducer


class DataProducer(BoundProducer):
    """Yields the items of a fixed iterable.

    A list or tuple can be produced any number of times; a generator only
    once.
    """

    def __init__(self, data: Iterable[Any] = ()):
        super().__init__()
        self._data = data

    def produce(self) -> Iterator[Any]:
        yield from self._data


class CallableProducer(BoundProducer):
    """Calls ``fn()`` when iteration starts and yields what it returns.

    Each ``produce()`` calls ``fn`` again, so a process built on a
    callable producer restarts its source on every run.
    """

    def __init__(self, fn: Callable[[], Iterable[Any]]):
        super().__init__()
        self._fn = fn

    def produce(self) -> Iterator[Any]:
        yield from self._fn()
