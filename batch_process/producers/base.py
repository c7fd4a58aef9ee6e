"""
SequenceProducer protocol and the shared late-binding base class.

Contract:
    A producer is configured first and bound second: ``bind(unit_of_work)``
    is called by the process when iteration starts, because a source is
    often built before the destination backend is known.  ``produce()``
    returns a fresh lazy iterator over the items.

Non-goals:
    - Producers do NOT rewind.  Re-running a process calls ``produce()``
      again; whether that restarts the source depends on the source.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, Protocol, runtime_checkable

from batch_kernel.exceptions import ProducerNotBoundError

from batch_process.services.unit_of_work import UnitOfWork


@runtime_checkable
class SequenceProducer(Protocol):
    """Protocol for everything the process can pull items from."""

    def bind(self, unit_of_work: UnitOfWork) -> None: ...

    def produce(self) -> Iterator[Any]: ...


class BoundProducer:
    """Base class holding the unit of work a producer was bound to."""

    def __init__(self) -> None:
        self._unit_of_work: UnitOfWork | None = None

    def bind(self, unit_of_work: UnitOfWork) -> None:
        self._unit_of_work = unit_of_work

    @property
    def is_bound(self) -> bool:
        return self._unit_of_work is not None

    @property
    def unit_of_work(self) -> UnitOfWork:
        if self._unit_of_work is None:
            raise ProducerNotBoundError(type(self).__name__)
        return self._unit_of_work

    def produce(self) -> Iterator[Any]:
        raise NotImplementedError
