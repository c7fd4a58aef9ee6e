"""
Iteration -- one item travelling through the process loop.

Immutable.  Created once per produced item by ``Process.iterate()`` and
handed to hooks and steps so they can reach the payload, its position, and
the owning process and unit of work.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from batch_process.services.process import Process
    from batch_process.services.unit_of_work import UnitOfWork


@dataclass(frozen=True)
class Iteration:
    """
    Context for a single item.

    ``buffer_size`` is a snapshot taken when the iteration was created; it
    does not follow later changes to the process.
    """

    process: Process = field(repr=False, compare=False)
    data: Any
    position: int
    buffer_size: int

    @classmethod
    def for_process(cls, process: Process, data: Any, position: int) -> Iteration:
        return cls(
            process=process,
            data=data,
            position=position,
            buffer_size=process.buffer_size,
        )

    @property
    def unit_of_work(self) -> UnitOfWork:
        return self.process.unit_of_work
