"""
Step protocol -- the per-item action invoked by the process loop.

Contract:
    A step is any callable taking one ``Iteration`` and returning nothing.
    Raising aborts the remaining loop for the current run; the process then
    applies its rollback protocol.

Non-goals:
    - Steps do NOT commit.  The process owns checkpoint boundaries.
    - Steps do NOT retry.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from batch_kernel.exceptions import PayloadTypeError

from batch_process.domain.iteration import Iteration

# (entity, iteration) -> None, used by the entity steps for their hooks
EntityHook = Callable[[Any, Iteration], None]


@runtime_checkable
class Step(Protocol):
    """Protocol implemented by every step, including ``ChainStep``."""

    def __call__(self, iteration: Iteration) -> None: ...


def entity_payload(iteration: Iteration) -> Any:
    """Return the iteration's payload, requiring a mapped entity.

    Raises:
        PayloadTypeError: If the payload is not an ORM-mapped instance.
    """
    entity = iteration.data
    if not iteration.unit_of_work.is_entity(entity):
        raise PayloadTypeError("entity", type(entity).__name__)
    return entity
