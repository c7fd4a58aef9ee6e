"""
PersistEntityStep -- stage the iteration's entity for insert or update.

Contract:
    - Payload must be an ORM-mapped instance (``PayloadTypeError`` otherwise).
    - ``skip_insertions``: entities without a stored row are not staged.
    - ``skip_updates``: entities whose row already exists are not staged.
    - Existence is checked with ``UnitOfWork.find_by_identity`` on the
      entity's own primary key; an unset key means "new".
    - Composite primary keys bypass the skip checks: such entities are
      always staged.
    - A skipped entity only triggers ``on_skipped``; otherwise the order is
      ``on_pre_persist`` -> ``UnitOfWork.stage`` -> ``on_post_persist``.
"""

from __future__ import annotations

from typing import Any

from batch_kernel.logging_config import get_logger

from batch_process.domain.iteration import Iteration
from batch_process.steps.base import EntityHook, entity_payload

logger = get_logger("batch.steps.persist")


class PersistEntityStep:
    """Step staging each entity with the unit of work."""

    def __init__(
        self,
        *,
        skip_insertions: bool = False,
        skip_updates: bool = False,
        on_skipped: EntityHook | None = None,
        on_pre_persist: EntityHook | None = None,
        on_post_persist: EntityHook | None = None,
    ):
        self._skip_insertions = skip_insertions
        self._skip_updates = skip_updates
        self._on_skipped = on_skipped
        self._on_pre_persist = on_pre_persist
        self._on_post_persist = on_post_persist

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def skip_insertions(self, skip: bool = True) -> PersistEntityStep:
        self._skip_insertions = skip
        return self

    def skip_updates(self, skip: bool = True) -> PersistEntityStep:
        self._skip_updates = skip
        return self

    def on_skipped(self, fn: EntityHook | None) -> PersistEntityStep:
        self._on_skipped = fn
        return self

    def on_pre_persist(self, fn: EntityHook | None) -> PersistEntityStep:
        self._on_pre_persist = fn
        return self

    def on_post_persist(self, fn: EntityHook | None) -> PersistEntityStep:
        self._on_post_persist = fn
        return self

    # -------------------------------------------------------------------------
    # Invocation
    # -------------------------------------------------------------------------

    def __call__(self, iteration: Iteration) -> None:
        entity = entity_payload(iteration)

        if self._should_skip(entity, iteration):
            logger.debug(
                "entity_skipped",
                extra={
                    "entity_kind": type(entity).__name__,
                    "position": iteration.position,
                },
            )
            if self._on_skipped is not None:
                self._on_skipped(entity, iteration)
            return

        if self._on_pre_persist is not None:
            self._on_pre_persist(entity, iteration)

        tracked = iteration.unit_of_work.stage(entity)

        if self._on_post_persist is not None:
            self._on_post_persist(tracked, iteration)

    def _should_skip(self, entity: Any, iteration: Iteration) -> bool:
        if not (self._skip_insertions or self._skip_updates):
            return False

        unit_of_work = iteration.unit_of_work
        values = unit_of_work.identity_values_of(entity)
        if len(values) != 1:
            return False

        exists = (
            values[0] is not None
            and unit_of_work.find_by_identity(type(entity), values[0]) is not None
        )
        if exists:
            return self._skip_updates
        return self._skip_insertions
