"""RemoveEntityStep -- stage the iteration's entity for deletion."""

from __future__ import annotations

from batch_process.domain.iteration import Iteration
from batch_process.steps.base import EntityHook, entity_payload


class RemoveEntityStep:
    """Step calling ``UnitOfWork.unstage`` between optional pre/post hooks.

    Raises ``PayloadTypeError`` when the payload is not a mapped entity.
    """

    def __init__(
        self,
        *,
        on_pre_remove: EntityHook | None = None,
        on_post_remove: EntityHook | None = None,
    ):
        self._on_pre_remove = on_pre_remove
        self._on_post_remove = on_post_remove

    def on_pre_remove(self, fn: EntityHook | None) -> RemoveEntityStep:
        self._on_pre_remove = fn
        return self

    def on_post_remove(self, fn: EntityHook | None) -> RemoveEntityStep:
        self._on_post_remove = fn
        return self

    def __call__(self, iteration: Iteration) -> None:
        entity = entity_payload(iteration)

        if self._on_pre_remove is not None:
            self._on_pre_remove(entity, iteration)

        iteration.unit_of_work.unstage(entity)

        if self._on_post_remove is not None:
            self._on_post_remove(entity, iteration)
