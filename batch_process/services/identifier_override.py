"""
IdentifierStrategyOverride -- scoped suppression of identifier generation.

Contract:
    On enter, captures the current identifier strategy of every target kind
    and switches it to ``IdentifierStrategy.ASSIGNED``.  On exit (normal
    return or exception) restores every captured strategy, in reverse order.

Invariants enforced:
    - A kind whose override was applied is always restored, even if a later
      kind fails to apply or the guarded block raises.
    - Kinds listed twice are overridden once.
"""

from __future__ import annotations

from collections.abc import Iterable
from contextlib import ExitStack
from types import TracebackType

from batch_kernel.logging_config import get_logger

from batch_process.domain.types import IdentifierStrategy
from batch_process.services.unit_of_work import UnitOfWork

logger = get_logger("batch.identifier_override")


class IdentifierStrategyOverride:
    """Context manager applying one strategy to several entity kinds."""

    def __init__(
        self,
        unit_of_work: UnitOfWork,
        kinds: Iterable[type],
        strategy: IdentifierStrategy = IdentifierStrategy.ASSIGNED,
    ):
        self._unit_of_work = unit_of_work
        self._kinds = tuple(dict.fromkeys(kinds))
        self._strategy = strategy
        self._stack: ExitStack | None = None

    def __enter__(self) -> IdentifierStrategyOverride:
        with ExitStack() as stack:
            for kind in self._kinds:
                original = self._unit_of_work.identifier_strategy_for(kind)
                self._unit_of_work.set_identifier_strategy_for(kind, self._strategy)
                stack.callback(self._restore, kind, original)
                logger.debug(
                    "identifier_strategy_overridden",
                    extra={
                        "entity_kind": kind.__name__,
                        "original": original,
                        "override": self._strategy,
                    },
                )
            self._stack = stack.pop_all()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        stack, self._stack = self._stack, None
        if stack is not None:
            stack.close()

    def _restore(self, kind: type, original: IdentifierStrategy) -> None:
        self._unit_of_work.set_identifier_strategy_for(kind, original)
        logger.debug(
            "identifier_strategy_restored",
            extra={"entity_kind": kind.__name__, "strategy": original},
        )
