"""
Process -- buffered batch execution over a unit of work.

Contract:
    Pulls items from a producer, wraps each in an ``Iteration``, runs the
    configured step, and commits every ``buffer_size`` iterations plus once
    after the producer is exhausted.  A failure aborts the run; the rollback
    hook, if set, turns it into an early return.

Architecture: batch_process/services.  Imports from batch_process.domain,
    batch_process.producers, batch_process.steps and batch_kernel.

Invariants enforced:
    - Positions emitted by one run are contiguous from 0.
    - ``buffer_size >= 1``; position 0 never triggers a commit.
    - A final commit always follows exhaustion (a zero-item run skips it
      only when ``commit_when_empty`` is False).
    - Transactional entities are reloaded by identity after every commit;
      composite identities raise ``CompositeIdentifierError``.
    - Identifier-strategy overrides are restored on every exit path.
    - No retries anywhere.

Failure modes:
    - ``ProcessFailure``  -- step, hook, producer or commit raised and no
      rollback hook is set.
    - ``RollbackFailure`` -- the rollback hook itself raised.  Fatal.
"""

from __future__ import annotations

from collections.abc import Callable, Generator, Iterable
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from sqlalchemy import Select

from batch_kernel.domain.clock import Clock, SystemClock
from batch_kernel.exceptions import (
    CompositeIdentifierError,
    InvalidBufferSizeError,
    ProcessFailure,
    RollbackFailure,
)
from batch_kernel.logging_config import LogContext, get_logger

from batch_process.domain.iteration import Iteration
from batch_process.domain.types import ProcessRunResult, ProcessState
from batch_process.producers.base import SequenceProducer
from batch_process.producers.data import CallableProducer, DataProducer
from batch_process.producers.identifiers import EntityIdentifiersProducer
from batch_process.producers.query import QueryProducer
from batch_process.services.identifier_override import IdentifierStrategyOverride
from batch_process.services.unit_of_work import UnitOfWork
from batch_process.steps.base import Step

if TYPE_CHECKING:
    from batch_config.schema import ProcessSettings

logger = get_logger("batch.process")

DEFAULT_BUFFER_SIZE = 20

FirstIterationHook = Callable[[Iteration], None]
CommitHook = Callable[["Process", Iteration | None], None]
RollbackHook = Callable[["Process", Exception, Iteration | None], None]


class TransactionalEntity:
    """
    Handle to an entity that must survive commits.

    A commit clears the unit of work, which leaves held ORM instances
    detached.  The process replaces ``entity`` with a freshly loaded
    instance after each commit; callers read it through the handle.
    ``registered`` keeps the object the handle was created with, so the
    caller's own reference still identifies the handle after a refresh.
    """

    __slots__ = ("entity", "registered")

    def __init__(self, entity: Any):
        self.entity = entity
        self.registered = entity

    def holds(self, obj: Any) -> bool:
        """True if ``obj`` is this handle, its current or its registered entity."""
        if obj is None:
            return False
        return obj is self or obj is self.entity or obj is self.registered

    def __call__(self) -> Any:
        return self.entity

    def __repr__(self) -> str:
        return f"TransactionalEntity({self.entity!r})"


class Process:
    """Batch process engine.

    Contract:
        - ``execute()`` runs the full loop and returns the completed count.
        - ``iterate()`` exposes the same loop as a generator of iterations
          for callers who drive it themselves; commits happen when the
          generator is resumed.
        - Reusable across runs; not safe for concurrent ``execute()``.
    """

    def __init__(
        self,
        unit_of_work: UnitOfWork,
        producer: SequenceProducer,
        step: Step | None = None,
        buffer_size: int | None = None,
        *,
        clock: Clock | None = None,
        job_name: str | None = None,
    ):
        self._unit_of_work = unit_of_work
        self._producer = producer
        self._step = step
        self._clock = clock or SystemClock()
        self._job_name = job_name
        self._buffer_size = DEFAULT_BUFFER_SIZE
        self.set_buffer_size(DEFAULT_BUFFER_SIZE if buffer_size is None else buffer_size)

        self._dry_run = False
        self._commit_when_empty = True
        self._disabled_identifier_targets: list[type] = []
        self._transactional_entities: list[TransactionalEntity] = []

        self._on_first_iteration: FirstIterationHook | None = None
        self._on_commit: CommitHook | None = None
        self._on_rollback: RollbackHook | None = None

        self._state = ProcessState.IDLE
        self._run_time = 0.0
        self._commits = 0
        self._last_run: ProcessRunResult | None = None

    # -------------------------------------------------------------------------
    # Construction shortcuts
    # -------------------------------------------------------------------------

    @classmethod
    def iterate_data(
        cls,
        unit_of_work: UnitOfWork,
        data: Iterable[Any] | Callable[[], Iterable[Any]],
        **kwargs: Any,
    ) -> Process:
        """Process over an iterable, or over what a callable returns."""
        if callable(data):
            return cls(unit_of_work, CallableProducer(data), **kwargs)
        return cls(unit_of_work, DataProducer(data), **kwargs)

    @classmethod
    def iterate_entities(
        cls,
        unit_of_work: UnitOfWork,
        kind: type,
        identifiers: Iterable[Any],
        **kwargs: Any,
    ) -> Process:
        """Process over ``kind`` entities loaded by identifier."""
        return cls(unit_of_work, EntityIdentifiersProducer(kind, identifiers), **kwargs)

    @classmethod
    def iterate_query_result(
        cls,
        unit_of_work: UnitOfWork,
        statement: Select,
        page_size: int | None = None,
        **kwargs: Any,
    ) -> Process:
        """Process over the result of a SQLAlchemy ``select()``."""
        return cls(unit_of_work, QueryProducer(statement, page_size=page_size), **kwargs)

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def configure(self, settings: ProcessSettings) -> Process:
        """Apply buffer size, dry-run and empty-commit settings."""
        self.set_buffer_size(settings.buffer_size)
        self.set_dry_run(settings.dry_run)
        self.set_commit_when_empty(settings.commit_when_empty)
        return self

    def set_producer(self, producer: SequenceProducer) -> Process:
        self._producer = producer
        return self

    def set_step(self, step: Step | None = None) -> Process:
        self._step = step
        return self

    def set_buffer_size(self, buffer_size: int = DEFAULT_BUFFER_SIZE) -> Process:
        """
        Raises:
            InvalidBufferSizeError: If ``buffer_size`` is not a positive int.
        """
        if isinstance(buffer_size, bool) or not isinstance(buffer_size, int) or buffer_size < 1:
            raise InvalidBufferSizeError(buffer_size)
        self._buffer_size = buffer_size
        return self

    def set_dry_run(self, dry_run: bool = True) -> Process:
        """In dry-run mode commits skip ``UnitOfWork.commit()`` but still clear."""
        self._dry_run = dry_run
        return self

    def set_commit_when_empty(self, commit_when_empty: bool = True) -> Process:
        """Whether a run that produced no items still performs the final commit."""
        self._commit_when_empty = commit_when_empty
        return self

    def disable_identifier_generation(self, *kinds: type) -> Process:
        """Require caller-assigned identifiers for ``kinds`` during runs."""
        for kind in kinds:
            if kind not in self._disabled_identifier_targets:
                self._disabled_identifier_targets.append(kind)
        return self

    def restore_identifier_generation(self, *kinds: type) -> Process:
        self._disabled_identifier_targets = [
            k for k in self._disabled_identifier_targets if k not in kinds
        ]
        return self

    def restore_all_identifier_generation(self) -> Process:
        self._disabled_identifier_targets = []
        return self

    def add_transactional_entity(self, entity: Any) -> TransactionalEntity:
        """
        Register an entity to be reloaded after every commit.

        Accepts an entity or an existing handle and returns the handle to
        read the entity through.  Registering the same entity twice returns
        the first handle.

        Raises:
            CompositeIdentifierError: If the entity's identity is composite.
            UnmappedEntityError: If ``entity`` is not a mapped instance.
        """
        if isinstance(entity, TransactionalEntity):
            handle = entity
        else:
            for existing in self._transactional_entities:
                if existing.holds(entity):
                    return existing
            handle = TransactionalEntity(entity)

        if handle not in self._transactional_entities:
            if len(self._unit_of_work.identity_values_of(handle.entity)) != 1:
                raise CompositeIdentifierError(type(handle.entity).__name__, "refresh")
            self._transactional_entities.append(handle)
        return handle

    def remove_transactional_entity(self, entity: Any) -> Process:
        """Unregister a handle, or the handle holding ``entity`` now or at registration."""
        self._transactional_entities = [
            h for h in self._transactional_entities if not h.holds(entity)
        ]
        return self

    def clear_transactional_entities(self) -> Process:
        self._transactional_entities = []
        return self

    def on_first_iteration(self, fn: FirstIterationHook | None = None) -> Process:
        self._on_first_iteration = fn
        return self

    def on_commit(self, fn: CommitHook | None = None) -> Process:
        self._on_commit = fn
        return self

    def on_rollback(self, fn: RollbackHook | None = None) -> Process:
        self._on_rollback = fn
        return self

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def unit_of_work(self) -> UnitOfWork:
        return self._unit_of_work

    @property
    def producer(self) -> SequenceProducer:
        return self._producer

    @property
    def step(self) -> Step | None:
        return self._step

    @property
    def buffer_size(self) -> int:
        return self._buffer_size

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    @property
    def commit_when_empty(self) -> bool:
        return self._commit_when_empty

    @property
    def disabled_identifier_targets(self) -> tuple[type, ...]:
        return tuple(self._disabled_identifier_targets)

    @property
    def transactional_entities(self) -> tuple[TransactionalEntity, ...]:
        return tuple(self._transactional_entities)

    @property
    def state(self) -> ProcessState:
        return self._state

    @property
    def run_time(self) -> float:
        """Elapsed seconds of the last run."""
        return self._run_time

    @property
    def last_run(self) -> ProcessRunResult | None:
        return self._last_run

    # -------------------------------------------------------------------------
    # Execute
    # -------------------------------------------------------------------------

    def execute(self) -> int:
        """
        Run the loop to completion.

        Returns:
            The number of iterations completed: the total on success, or
            the number completed before the failure when the rollback hook
            handled it.

        Raises:
            ProcessFailure: If the run failed and no rollback hook is set.
            RollbackFailure: If the rollback hook raised.
        """
        started_at = self._clock.now()
        start = self._clock.monotonic()
        self._state = ProcessState.RUNNING
        self._run_time = 0.0
        count = 0
        error_code: str | None = None

        with LogContext.bind(
            run_id=str(uuid4()),
            job_name=self._job_name,
            producer=type(self._producer).__name__,
            step=type(self._step).__name__ if self._step is not None else None,
        ):
            logger.info(
                "process_started",
                extra={
                    "buffer_size": self._buffer_size,
                    "dry_run": self._dry_run,
                    "disabled_identifier_targets": [
                        k.__name__ for k in self._disabled_identifier_targets
                    ],
                    "transactional_entities": len(self._transactional_entities),
                },
            )
            try:
                with IdentifierStrategyOverride(
                    self._unit_of_work, self._disabled_identifier_targets,
                ):
                    last_iteration: Iteration | None = None
                    iterations = self.iterate()
                    try:
                        for iteration in iterations:
                            last_iteration = iteration
                            if iteration.position == 0 and self._on_first_iteration is not None:
                                self._on_first_iteration(iteration)
                            if self._step is not None:
                                self._step(iteration)
                            count += 1
                    except Exception as exc:
                        error_code = getattr(exc, "code", type(exc).__name__)
                        self._handle_failure(exc, count, last_iteration)
                    finally:
                        iterations.close()
                    if self._state is ProcessState.RUNNING:
                        self._state = ProcessState.COMPLETED
                        logger.info(
                            "process_completed",
                            extra={"completed": count, "commits": self._commits},
                        )
            except BaseException:
                self._state = ProcessState.FAILED
                raise
            finally:
                self._run_time = self._clock.monotonic() - start
                self._last_run = ProcessRunResult(
                    status=self._state,
                    completed=count,
                    commits=self._commits,
                    started_at=started_at,
                    completed_at=self._clock.now(),
                    run_time=self._run_time,
                    error_code=error_code,
                )

        return count

    def _handle_failure(
        self,
        exc: Exception,
        count: int,
        iteration: Iteration | None,
    ) -> None:
        position = iteration.position if iteration is not None else None

        if self._on_rollback is None:
            logger.error(
                "process_failed",
                extra={"completed": count, "position": position},
                exc_info=exc,
            )
            raise ProcessFailure(count, exc) from exc

        try:
            self._on_rollback(self, exc, iteration)
        except Exception as rollback_exc:
            logger.critical(
                "rollback_failed",
                extra={
                    "completed": count,
                    "position": position,
                    "original_error": f"{type(exc).__name__}: {exc}",
                },
                exc_info=rollback_exc,
            )
            raise RollbackFailure(exc, rollback_exc) from rollback_exc

        self._state = ProcessState.ROLLED_BACK
        logger.warning(
            "process_rolled_back",
            extra={
                "completed": count,
                "position": position,
                "error_type": type(exc).__name__,
                "error_message": str(exc),
            },
        )

    # -------------------------------------------------------------------------
    # Iterate
    # -------------------------------------------------------------------------

    def iterate(self) -> Generator[Iteration, None, int]:
        """
        Yield one ``Iteration`` per produced item, committing as it goes.

        The commit for position ``p`` (when ``p > 0`` and ``p`` is a
        multiple of the buffer size) runs when the generator is resumed
        after yielding ``p``.  The final commit runs at exhaustion.  The
        generator returns the number of items produced.
        """
        start = self._clock.monotonic()
        self._commits = 0
        self._producer.bind(self._unit_of_work)

        count = 0
        for data in self._producer.produce():
            iteration = Iteration.for_process(self, data, count)
            yield iteration

            if count > 0 and count % iteration.buffer_size == 0:
                self._commit(iteration)
            count += 1

        if count > 0 or self._commit_when_empty:
            self._commit(None)

        self._run_time = self._clock.monotonic() - start
        return count

    def _commit(self, iteration: Iteration | None) -> None:
        if not self._dry_run:
            self._unit_of_work.commit()
        self._unit_of_work.clear_tracking()

        for handle in self._transactional_entities:
            self._refresh(handle)

        self._commits += 1
        logger.info(
            "process_commit",
            extra={
                "position": iteration.position if iteration is not None else None,
                "commit_number": self._commits,
                "dry_run": self._dry_run,
            },
        )

        if self._on_commit is not None:
            self._on_commit(self, iteration)

    def _refresh(self, handle: TransactionalEntity) -> None:
        entity = handle.entity
        if entity is None:
            return

        kind = type(entity)
        values = self._unit_of_work.identity_values_of(entity)
        if len(values) != 1:
            raise CompositeIdentifierError(kind.__name__, "refresh")
        if values[0] is None:
            # Never persisted (e.g. dry run): nothing to reload from
            logger.debug(
                "transactional_entity_unidentified",
                extra={"entity_kind": kind.__name__},
            )
            return

        handle.entity = self._unit_of_work.find_by_identity(kind, values[0])
        if handle.entity is None:
            logger.warning(
                "transactional_entity_missing",
                extra={"entity_kind": kind.__name__, "identity": values[0]},
            )
        else:
            logger.debug(
                "transactional_entity_refreshed",
                extra={"entity_kind": kind.__name__, "identity": values[0]},
            )
