"""
UnitOfWork -- persistence capability consumed by the process engine.

Contract:
    ``UnitOfWork`` is the protocol the engine and the built-in steps and
    producers talk to.  ``SqlAlchemyUnitOfWork`` implements it over a
    ``sqlalchemy.orm.Session``.

Architecture: batch_process/services.  Imports from batch_process.domain and
    batch_kernel only.

Invariants enforced:
    - Identifier strategy lives in shared mapping metadata (the mapped
      table's ``info`` dict), so an override is visible to every session
      until it is restored.
    - Kinds using ``IdentifierStrategy.ASSIGNED`` are rejected at flush
      time when their primary key is unset (``IdentifierNotAssignedError``);
      the column default never fires for them.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from sqlalchemy import Integer, event, inspect
from sqlalchemy.orm import InstanceState, Mapper, Session

from batch_kernel.exceptions import IdentifierNotAssignedError, UnmappedEntityError
from batch_kernel.logging_config import get_logger

from batch_process.domain.types import IdentifierStrategy, TransactionMode

logger = get_logger("batch.unit_of_work")

STRATEGY_INFO_KEY = "batch_process.identifier_strategy"


# =============================================================================
# Protocol
# =============================================================================


@runtime_checkable
class UnitOfWork(Protocol):
    """
    Capability the engine needs from a persistence backend.

    Non-goals:
        - Does NOT retry.  Errors propagate to the process loop.
        - Does NOT own transaction boundaries beyond ``commit()``.
    """

    def stage(self, entity: Any) -> Any:
        """Register an entity for insert or update; return the tracked instance."""
        ...

    def unstage(self, entity: Any) -> None:
        """Register an entity for removal."""
        ...

    def commit(self) -> None:
        """Persist all pending changes."""
        ...

    def clear_tracking(self) -> None:
        """Forget every tracked entity."""
        ...

    def find_by_identity(self, kind: type, identity: Any) -> Any | None:
        """Load an entity by primary key, or None if absent."""
        ...

    def identifier_strategy_for(self, kind: type) -> IdentifierStrategy: ...

    def set_identifier_strategy_for(
        self, kind: type, strategy: IdentifierStrategy
    ) -> None: ...

    def identity_values_of(self, entity: Any) -> tuple[Any, ...]:
        """Ordered primary-key values; more than one means composite."""
        ...

    def is_entity(self, obj: Any) -> bool: ...


# =============================================================================
# Mapping helpers
# =============================================================================


def mapper_for(kind: type) -> Mapper:
    """Return the mapper of an ORM-mapped class.

    Raises:
        UnmappedEntityError: If ``kind`` is not mapped.
    """
    mapper = inspect(kind, raiseerr=False) if isinstance(kind, type) else None
    if not isinstance(mapper, Mapper):
        name = kind.__name__ if isinstance(kind, type) else type(kind).__name__
        raise UnmappedEntityError(name)
    return mapper


def _state_of(entity: Any) -> InstanceState:
    state = inspect(entity, raiseerr=False)
    if not isinstance(state, InstanceState):
        raise UnmappedEntityError(type(entity).__name__)
    return state


def default_identifier_strategy(mapper: Mapper) -> IdentifierStrategy:
    """Derive the strategy the mapping itself declares."""
    for column in mapper.primary_key:
        if column.default is not None or column.server_default is not None:
            return IdentifierStrategy.GENERATED
    if len(mapper.primary_key) == 1:
        column = mapper.primary_key[0]
        if column.autoincrement is True:
            return IdentifierStrategy.GENERATED
        if (
            column.autoincrement == "auto"
            and isinstance(column.type, Integer)
            and not column.foreign_keys
        ):
            return IdentifierStrategy.GENERATED
    return IdentifierStrategy.ASSIGNED


# =============================================================================
# SQLAlchemy implementation
# =============================================================================


class SqlAlchemyUnitOfWork:
    """UnitOfWork over a SQLAlchemy ORM session.

    Contract:
        - ``stage()`` adds the entity; a transient entity whose key already
          exists (or a detached one whose key is already tracked) is merged
          and the merged instance is returned.
        - ``commit()`` commits or only flushes, depending on
          ``transaction_mode``.
        - ``clear_tracking()`` expunges everything from the session.
    """

    def __init__(
        self,
        session: Session,
        transaction_mode: TransactionMode | str = TransactionMode.COMMIT,
    ):
        self._session = session
        self._transaction_mode = TransactionMode(transaction_mode)
        event.listen(session, "before_flush", self._check_assigned_identifiers)

    @property
    def session(self) -> Session:
        return self._session

    @property
    def transaction_mode(self) -> TransactionMode:
        return self._transaction_mode

    def close(self) -> None:
        """Detach the flush listener; the session itself is left open."""
        if event.contains(self._session, "before_flush", self._check_assigned_identifiers):
            event.remove(self._session, "before_flush", self._check_assigned_identifiers)

    # -------------------------------------------------------------------------
    # Change tracking
    # -------------------------------------------------------------------------

    def stage(self, entity: Any) -> Any:
        state = _state_of(entity)
        mapper = state.mapper

        if state.transient:
            values = tuple(mapper.primary_key_from_instance(entity))
            if all(v is not None for v in values):
                if self.find_by_identity(mapper.class_, self._identity_arg(values)) is not None:
                    return self._session.merge(entity)
        elif state.detached and state.key in self._session.identity_map:
            return self._session.merge(entity)

        self._session.add(entity)
        return entity

    def unstage(self, entity: Any) -> None:
        state = _state_of(entity)

        if state.pending:
            self._session.expunge(entity)
            return

        if state.transient or (
            state.detached and state.key in self._session.identity_map
        ):
            values = self.identity_values_of(entity)
            tracked = None
            if all(v is not None for v in values):
                tracked = self.find_by_identity(
                    state.mapper.class_, self._identity_arg(values),
                )
            if tracked is None:
                logger.debug(
                    "unstage_ignored",
                    extra={"entity_kind": state.mapper.class_.__name__},
                )
                return
            entity = tracked
        elif state.detached:
            self._session.add(entity)

        self._session.delete(entity)

    def commit(self) -> None:
        if self._transaction_mode is TransactionMode.COMMIT:
            self._session.commit()
        else:
            self._session.flush()

    def clear_tracking(self) -> None:
        self._session.expunge_all()

    def contains(self, entity: Any) -> bool:
        return entity in self._session

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    def find_by_identity(self, kind: type, identity: Any) -> Any | None:
        return self._session.get(kind, identity)

    def identity_values_of(self, entity: Any) -> tuple[Any, ...]:
        """Primary-key values of ``entity``.

        Uses the persisted identity key when the instance has one, so this
        works on expired, detached instances after a commit.
        """
        state = _state_of(entity)
        if state.identity is not None:
            return tuple(state.identity)
        return tuple(state.mapper.primary_key_from_instance(entity))

    def is_entity(self, obj: Any) -> bool:
        if obj is None or isinstance(obj, type):
            return False
        return isinstance(inspect(type(obj), raiseerr=False), Mapper)

    def is_composite(self, kind: type) -> bool:
        return len(mapper_for(kind).primary_key) > 1

    # -------------------------------------------------------------------------
    # Identifier strategy
    # -------------------------------------------------------------------------

    def identifier_strategy_for(self, kind: type) -> IdentifierStrategy:
        mapper = mapper_for(kind)
        stored = mapper.local_table.info.get(STRATEGY_INFO_KEY)
        if stored is not None:
            return stored
        return default_identifier_strategy(mapper)

    def set_identifier_strategy_for(
        self, kind: type, strategy: IdentifierStrategy
    ) -> None:
        mapper = mapper_for(kind)
        strategy = IdentifierStrategy(strategy)
        if strategy is default_identifier_strategy(mapper):
            mapper.local_table.info.pop(STRATEGY_INFO_KEY, None)
        else:
            mapper.local_table.info[STRATEGY_INFO_KEY] = strategy

    def _check_assigned_identifiers(self, session: Session, flush_context, instances) -> None:
        for obj in session.new:
            mapper = inspect(obj).mapper
            if self.identifier_strategy_for(mapper.class_) is not IdentifierStrategy.ASSIGNED:
                continue
            if any(v is None for v in mapper.primary_key_from_instance(obj)):
                raise IdentifierNotAssignedError(mapper.class_.__name__)

    @staticmethod
    def _identity_arg(values: tuple[Any, ...]) -> Any:
        return values[0] if len(values) == 1 else values
