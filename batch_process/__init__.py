"""
batch_process -- Buffered batch execution over a SQLAlchemy unit of work.

Drives a (possibly unbounded) sequence of items through a step, commits
every ``buffer_size`` items, reloads registered entities after each commit,
and applies a rollback protocol when a run fails.

Architecture:
    batch_process/ depends on batch_kernel/ (exceptions, logging, clock) and
    batch_config/ (settings).  Nothing in batch_kernel/ imports from here.

Invariants:
    - Positions are contiguous from 0 within one run
    - Position 0 never commits; commits at multiples of buffer_size
    - Final commit after exhaustion (configurable for empty runs)
    - Transactional entities reloaded by identity after every commit
    - Identifier-strategy overrides restored on every exit path
    - No retries
"""

from batch_process.domain import (
    IdentifierStrategy,
    Iteration,
    ProcessRunResult,
    ProcessState,
    TransactionMode,
)
from batch_process.factory import BatchProcessFactory
from batch_process.producers import (
    CallableProducer,
    DataProducer,
    EntityIdentifiersProducer,
    QueryProducer,
    SequenceProducer,
)
from batch_process.services.identifier_override import IdentifierStrategyOverride
from batch_process.services.process import (
    DEFAULT_BUFFER_SIZE,
    Process,
    TransactionalEntity,
)
from batch_process.services.unit_of_work import SqlAlchemyUnitOfWork, UnitOfWork
from batch_process.steps import (
    CallableStep,
    ChainStep,
    PersistEntityStep,
    RemoveEntityStep,
    Step,
)

__all__ = [
    "DEFAULT_BUFFER_SIZE",
    "BatchProcessFactory",
    "CallableProducer",
    "CallableStep",
    "ChainStep",
    "DataProducer",
    "EntityIdentifiersProducer",
    "IdentifierStrategy",
    "IdentifierStrategyOverride",
    "Iteration",
    "PersistEntityStep",
    "Process",
    "ProcessRunResult",
    "ProcessState",
    "QueryProducer",
    "RemoveEntityStep",
    "SequenceProducer",
    "SqlAlchemyUnitOfWork",
    "Step",
    "TransactionMode",
    "TransactionalEntity",
    "UnitOfWork",
]
