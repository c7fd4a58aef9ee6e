"""
batch_process.domain.types -- Pure enums and frozen DTOs for the engine.

ZERO I/O.  Follows the pattern of batch job types elsewhere in the stack:
``str`` enums for status fields, frozen dataclasses for results.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


# =============================================================================
# Status enums
# =============================================================================


class ProcessState(str, Enum):
    """Lifecycle state of one ``Process.execute()`` call."""

    IDLE = "idle"  # Constructed, or between runs
    RUNNING = "running"  # Loop in progress
    COMPLETED = "completed"  # Producer exhausted, final commit done
    ROLLED_BACK = "rolled_back"  # Failed, rollback hook handled it
    FAILED = "failed"  # Failed, error propagated to the caller


class IdentifierStrategy(str, Enum):
    """How a mapped entity kind obtains its primary key on insert."""

    GENERATED = "generated"  # Column default, server default or autoincrement
    ASSIGNED = "assigned"  # Caller sets the key before the entity is flushed


class TransactionMode(str, Enum):
    """What ``UnitOfWork.commit()`` does against the session."""

    COMMIT = "commit"  # session.commit() -- each checkpoint is durable
    FLUSH = "flush"  # session.flush() -- caller owns the outer transaction


# =============================================================================
# Run DTO
# =============================================================================


@dataclass(frozen=True)
class ProcessRunResult:
    """Immutable summary of the last ``Process.execute()`` call."""

    status: ProcessState
    completed: int  # Iterations completed before failure, or total
    commits: int  # Commits performed, final commit included
    started_at: datetime | None = None
    completed_at: datetime | None = None
    run_time: float = 0.0  # Seconds
    error_code: str | None = None  # ``code`` of the triggering error, if any
