"""
batch_process.domain -- Pure types and value objects for the process engine.

ZERO I/O.  All types are enums or frozen dataclasses.
"""

from batch_process.domain.iteration import Iteration
from batch_process.domain.types import (
    IdentifierStrategy,
    ProcessRunResult,
    ProcessState,
    TransactionMode,
)

__all__ = [
    "IdentifierStrategy",
    "Iteration",
    "ProcessRunResult",
    "ProcessState",
    "TransactionMode",
]
