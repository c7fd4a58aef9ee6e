"""
batch_kernel.domain -- Pure value objects shared across the batch packages.

ZERO I/O (except SystemClock, the sanctioned time boundary).
"""

from batch_kernel.domain.clock import (
    Clock,
    DeterministicClock,
    SystemClock,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
]
