"""
batch_process.steps -- Step protocol and built-in steps.

Steps only talk to the process through the ``Iteration`` they receive.
"""

from batch_process.steps.base import EntityHook, Step
from batch_process.steps.callable_step import CallableStep
from batch_process.steps.chain import ChainStep
from batch_process.steps.persist import PersistEntityStep
from batch_process.steps.remove import RemoveEntityStep

__all__ = [
    "CallableStep",
    "ChainStep",
    "EntityHook",
    "PersistEntityStep",
    "RemoveEntityStep",
    "Step",
]
