"""
batch_process.producers -- Sources of items for the process loop.

Every producer is configured unbound and receives its unit of work through
``bind()`` when a run starts.
"""

from batch_process.producers.base import BoundProducer, SequenceProducer
from batch_process.producers.data import CallableProducer, DataProducer
from batch_process.producers.identifiers import EntityIdentifiersProducer
from batch_process.producers.query import QueryProducer

__all__ = [
    "BoundProducer",
    "CallableProducer",
    "DataProducer",
    "EntityIdentifiersProducer",
    "QueryProducer",
    "SequenceProducer",
]
