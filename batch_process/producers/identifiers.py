"""EntityIdentifiersProducer -- loads entities one by one from a key list."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any

from batch_kernel.logging_config import get_logger

from batch_process.producers.base import BoundProducer

logger = get_logger("batch.producers.identifiers")


class EntityIdentifiersProducer(BoundProducer):
    """
    Yields ``kind`` entities for each identifier, in the given order.

    Each entity is loaded through the bound unit of work right before it is
    yielded, so entities produced after a checkpoint are attached to the
    cleared session.  Identifiers with no stored row are skipped.
    """

    def __init__(self, kind: type, identifiers: Iterable[Any]):
        super().__init__()
        self._kind = kind
        self._identifiers = tuple(identifiers)

    @property
    def kind(self) -> type:
        return self._kind

    def produce(self) -> Iterator[Any]:
        unit_of_work = self.unit_of_work
        for identity in self._identifiers:
            entity = unit_of_work.find_by_identity(self._kind, identity)
            if entity is None:
                logger.debug(
                    "identifier_not_found",
                    extra={"entity_kind": self._kind.__name__, "identity": identity},
                )
                continue
            yield entity
