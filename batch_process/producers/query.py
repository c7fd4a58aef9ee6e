"""
QueryProducer -- yields the result of a SQLAlchemy ``Select``.

Contract:
    - Without ``page_size`` the whole result is fetched into memory when
      iteration starts.  With ``page_size`` the statement is re-executed with
      ``LIMIT``/``OFFSET`` one page at a time.
    - ``scalars=True`` yields the first column of each row (the entity for
      single-entity selects); ``scalars=False`` yields ``Row`` objects.
    - An entity detached by a checkpoint before it was yielded is reloaded
      by identity; if its row is gone it is skipped.

Non-goals:
    - Offset paging is not stable when the loop deletes or inserts rows
      matched by the statement.  Use ``EntityIdentifiersProducer`` for
      such runs.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Any

from sqlalchemy import Select

from batch_process.producers.base import BoundProducer


class QueryProducer(BoundProducer):
    """Producer over a SQLAlchemy 2.0 ``select()`` statement.

    Without ``page_size`` every matched row is held in memory for the whole
    run, and rows still pending after the first checkpoint are reloaded one
    ``session.get`` at a time.  Pass a ``page_size`` (typically the buffer
    size) for large results so at most one page is held at once.
    """

    def __init__(
        self,
        statement: Select,
        page_size: int | None = None,
        scalars: bool = True,
    ):
        super().__init__()
        if page_size is not None and page_size < 1:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self._statement = statement
        self._page_size = page_size
        self._scalars = scalars

    @property
    def statement(self) -> Select:
        return self._statement

    def produce(self) -> Iterator[Any]:
        if self._page_size is None:
            yield from self._attached(self._fetch(self._statement))
            return

        offset = 0
        while True:
            page = self._fetch(
                self._statement.limit(self._page_size).offset(offset)
            )
            yield from self._attached(page)
            if len(page) < self._page_size:
                return
            offset += self._page_size

    def _fetch(self, statement: Select) -> Sequence[Any]:
        session = self.unit_of_work.session
        if self._scalars:
            return session.scalars(statement).all()
        return session.execute(statement).all()

    def _attached(self, rows: Sequence[Any]) -> Iterator[Any]:
        unit_of_work = self.unit_of_work
        for row in rows:
            if unit_of_work.is_entity(row) and not unit_of_work.contains(row):
                values = unit_of_work.identity_values_of(row)
                identity = values[0] if len(values) == 1 else values
                row = unit_of_work.find_by_identity(type(row), identity)
                if row is None:
                    continue
            yield row
