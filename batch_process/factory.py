"""
BatchProcessFactory -- builds processes sharing one unit of work and settings.

Contract:
    Every ``iterate_*`` call returns a new ``Process`` bound to the factory's
    unit of work, with the factory's settings and clock already applied.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from sqlalchemy import Select
from sqlalchemy.orm import Session

from batch_config import get_process_settings
from batch_config.schema import ProcessSettings
from batch_kernel.domain.clock import Clock
from batch_kernel.logging_config import configure_logging

from batch_process.services.process import Process
from batch_process.services.unit_of_work import SqlAlchemyUnitOfWork, UnitOfWork


class BatchProcessFactory:
    """Factory for ``Process`` instances over one unit of work."""

    def __init__(
        self,
        unit_of_work: UnitOfWork,
        settings: ProcessSettings | None = None,
        clock: Clock | None = None,
    ):
        self._unit_of_work = unit_of_work
        self._settings = settings or get_process_settings()
        self._clock = clock

    @classmethod
    def for_session(
        cls,
        session: Session,
        settings: ProcessSettings | None = None,
        clock: Clock | None = None,
    ) -> BatchProcessFactory:
        """Wrap ``session`` in a ``SqlAlchemyUnitOfWork`` using the settings' transaction mode."""
        settings = settings or get_process_settings()
        configure_logging(level=settings.log_level_number)
        unit_of_work = SqlAlchemyUnitOfWork(session, settings.transaction_mode)
        return cls(unit_of_work, settings, clock)

    @property
    def unit_of_work(self) -> UnitOfWork:
        return self._unit_of_work

    @property
    def settings(self) -> ProcessSettings:
        return self._settings

    def iterate_data(
        self,
        data: Iterable[Any] | Callable[[], Iterable[Any]],
        job_name: str | None = None,
    ) -> Process:
        return self._configured(
            Process.iterate_data(
                self._unit_of_work, data, clock=self._clock, job_name=job_name,
            )
        )

    def iterate_entities(
        self,
        kind: type,
        identifiers: Iterable[Any],
        job_name: str | None = None,
    ) -> Process:
        return self._configured(
            Process.iterate_entities(
                self._unit_of_work, kind, identifiers,
                clock=self._clock, job_name=job_name,
            )
        )

    def iterate_query_result(
        self,
        statement: Select,
        page_size: int | None = None,
        job_name: str | None = None,
    ) -> Process:
        return self._configured(
            Process.iterate_query_result(
                self._unit_of_work, statement, page_size,
                clock=self._clock, job_name=job_name,
            )
        )

    def _configured(self, process: Process) -> Process:
        return process.configure(self._settings)
