"""
Tests for batch_process.factory -- BatchProcessFactory.
"""

from sqlalchemy import select

from batch_config.schema import ProcessSettings
from batch_process.domain.types import TransactionMode
from batch_process.factory import BatchProcessFactory
from batch_process.producers import (
    CallableProducer,
    DataProducer,
    EntityIdentifiersProducer,
    QueryProducer,
)
from batch_process.services.unit_of_work import SqlAlchemyUnitOfWork
from batch_process.steps.callable_step import CallableStep
from tests.batch.models import Counter, Record


class TestSettings:
    def test_packaged_defaults(self, recording_uow):
        factory = BatchProcessFactory(recording_uow)

        assert factory.settings == ProcessSettings()
        assert factory.iterate_data([]).buffer_size == 20

    def test_settings_applied_to_every_process(self, recording_uow):
        settings = ProcessSettings(buffer_size=3, dry_run=True, commit_when_empty=False)
        factory = BatchProcessFactory(recording_uow, settings)

        for process in (
            factory.iterate_data([1]),
            factory.iterate_entities(Record, [1]),
            factory.iterate_query_result(select(Counter)),
        ):
            assert process.buffer_size == 3
            assert process.dry_run is True
            assert process.commit_when_empty is False
            assert process.unit_of_work is recording_uow

    def test_processes_are_independent(self, recording_uow):
        factory = BatchProcessFactory(recording_uow)

        first = factory.iterate_data([1])
        second = factory.iterate_data([2])
        first.set_buffer_size(5)

        assert first is not second
        assert second.buffer_size == 20


class TestProducers:
    def test_iterate_data_iterable(self, recording_uow):
        process = BatchProcessFactory(recording_uow).iterate_data([1, 2])

        assert isinstance(process.producer, DataProducer)
        assert process.execute() == 2

    def test_iterate_data_callable(self, recording_uow):
        process = BatchProcessFactory(recording_uow).iterate_data(lambda: [1, 2, 3])

        assert isinstance(process.producer, CallableProducer)
        assert process.execute() == 3

    def test_iterate_entities(self, recording_uow):
        process = BatchProcessFactory(recording_uow).iterate_entities(Record, [1])

        assert isinstance(process.producer, EntityIdentifiersProducer)
        assert process.producer.kind is Record

    def test_iterate_query_result(self, recording_uow):
        statement = select(Counter)

        process = BatchProcessFactory(recording_uow).iterate_query_result(statement, 10)

        assert isinstance(process.producer, QueryProducer)
        assert process.producer.statement is statement


class TestRunContext:
    def test_clock_shared(self, recording_uow, clock):
        factory = BatchProcessFactory(recording_uow, clock=clock)
        process = factory.iterate_data([1, 2]).set_step(
            CallableStep(lambda d, it: clock.advance(10))
        )

        process.execute()

        assert process.run_time == 20

    def test_job_name_logged(self, recording_uow, captured_logs):
        BatchProcessFactory(recording_uow).iterate_data([1], job_name="import").execute()

        started = [r for r in captured_logs() if r["message"] == "process_started"]
        assert started[0]["job_name"] == "import"


class TestForSession:
    def test_wraps_session(self, db_session):
        factory = BatchProcessFactory.for_session(db_session)
        try:
            assert isinstance(factory.unit_of_work, SqlAlchemyUnitOfWork)
            assert factory.unit_of_work.session is db_session
            assert factory.unit_of_work.transaction_mode is TransactionMode.COMMIT
        finally:
            factory.unit_of_work.close()

    def test_transaction_mode_from_settings(self, db_session):
        settings = ProcessSettings(transaction_mode="flush")
        factory = BatchProcessFactory.for_session(db_session, settings)
        try:
            assert factory.unit_of_work.transaction_mode is TransactionMode.FLUSH
        finally:
            factory.unit_of_work.close()

    def test_end_to_end(self, db_session):
        factory = BatchProcessFactory.for_session(db_session, ProcessSettings(buffer_size=2))
        try:
            counters = [Counter(label=f"n{i}") for i in range(5)]
            process = factory.iterate_data(counters).set_step(
                CallableStep(lambda c, it: it.unit_of_work.stage(c))
            )

            assert process.execute() == 5
            assert process.last_run.commits == 3
            assert len(db_session.scalars(select(Counter)).all()) == 5
        finally:
            factory.unit_of_work.close()
