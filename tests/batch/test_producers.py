"""
Tests for batch_process.producers.

DataProducer and CallableProducer are exercised directly.  Identifier and
query producers run inside a Process so checkpoints clear the session
between items, the way they do in production.
"""

import pytest
from sqlalchemy import delete, event, select

from batch_kernel.exceptions import ProducerNotBoundError
from batch_process.producers import (
    BoundProducer,
    CallableProducer,
    DataProducer,
    EntityIdentifiersProducer,
    QueryProducer,
    SequenceProducer,
)
from batch_process.services.process import Process
from batch_process.steps.callable_step import CallableStep
from tests.batch.models import Counter, Record, RecordingUnitOfWork


def _seed_counters(session, *ids):
    for i in ids:
        session.add(Counter(id=i, label=f"c{i}"))
    session.commit()
    session.expunge_all()


def _record_counter_selects(engine) -> list[str]:
    """Classify each SELECT on ``counters`` as a page, a full fetch or a get."""
    selects = []

    @event.listens_for(engine, "before_cursor_execute")
    def record(conn, cursor, statement, parameters, context, executemany):
        sql = statement.upper()
        if not sql.lstrip().startswith("SELECT") or "COUNTERS" not in sql:
            return
        if "LIMIT" in sql:
            selects.append("LIMIT")
        elif "WHERE" in sql:
            selects.append("GET")
        else:
            selects.append("ALL")

    return selects


# =============================================================================
# Binding
# =============================================================================


class TestBinding:
    def test_unbound_access_raises(self):
        producer = BoundProducer()

        assert producer.is_bound is False
        with pytest.raises(ProducerNotBoundError) as exc_info:
            producer.unit_of_work

        assert exc_info.value.producer == "BoundProducer"

    def test_bind(self, recording_uow):
        producer = DataProducer([1])

        producer.bind(recording_uow)

        assert producer.is_bound
        assert producer.unit_of_work is recording_uow

    def test_process_binds_on_run(self, recording_uow):
        producer = EntityIdentifiersProducer(Record, [])

        Process(recording_uow, producer).execute()

        assert producer.unit_of_work is recording_uow

    def test_builtins_satisfy_protocol(self):
        assert isinstance(DataProducer(), SequenceProducer)
        assert isinstance(CallableProducer(list), SequenceProducer)


# =============================================================================
# In-memory producers
# =============================================================================


class TestDataProducer:
    def test_list_reproducible(self):
        producer = DataProducer([1, 2, 3])

        assert list(producer.produce()) == [1, 2, 3]
        assert list(producer.produce()) == [1, 2, 3]

    def test_generator_consumed_once(self):
        producer = DataProducer(x for x in range(3))

        assert list(producer.produce()) == [0, 1, 2]
        assert list(producer.produce()) == []

    def test_lazy(self):
        pulled = []

        def source():
            for i in range(3):
                pulled.append(i)
                yield i

        iterator = DataProducer(source()).produce()
        next(iterator)

        assert pulled == [0]


class TestCallableProducer:
    def test_calls_fn_per_produce(self):
        calls = []

        def fn():
            calls.append(1)
            return ["a"]

        producer = CallableProducer(fn)
        list(producer.produce())
        list(producer.produce())

        assert len(calls) == 2

    def test_not_called_until_iterated(self):
        calls = []
        producer = CallableProducer(lambda: calls.append(1) or [])

        producer.produce()

        assert calls == []


# =============================================================================
# EntityIdentifiersProducer
# =============================================================================


class TestEntityIdentifiersProducer:
    def test_loads_in_identifier_order(self):
        uow = RecordingUnitOfWork({i: Record(i, f"r{i}") for i in (1, 2, 3)})
        seen = []

        Process(
            uow, EntityIdentifiersProducer(Record, [3, 1, 2]),
            CallableStep(lambda e, it: seen.append(e.label)),
        ).execute()

        assert seen == ["r3", "r1", "r2"]

    def test_skips_missing(self, captured_logs):
        uow = RecordingUnitOfWork({1: Record(1)})
        producer = EntityIdentifiersProducer(Record, [1, 99])
        producer.bind(uow)

        entities = list(producer.produce())

        assert [e.id for e in entities] == [1]
        missing = [r for r in captured_logs() if r["message"] == "identifier_not_found"]
        assert missing[0]["identity"] == 99

    def test_unbound_raises_on_iteration(self):
        producer = EntityIdentifiersProducer(Record, [1])

        with pytest.raises(ProducerNotBoundError):
            list(producer.produce())

    def test_entities_attached_after_checkpoint(self, unit_of_work, db_session):
        _seed_counters(db_session, 1, 2, 3, 4, 5)
        attached = []

        Process.iterate_entities(
            unit_of_work, Counter, [1, 2, 3, 4, 5],
            step=CallableStep(lambda e, it: attached.append(unit_of_work.contains(e))),
            buffer_size=2,
        ).execute()

        assert attached == [True] * 5


# =============================================================================
# QueryProducer
# =============================================================================


class TestQueryProducer:
    def test_yields_all_rows(self, unit_of_work, db_session):
        _seed_counters(db_session, 1, 2, 3)
        seen = []

        Process.iterate_query_result(
            unit_of_work, select(Counter).order_by(Counter.id),
            step=CallableStep(lambda e, it: seen.append(e.id)),
        ).execute()

        assert seen == [1, 2, 3]

    @pytest.mark.parametrize("page_size", [None, 1, 2, 3, 10])
    def test_paging_yields_each_row_once(self, unit_of_work, db_session, page_size):
        _seed_counters(db_session, 1, 2, 3, 4, 5)
        seen = []

        Process.iterate_query_result(
            unit_of_work, select(Counter).order_by(Counter.id), page_size,
            step=CallableStep(lambda e, it: seen.append(e.id)),
        ).execute()

        assert seen == [1, 2, 3, 4, 5]

    @pytest.mark.parametrize("page_size", [None, 2])
    def test_rows_attached_after_checkpoint(self, unit_of_work, db_session, page_size):
        _seed_counters(db_session, 1, 2, 3, 4, 5)
        attached = []

        Process.iterate_query_result(
            unit_of_work, select(Counter).order_by(Counter.id), page_size,
            step=CallableStep(lambda e, it: attached.append(unit_of_work.contains(e))),
            buffer_size=2,
        ).execute()

        assert attached == [True] * 5

    def test_paged_run_fetches_one_limited_page_at_a_time(
        self, unit_of_work, db_session, engine,
    ):
        _seed_counters(db_session, 1, 2, 3, 4, 5)
        selects = _record_counter_selects(engine)

        Process.iterate_query_result(
            unit_of_work, select(Counter).order_by(Counter.id), 2, buffer_size=2,
        ).execute()

        # three pages, no per-row reloads
        assert selects == ["LIMIT", "LIMIT", "LIMIT"]

    def test_unpaged_run_reloads_rows_pending_at_checkpoint(
        self, unit_of_work, db_session, engine,
    ):
        _seed_counters(db_session, 1, 2, 3, 4, 5)
        selects = _record_counter_selects(engine)

        Process.iterate_query_result(
            unit_of_work, select(Counter).order_by(Counter.id), buffer_size=2,
        ).execute()

        assert selects == ["ALL", "GET", "GET", "GET"]

    def test_row_deleted_before_yield_is_skipped(self, unit_of_work, db_session):
        _seed_counters(db_session, 1, 2, 3, 4, 5)
        seen = []

        def delete_third(iteration):
            db_session.execute(
                delete(Counter)
                .where(Counter.id == 3)
                .execution_options(synchronize_session=False)
            )

        process = Process.iterate_query_result(
            unit_of_work, select(Counter).order_by(Counter.id),
            step=CallableStep(lambda e, it: seen.append(e.id)),
            buffer_size=1,
        ).on_first_iteration(delete_third)

        assert process.execute() == 4
        assert seen == [1, 2, 4, 5]

    def test_rows_when_not_scalars(self, unit_of_work, db_session):
        _seed_counters(db_session, 1, 2)
        producer = QueryProducer(
            select(Counter.id, Counter.label).order_by(Counter.id), scalars=False,
        )
        seen = []

        Process(
            unit_of_work, producer, CallableStep(lambda row, it: seen.append(tuple(row))),
        ).execute()

        assert seen == [(1, "c1"), (2, "c2")]

    def test_invalid_page_size(self):
        with pytest.raises(ValueError):
            QueryProducer(select(Counter), page_size=0)

    def test_unbound_raises_on_iteration(self):
        with pytest.raises(ProducerNotBoundError):
            list(QueryProducer(select(Counter)).produce())
