"""Event bus → processor → adapters, driven tick by tick with a fake clock."""

from conftest import FlakyAdapter
from storefront_events import track_order, track_product_view
from storefront_queue import Job, JobType, QueueKeys
from storefront_worker import JobProcessor


def test_product_view_recovers_after_one_failure(store, bus, adapters, clock) -> None:
    graph = FlakyAdapter(failures=1, name="graph")
    adapters[JobType.PERSIST_GRAPH] = graph
    processor = JobProcessor(store, adapters, pop_timeout=0, clock=clock)

    track_product_view(bus, product_id=123, session_id="s1", user_id="u1")
    processor.process_event_queue()

    queued = [Job.from_json(raw).type for raw in store.scan_all(QueueKeys.JOBS)]
    assert queued == [
        "persist.memgraph",
        "persist.analytics.memgraph",
        "generate.recommendations",
    ]

    processor.process_job_queue()
    [retry] = [Job.from_json(raw) for raw in store.scan_all(QueueKeys.DELAYED)]
    assert retry.type == "persist.memgraph"
    assert retry.attempts == 1
    assert retry.scheduled_for == clock.now + 30_000

    clock.advance(30_000)
    processor.tick()  # promotes the retry
    processor.tick()  # runs it

    assert graph.calls == 2
    assert len(graph.inner.writes) == 1
    assert adapters[JobType.PERSIST_ANALYTICS].applied == 1
    assert adapters[JobType.GENERATE_RECOMMENDATIONS].applied == 1
    assert store.stats() == {
        "events:queue": 0,
        "jobs:queue": 0,
        "jobs:delayed": 0,
        "jobs:failed": 0,
    }


def test_order_with_three_items_fans_out_to_eight_jobs(store, bus, processor) -> None:
    items = [
        {"productId": 1, "quantity": 2, "price": 25.99},
        {"productId": 2, "quantity": 1, "price": 15.5},
        {"productId": 3, "quantity": 1, "price": 9.0},
    ]
    track_order(bus, "order-789", 76.48, items, session_id="s1", user_id="u1")

    processor.process_event_queue()

    jobs = [Job.from_json(raw) for raw in store.scan_all(QueueKeys.JOBS)]
    assert len(jobs) == 8
    assert sum(1 for j in jobs if j.type == "persist.memgraph") == 7
    assert sum(1 for j in jobs if j.type == "persist.analytics.memgraph") == 1


def test_redelivered_job_leaves_same_downstream_state(store, adapters, processor) -> None:
    job = processor.enqueue(JobType.PERSIST_GRAPH, {"orderId": "o-1", "productId": 4})
    processor.process_job_queue()
    state = adapters[JobType.PERSIST_GRAPH].snapshot()

    # At-least-once: the same job shows up again
    store.push(QueueKeys.JOBS, job.to_json())
    processor.process_job_queue()

    assert adapters[JobType.PERSIST_GRAPH].snapshot() == state
    assert adapters[JobType.PERSIST_GRAPH].applied == 2
