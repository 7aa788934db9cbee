from __future__ import annotations

import asyncio

import httpx
import pytest
from pydantic import ValidationError

from agent_dashboard.jobs import JobRegistry, run_fetch_job
from agent_dashboard.pipeline import process_api_data
from agent_dashboard.schemas import ConnectionParams
from agent_dashboard.store import DashboardNotFound, DashboardStore


PARAMS = ConnectionParams(api_url="https://agent.example.com/run", api_key="k")
DEMO = ConnectionParams(api_url="https://agent.example.com/run", api_key="k", demo_mode=True)


def _processed(rows):
    return process_api_data(rows)


def test_store_create_get_list_in_creation_order():
    store = DashboardStore()
    first = store.create("one", PARAMS, [], _processed([]))
    second = store.create("two", PARAMS, [{"a": 1}], _processed([{"a": 1}]))
    assert store.get(first.id) == first
    assert [d.name for d in store.list()] == ["one", "two"]
    assert second.processed.records == [{"a": 1}]
    assert store.get("missing") is None


def test_store_snapshots_are_frozen():
    store = DashboardStore()
    dashboard = store.create("one", PARAMS, [], _processed([]))
    with pytest.raises(ValidationError):
        dashboard.name = "changed"


def test_store_replace_keeps_identity():
    store = DashboardStore()
    original = store.create("one", PARAMS, [], _processed([]))
    updated = store.replace(original.id, [{"a": 1}], _processed([{"a": 1}]))
    assert updated.id == original.id
    assert updated.name == "one"
    assert updated.created_at == original.created_at
    assert updated.updated_at >= original.updated_at
    assert original.processed.records == []
    assert store.get(original.id).processed.records == [{"a": 1}]


def test_store_replace_unknown_raises():
    with pytest.raises(DashboardNotFound):
        DashboardStore().replace("nope", [], _processed([]))


def test_store_delete():
    store = DashboardStore()
    dashboard = store.create("one", PARAMS, [], _processed([]))
    assert store.delete(dashboard.id) is True
    assert store.delete(dashboard.id) is False
    assert store.list() == []


def test_store_evicts_oldest_beyond_limit():
    store = DashboardStore(max_dashboards=2)
    for name in ("a", "b", "c"):
        store.create(name, PARAMS, [], _processed([]))
    assert [d.name for d in store.list()] == ["b", "c"]


def test_jobs_evict_oldest_finished_beyond_limit():
    jobs = JobRegistry(max_jobs=2)
    waiting = jobs.create()
    first = jobs.create()
    jobs.complete(first.id, "dash1")
    second = jobs.create()
    assert jobs.get(first.id) is None
    assert jobs.get(waiting.id).state == "pending"

    jobs.fail(second.id, "boom")
    third = jobs.create()
    assert jobs.get(second.id) is None
    assert jobs.get(waiting.id).state == "pending"
    assert jobs.get(third.id).state == "pending"


def test_jobs_never_evict_pending():
    jobs = JobRegistry(max_jobs=1)
    created = [jobs.create() for _ in range(3)]
    assert all(jobs.get(job.id) is not None for job in created)
    jobs.complete(created[0].id, "dash1")
    assert jobs.get(created[0].id).state == "complete"


def test_job_states_are_terminal():
    jobs = JobRegistry()
    job = jobs.create()
    assert job.state == "pending"
    done = jobs.complete(job.id, "dash1")
    assert done.state == "complete"
    assert done.dashboard_id == "dash1"
    with pytest.raises(RuntimeError):
        jobs.fail(job.id, "late")
    assert jobs.get(job.id).state == "complete"


def test_run_fetch_job_demo_creates_dashboard():
    jobs, store = JobRegistry(), DashboardStore()
    job = jobs.create()
    asyncio.run(run_fetch_job(job.id, jobs, store, DEMO, name="demo", timeout=1))

    finished = jobs.get(job.id)
    assert finished.state == "complete"
    dashboard = store.get(finished.dashboard_id)
    assert dashboard.name == "demo"
    assert len(dashboard.processed.records) == 5
    assert dashboard.processed.records[0]["assignee"] == "John Smith"


def test_run_fetch_job_records_timeout_as_error():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    jobs, store = JobRegistry(), DashboardStore()
    job = jobs.create()
    asyncio.run(run_fetch_job(
        job.id, jobs, store, PARAMS, name="x", timeout=1, transport=httpx.MockTransport(handler),
    ))

    finished = jobs.get(job.id)
    assert finished.state == "error"
    assert finished.error == "Error fetching data: API request timed out after 1s"
    assert store.list() == []


def test_run_fetch_job_refresh_of_deleted_dashboard_fails():
    jobs, store = JobRegistry(), DashboardStore()
    job = jobs.create()
    asyncio.run(run_fetch_job(job.id, jobs, store, DEMO, dashboard_id="gone", timeout=1))
    assert jobs.get(job.id).state == "error"


def test_run_fetch_job_rejects_non_finite_numbers():
    def handler(request):
        return httpx.Response(200, content=b'[{"deal": "A", "amount": NaN}]')

    jobs, store = JobRegistry(), DashboardStore()
    job = jobs.create()
    asyncio.run(run_fetch_job(
        job.id, jobs, store, PARAMS, name="x", timeout=1, transport=httpx.MockTransport(handler),
    ))

    finished = jobs.get(job.id)
    assert finished.state == "error"
    assert finished.error.startswith("Error fetching data: API response is not valid JSON")
    assert store.list() == []
