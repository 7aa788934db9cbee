"""
Background fetch jobs with an explicit pending -> complete | error state machine.

A job is registered when the form is posted, the loading page polls its status,
and the background task moves it to a terminal state exactly once.
"""

import logging
import threading
from typing import Dict, Optional

import httpx

from .api_client import ApiFetchError
from .pipeline import load_raw_data, process_api_data
from .schemas import ConnectionParams, Job
from .store import DashboardNotFound, DashboardStore, new_id

logger = logging.getLogger(__name__)


class JobRegistry:
    def __init__(self, max_jobs: int = 200):
        self._max = max_jobs
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()

    def _evict_locked(self, keep: Optional[str] = None) -> None:
        """Drop the oldest finished jobs beyond the limit; pending jobs are never dropped."""
        excess = len(self._jobs) - self._max
        if excess <= 0:
            return
        finished = [
            job_id for job_id, job in self._jobs.items()
            if job.state != "pending" and job_id != keep
        ]
        for job_id in finished[:excess]:
            del self._jobs[job_id]
            logger.debug(f"Evicted job {job_id} (limit {self._max})")

    def create(self) -> Job:
        job = Job(id=new_id())
        with self._lock:
            self._jobs[job.id] = job
            self._evict_locked(keep=job.id)
        logger.info(f"Job {job.id} pending")
        return job

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def _finish(self, job_id: str, **changes) -> Job:
        with self._lock:
            job = self._jobs[job_id]
            if job.state != "pending":
                raise RuntimeError(f"Job {job_id} already {job.state}")
            job = job.model_copy(update=changes)
            self._jobs[job_id] = job
            self._evict_locked(keep=job_id)
        logger.info(f"Job {job_id} {job.state}")
        return job

    def complete(self, job_id: str, dashboard_id: str) -> Job:
        return self._finish(job_id, state="complete", dashboard_id=dashboard_id)

    def fail(self, job_id: str, error: str) -> Job:
        return self._finish(job_id, state="error", error=error)


async def run_fetch_job(
    job_id: str,
    jobs: JobRegistry,
    store: DashboardStore,
    params: ConnectionParams,
    *,
    name: str = "",
    dashboard_id: Optional[str] = None,
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> None:
    """
    Fetch, process and store one dashboard.

    With `dashboard_id` the existing dashboard is refreshed in place, otherwise a
    new one named `name` is created.
    """
    try:
        raw = await load_raw_data(params, timeout=timeout, transport=transport)
    except ApiFetchError as e:
        logger.error(f"Job {job_id} fetch failed: {e}")
        jobs.fail(job_id, f"Error fetching data: {e}")
        return

    try:
        processed = process_api_data(raw)
        if dashboard_id is None:
            dashboard = store.create(name, params, raw, processed)
        else:
            dashboard = store.replace(dashboard_id, raw, processed)
    except DashboardNotFound:
        logger.error(f"Job {job_id}: dashboard {dashboard_id} was deleted during refresh")
        jobs.fail(job_id, f"Dashboard {dashboard_id} no longer exists")
        return
    except Exception as e:
        # a job must always reach a terminal state
        logger.exception(f"Job {job_id} processing failed")
        jobs.fail(job_id, f"Error processing data: {e}")
        return

    jobs.complete(job_id, dashboard.id)
