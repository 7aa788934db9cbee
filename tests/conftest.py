from __future__ import annotations

import json
import re

import httpx
import pytest
from fastapi.testclient import TestClient

from agent_dashboard.config import Settings
from agent_dashboard.main import create_app


JOB_ID_RE = re.compile(r"/jobs/([0-9a-f]{8})")


def job_id_from(html: str) -> str:
    match = JOB_ID_RE.search(html)
    assert match, "loading page should poll a job"
    return match.group(1)


class RecordingApi:
    """Stands in for the external agent API; remembers what it was sent."""

    def __init__(self, payload=None, status_code: int = 200):
        self.payload = payload if payload is not None else []
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.payload)

    @property
    def last_body(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture()
def api():
    return RecordingApi()


@pytest.fixture()
def app(api):
    return create_app(Settings(api_timeout_seconds=5), transport=httpx.MockTransport(api))


@pytest.fixture()
def client(app):
    return TestClient(app)


@pytest.fixture()
def create_dashboard(client):
    def _create(**form):
        data = {"apiUrl": "https://agent.example.com/run", "apiKey": "secret"}
        data.update(form)
        resp = client.post("/fetch-data", data=data)
        assert resp.status_code == 200
        job = client.get(f"/jobs/{job_id_from(resp.text)}").json()
        return job

    return _create
