"""
Canned response used in demo mode instead of calling the external API.

Mirrors what the agent pipeline returns: a completed job whose `result` is a
```json fenced array of ticket-tracker issues.
"""

import json
from typing import Any, Dict, List

DEMO_ISSUES: List[Dict[str, Any]] = [
    {
        "id": "10001",
        "key": "DEMO-1",
        "fields": {
            "summary": "Update documentation for API v2",
            "assignee": {"displayName": "John Smith", "emailAddress": "john.smith@example.com"},
            "status": {"name": "In Progress"},
        },
    },
    {
        "id": "10002",
        "key": "DEMO-2",
        "fields": {
            "summary": "Prepare quarterly presentation",
            "assignee": {"displayName": "Jane Doe", "emailAddress": "jane.doe@example.com"},
            "status": {"name": "Backlog"},
        },
    },
    {
        "id": "10003",
        "key": "DEMO-3",
        "fields": {
            "summary": "Build landing page prototype",
            "assignee": {"displayName": "Alex Johnson", "emailAddress": "alex.johnson@example.com"},
            "status": {"name": "Done"},
        },
    },
    {
        "id": "10004",
        "key": "DEMO-4",
        "fields": {
            "summary": "Review vendor contracts",
            "assignee": {"displayName": "Sam Taylor", "emailAddress": "sam.taylor@example.com"},
            "status": {"name": "Done"},
        },
    },
    {
        "id": "10005",
        "key": "DEMO-5",
        "fields": {
            "summary": "Competitor analysis report",
            "assignee": {"displayName": "Morgan Lee", "emailAddress": "morgan.lee@example.com"},
            "status": {"name": "Backlog"},
        },
    },
]


def get_sample_data() -> Dict[str, Any]:
    """Return a fresh copy of the demo pipeline response."""
    return {
        "pipelineId": "123e4567-e89b-12d3-a456-426614174000",
        "status": "completed",
        "created": "2025-01-01T10:00:00Z",
        "completed": "2025-01-01T10:01:30Z",
        "result": "```json\n" + json.dumps(DEMO_ISSUES, indent=4) + "\n```",
        "report": None,
        "isBackupPipeline": False,
    }
