"""
Pydantic models shared by the pipeline, the stores and the HTTP layer.

Rationale:
- Define simple, explicit contracts between the fetch step, the core and the pages.
- Snapshots handed out by the stores are frozen so handlers cannot mutate shared state.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


ChartType = Literal["bar", "line", "pie", "doughnut"]
JobState = Literal["pending", "complete", "error"]


class ExtractionResult(BaseModel):
    records: List[Any] = Field(default_factory=list)
    is_narrative: bool = False
    narrative_text: str = ""


class ProcessedData(BaseModel):
    model_config = ConfigDict(frozen=True)

    records: List[Dict[str, Any]] = Field(default_factory=list)
    is_narrative: bool = False
    narrative_text: str = ""


class ConnectionParams(BaseModel):
    """What the user typed into the connection form; replayed on refresh."""

    model_config = ConfigDict(frozen=True)

    api_url: str
    api_key: str
    user_input: str = ""
    async_output: bool = False
    demo_mode: bool = False


class Dashboard(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    params: ConnectionParams
    raw_data: Any = None
    processed: ProcessedData
    created_at: datetime
    updated_at: datetime


class Job(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    state: JobState = "pending"
    dashboard_id: Optional[str] = None
    error: Optional[str] = None


class JobStatusResponse(BaseModel):
    jobId: str
    status: JobState
    dashboardId: Optional[str] = None
    error: Optional[str] = None


class DashboardSummary(BaseModel):
    id: str
    name: str
    createdAt: datetime
    updatedAt: datetime
    recordCount: int
    isNarrative: bool
