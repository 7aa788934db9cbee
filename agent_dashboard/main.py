"""
FastAPI entrypoint: connection form, background fetch jobs and dashboard pages.

Consolidates the HTTP surface:
- Parses the connection form and starts a fetch job (demo fixture or external API)
- Serves the loading page and the job status it polls
- Renders saved dashboards (table, narrative report, chart controls)
- Builds chart datasets on request from the stored rows
- Refresh / delete / download for each dashboard
"""

import os
import logging
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from .config import Settings, get_settings

# Configure logging
logging.basicConfig(
    level=get_settings().log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

from fastapi import BackgroundTasks, Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from typing import List, Optional
import httpx

from .charts import build_chart_dataset
from .jobs import JobRegistry, run_fetch_job
from .schemas import ChartType, ConnectionParams, Dashboard, DashboardSummary, JobStatusResponse
from .store import DashboardStore
from .tables import header_title, table_headers, table_rows
from .utils import records_to_csv, safe_json

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
TEMPLATES = Jinja2Templates(directory=os.path.join(BASE_DIR, "templates"))

# Longest dashboard name kept when it is derived from the query text
NAME_LIMIT = 40


def get_store(request: Request) -> DashboardStore:
    return request.app.state.store


def get_jobs(request: Request) -> JobRegistry:
    return request.app.state.jobs


def _not_found(what: str, ident: str) -> PlainTextResponse:
    return PlainTextResponse(f"{what} {ident} not found", status_code=404)


def _dashboard_name(name: str, params: ConnectionParams, store: DashboardStore) -> str:
    name = name.strip()
    if name:
        return name
    if params.user_input.strip():
        return params.user_input.strip()[:NAME_LIMIT]
    if params.demo_mode:
        return "Demo dashboard"
    return f"Dashboard {len(store.list()) + 1}"


def _summary(dashboard: Dashboard) -> DashboardSummary:
    return DashboardSummary(
        id=dashboard.id,
        name=dashboard.name,
        createdAt=dashboard.created_at,
        updatedAt=dashboard.updated_at,
        recordCount=len(dashboard.processed.records),
        isNarrative=dashboard.processed.is_narrative,
    )


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the application with its own store and job registry.
    `transport` replaces the network for the external API (used by tests).
    """
    settings = settings or get_settings()

    app = FastAPI(title="Agent Dashboard")
    app.state.settings = settings
    app.state.store = DashboardStore(max_dashboards=settings.max_dashboards)
    app.state.jobs = JobRegistry(max_jobs=settings.max_jobs)
    app.state.transport = transport
    app.mount("/static", StaticFiles(directory=os.path.join(BASE_DIR, "static")), name="static")

    def _start_job(
        background: BackgroundTasks,
        jobs: JobRegistry,
        store: DashboardStore,
        params: ConnectionParams,
        name: str = "",
        dashboard_id: Optional[str] = None,
    ) -> str:
        job = jobs.create()
        background.add_task(
            run_fetch_job,
            job.id,
            jobs,
            store,
            params,
            name=name,
            dashboard_id=dashboard_id,
            timeout=settings.api_timeout_seconds,
            transport=app.state.transport,
        )
        return job.id

    def _loading_page(request: Request, job_id: str, title: str) -> HTMLResponse:
        return TEMPLATES.TemplateResponse(
            request,
            "loading.html",
            {"job_id": job_id, "title": title},
        )

    @app.get("/", response_class=HTMLResponse)
    async def connection_form(request: Request, store: DashboardStore = Depends(get_store)):
        return TEMPLATES.TemplateResponse(
            request,
            "form.html",
            {"dashboards": store.list(), "default_user_input": settings.default_user_input},
        )

    @app.post("/fetch-data", response_class=HTMLResponse)
    async def fetch_data(
        request: Request,
        background: BackgroundTasks,
        api_url: str = Form("", alias="apiUrl"),
        api_key: str = Form("", alias="apiKey"),
        user_input: str = Form("", alias="userInput"),
        dashboard_name: str = Form("", alias="dashboardName"),
        async_output: str = Form("", alias="asyncOutput"),
        demo_mode: str = Form("", alias="demoMode"),
        store: DashboardStore = Depends(get_store),
        jobs: JobRegistry = Depends(get_jobs),
    ):
        # 1) Validate required fields
        if not api_url.strip() or not api_key.strip():
            return PlainTextResponse("Missing required fields", status_code=400)

        # 2) Capture the connection for later refreshes
        params = ConnectionParams(
            api_url=api_url.strip(),
            api_key=api_key.strip(),
            user_input=user_input,
            async_output=async_output == "true",
            demo_mode=demo_mode == "on",
        )

        # 3) Run fetch + processing after the loading page is sent
        name = _dashboard_name(dashboard_name, params, store)
        job_id = _start_job(background, jobs, store, params, name=name)
        logger.info(f"Fetch job {job_id} queued for {name!r} (demo={params.demo_mode})")
        return _loading_page(request, job_id, name)

    @app.get("/jobs/{job_id}", response_model=JobStatusResponse)
    async def job_status(job_id: str, jobs: JobRegistry = Depends(get_jobs)):
        job = jobs.get(job_id)
        if job is None:
            return _not_found("Job", job_id)
        return JobStatusResponse(
            jobId=job.id,
            status=job.state,
            dashboardId=job.dashboard_id,
            error=job.error,
        )

    @app.get("/loading/{job_id}", response_class=HTMLResponse)
    async def loading(request: Request, job_id: str, jobs: JobRegistry = Depends(get_jobs)):
        if jobs.get(job_id) is None:
            return _not_found("Job", job_id)
        return _loading_page(request, job_id, "Loading")

    @app.get("/dashboards", response_model=List[DashboardSummary])
    async def list_dashboards(store: DashboardStore = Depends(get_store)):
        return [_summary(d) for d in store.list()]

    @app.get("/dashboard/{dashboard_id}", response_class=HTMLResponse)
    async def show_dashboard(
        request: Request,
        dashboard_id: str,
        store: DashboardStore = Depends(get_store),
    ):
        dashboard = store.get(dashboard_id)
        if dashboard is None:
            return _not_found("Dashboard", dashboard_id)

        records = dashboard.processed.records
        headers = table_headers(records)
        return TEMPLATES.TemplateResponse(
            request,
            "dashboard.html",
            {
                "dashboard": dashboard,
                "dashboards": store.list(),
                "headers": [(h, header_title(h)) for h in headers],
                "rows": table_rows(records),
                "field_options": headers,
                "raw_json": safe_json(dashboard.raw_data),
            },
        )

    @app.get("/dashboard/{dashboard_id}/chart")
    async def chart_data(
        dashboard_id: str,
        field: str,
        chart_type: ChartType = "bar",
        count_by: Optional[str] = None,
        store: DashboardStore = Depends(get_store),
    ):
        dashboard = store.get(dashboard_id)
        if dashboard is None:
            return _not_found("Dashboard", dashboard_id)
        # an empty selection from the page means plain counts
        dataset = build_chart_dataset(dashboard.processed.records, field, chart_type, count_by or None)
        return JSONResponse(dataset)

    @app.get("/dashboard/{dashboard_id}/data.json")
    async def download_json(dashboard_id: str, store: DashboardStore = Depends(get_store)):
        dashboard = store.get(dashboard_id)
        if dashboard is None:
            return _not_found("Dashboard", dashboard_id)
        return JSONResponse(
            safe_json(dashboard.raw_data),
            headers={"Content-Disposition": "attachment; filename=data.json"},
        )

    @app.get("/dashboard/{dashboard_id}/export.csv")
    async def export_csv(dashboard_id: str, store: DashboardStore = Depends(get_store)):
        dashboard = store.get(dashboard_id)
        if dashboard is None:
            return _not_found("Dashboard", dashboard_id)
        csv_bytes = records_to_csv(dashboard.processed.records)
        return Response(
            content=csv_bytes,
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename={dashboard_id}.csv"},
        )

    @app.post("/refresh-dashboard/{dashboard_id}", response_class=HTMLResponse)
    async def refresh_dashboard(
        request: Request,
        dashboard_id: str,
        background: BackgroundTasks,
        store: DashboardStore = Depends(get_store),
        jobs: JobRegistry = Depends(get_jobs),
    ):
        dashboard = store.get(dashboard_id)
        if dashboard is None:
            return _not_found("Dashboard", dashboard_id)
        job_id = _start_job(background, jobs, store, dashboard.params, dashboard_id=dashboard_id)
        logger.info(f"Refresh job {job_id} queued for dashboard {dashboard_id}")
        return _loading_page(request, job_id, dashboard.name)

    @app.delete("/dashboard/{dashboard_id}")
    async def delete_dashboard(dashboard_id: str, store: DashboardStore = Depends(get_store)):
        if not store.delete(dashboard_id):
            return _not_found("Dashboard", dashboard_id)
        return JSONResponse({"deleted": dashboard_id})

    return app


app = create_app()
