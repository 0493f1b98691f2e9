from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Any, Callable, Dict, Optional
from ..services.dashboard_service import DashboardService
from ..services.errors import MissingConfigError
from ..config import get_dashboard_service
import logging

# Configure logger
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/gitlab", tags=["gitlab"])

PROJECT_ID_QUERY = Query(None, description="Project to use when no default project ID is configured")


def _respond(name: str, call: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
    """Run a dashboard operation; only missing config and real bugs become HTTP errors."""
    try:
        return call()
    except MissingConfigError as e:
        logger.warning(f"{name}: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unhandled error in {name}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"An unexpected server error occurred: {str(e)}")


@router.get("/projects")
def get_projects(service: DashboardService = Depends(get_dashboard_service)):
    """Projects the configured token is a member of."""
    return _respond("get_projects", service.list_projects)


@router.get("/pipelines")
def get_pipelines(service: DashboardService = Depends(get_dashboard_service)):
    """Recent pipelines of the default project, or of up to 5 projects if none is set."""
    return _respond("get_pipelines", service.list_pipelines)


@router.get("/pipeline/{pipeline_id}")
def get_pipeline(
    pipeline_id: str,
    project_id: Optional[str] = PROJECT_ID_QUERY,
    service: DashboardService = Depends(get_dashboard_service)
):
    return _respond("get_pipeline", lambda: service.get_pipeline(pipeline_id, project_id))


@router.get("/pipeline/{pipeline_id}/details")
def get_pipeline_details(
    pipeline_id: str,
    project_id: Optional[str] = PROJECT_ID_QUERY,
    service: DashboardService = Depends(get_dashboard_service)
):
    return _respond("get_pipeline_details", lambda: service.get_pipeline_details(pipeline_id, project_id))


@router.get("/pipeline/{pipeline_id}/jobs")
def get_pipeline_jobs(
    pipeline_id: str,
    project_id: Optional[str] = PROJECT_ID_QUERY,
    service: DashboardService = Depends(get_dashboard_service)
):
    return _respond("get_pipeline_jobs", lambda: service.get_pipeline_jobs(pipeline_id, project_id))


@router.get("/pipeline/{pipeline_id}/test-report")
def get_pipeline_test_report(
    pipeline_id: str,
    service: DashboardService = Depends(get_dashboard_service)
):
    """Full test report. Requires a configured project ID."""
    return _respond("get_pipeline_test_report", lambda: service.get_test_report(pipeline_id))


@router.get("/pipeline/{pipeline_id}/test-report-summary")
def get_pipeline_test_report_summary(
    pipeline_id: str,
    project_id: Optional[str] = PROJECT_ID_QUERY,
    service: DashboardService = Depends(get_dashboard_service)
):
    return _respond("get_pipeline_test_report_summary",
                    lambda: service.get_test_report_summary(pipeline_id, project_id))


@router.post("/pipeline/{pipeline_id}/retry")
def retry_pipeline(
    pipeline_id: str,
    project_id: Optional[str] = PROJECT_ID_QUERY,
    service: DashboardService = Depends(get_dashboard_service)
):
    """Retry a pipeline. GitLab failures come back as {success: false}."""
    return _respond("retry_pipeline", lambda: service.retry_pipeline(pipeline_id, project_id))


@router.post("/pipeline/{pipeline_id}/cancel")
def cancel_pipeline(
    pipeline_id: str,
    project_id: Optional[str] = PROJECT_ID_QUERY,
    service: DashboardService = Depends(get_dashboard_service)
):
    return _respond("cancel_pipeline", lambda: service.cancel_pipeline(pipeline_id, project_id))


@router.get("/pipeline/{pipeline_id}/variables")
def get_pipeline_variables(
    pipeline_id: str,
    project_id: Optional[str] = PROJECT_ID_QUERY,
    service: DashboardService = Depends(get_dashboard_service)
):
    return _respond("get_pipeline_variables", lambda: service.get_pipeline_variables(pipeline_id, project_id))


@router.get("/job/{job_id}")
def get_job_details(
    job_id: str,
    project_id: Optional[str] = Query(None, description="Project the job belongs to; overrides the configured one"),
    service: DashboardService = Depends(get_dashboard_service)
):
    """Job details including its log output and artifacts."""
    return _respond("get_job_details", lambda: service.get_job_details(job_id, project_id))


@router.get("/merge-requests")
def get_merge_requests(
    state: Optional[str] = Query(None, description="all, opened, closed, merged (default: all)"),
    per_page: Optional[str] = Query(None, description="Results per page (default: 100)"),
    page: Optional[str] = Query(None, description="Page number (default: 1)"),
    order_by: Optional[str] = Query(None, description="created_at or updated_at (default: created_at)"),
    sort: Optional[str] = Query(None, description="asc or desc (default: desc)"),
    service: DashboardService = Depends(get_dashboard_service)
):
    return _respond("get_merge_requests", lambda: service.list_merge_requests(
        state=state, per_page=per_page, page=page, order_by=order_by, sort=sort
    ))
