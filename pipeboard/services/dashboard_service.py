import logging
from typing import Any, Dict, List, Optional

from ..models.config import GitLabConfig
from ..models.gitlab import (
    Job, JobDetails, MergeRequest, Pipeline, PipelineDetails, PipelineTestReport, Project, Variable,
)
from . import examples
from .degradation import DegradationPolicy, OnError, Outcome, Resource, dump
from .errors import MissingConfigError, ParseError, UpstreamError
from .fanout_service import ProjectFanout
from .gitlab_client import GitLabClient
from .normalizer import normalize

logger = logging.getLogger(__name__)

MERGE_REQUEST_DEFAULTS = {
    "state": "all",          # all, opened, closed, merged
    "per_page": "100",
    "page": "1",
    "order_by": "created_at",  # created_at, updated_at
    "sort": "desc",          # asc, desc
}

PROJECTS = Resource(
    name="projects", key="projects",
    example=examples.example_projects, empty=list,
    empty_note="No projects found in your GitLab account",
)
PIPELINES = Resource(
    name="pipelines", key="pipelines",
    example=examples.example_pipelines, empty=list,
    empty_note="No pipelines found in any of your GitLab projects",
)
PIPELINE = Resource(
    name="pipeline", key="pipeline",
    example=examples.example_pipeline, empty=lambda: None,
    not_found_note="Pipeline not found",
)
PIPELINE_DETAILS = Resource(
    name="pipeline details", key="pipeline",
    example=examples.example_pipeline_details, empty=lambda: None,
    not_found_note="Pipeline not found",
)
JOBS = Resource(
    name="pipeline jobs", key="jobs",
    example=examples.example_jobs, empty=list,
    empty_note="No jobs found for this pipeline",
)
TEST_REPORT = Resource(
    name="test report", key=None,
    example=examples.example_test_report, empty=examples.empty_test_report,
    not_found_note="No test report available for this pipeline",
    empty_note="No test data available for this pipeline",
)
TEST_REPORT_SUMMARY = Resource(
    name="test report summary", key=None,
    example=examples.example_test_report_summary, empty=examples.empty_test_report,
    on_error=OnError.EMPTY, error_note="Error fetching test report",
    not_found_note="No test report available for this pipeline",
    empty_note="No test data available for this pipeline",
)
VARIABLES = Resource(
    name="pipeline variables", key="variables",
    example=examples.example_variables, empty=list,
    on_error=OnError.EMPTY, error_note="No variables available",
    not_found_note="No variables available for this pipeline",
    empty_note="No variables found for this pipeline",
)
MERGE_REQUESTS = Resource(
    name="merge requests", key="merge_requests",
    example=examples.example_merge_requests, empty=list,
    error_note="Error fetching merge requests, using example data instead",
    empty_note="No merge requests found for this project",
)


class DashboardService:
    """One operation per dashboard resource, each degraded by DegradationPolicy."""

    def __init__(self, config: GitLabConfig, client: GitLabClient,
                 fanout: Optional[ProjectFanout] = None):
        self.config = config
        self.client = client
        self.fanout = fanout or ProjectFanout(client)
        self.policy = DegradationPolicy(config)

    def _project(self, project_id: Optional[str] = None) -> Optional[str]:
        """The configured project ID, or the one supplied with the request."""
        return self.config.project_id or project_id or None

    def list_projects(self) -> Dict[str, Any]:
        return self.policy.run(PROJECTS, self.fanout.discover_projects)

    def list_pipelines(self) -> Dict[str, Any]:
        project_id = self.config.project_id

        def op():
            if project_id:
                pipelines = normalize(self.client.get(f"projects/{project_id}/pipelines"), List[Pipeline])
                info = self._project_info(project_id)
                note = None
            else:
                result = self.fanout.fetch_pipelines_across_projects()
                pipelines, info, note = result.pipelines, result.info, result.note

            if not pipelines:
                return Outcome(payload=[], note=note)
            pipelines = self.fanout.enrich_pipeline_users(pipelines, project_id)
            return Outcome(payload=pipelines, extra={"info": info}, note=note)

        return self.policy.run(PIPELINES, op)

    def _project_info(self, project_id: str) -> str:
        try:
            project = normalize(self.client.get(f"projects/{project_id}"), Project)
        except (UpstreamError, ParseError) as e:
            logger.warning(f"Could not fetch name of project {project_id}: {e}")
            return ""
        return f"Showing pipelines for project: {project.name} (ID: {project_id})"

    def get_pipeline(self, pipeline_id: str, project_id: Optional[str] = None) -> Dict[str, Any]:
        project_id = self._project(project_id)
        return self.policy.run(
            PIPELINE,
            lambda: normalize(self.client.get(f"projects/{project_id}/pipelines/{pipeline_id}"), Pipeline),
            require_project=True, project_id=project_id,
        )

    def get_pipeline_details(self, pipeline_id: str, project_id: Optional[str] = None) -> Dict[str, Any]:
        project_id = self._project(project_id)
        return self.policy.run(
            PIPELINE_DETAILS,
            lambda: normalize(self.client.get(f"projects/{project_id}/pipelines/{pipeline_id}"),
                              PipelineDetails),
            require_project=True, project_id=project_id,
        )

    def get_pipeline_jobs(self, pipeline_id: str, project_id: Optional[str] = None) -> Dict[str, Any]:
        project_id = self._project(project_id)
        return self.policy.run(
            JOBS,
            lambda: normalize(self.client.get(f"projects/{project_id}/pipelines/{pipeline_id}/jobs"),
                              List[Job]),
            require_project=True, project_id=project_id,
        )

    def get_test_report(self, pipeline_id: str) -> Dict[str, Any]:
        # Only the configured project is used here; there is no per-request fallback.
        project_id = self.config.project_id
        if self.config.token and not project_id:
            raise MissingConfigError("GitLab project ID not configured")
        return self.policy.run(
            TEST_REPORT,
            lambda: normalize(self.client.get(f"projects/{project_id}/pipelines/{pipeline_id}/test_report"),
                              PipelineTestReport),
        )

    def get_test_report_summary(self, pipeline_id: str, project_id: Optional[str] = None) -> Dict[str, Any]:
        project_id = self._project(project_id)
        endpoint = f"projects/{project_id}/pipelines/{pipeline_id}/test_report_summary"
        return self.policy.run(
            TEST_REPORT_SUMMARY,
            lambda: normalize(self.client.get(endpoint), PipelineTestReport),
            require_project=True, project_id=project_id,
        )

    def get_pipeline_variables(self, pipeline_id: str, project_id: Optional[str] = None) -> Dict[str, Any]:
        project_id = self._project(project_id)
        return self.policy.run(
            VARIABLES,
            lambda: normalize(self.client.get(f"projects/{project_id}/pipelines/{pipeline_id}/variables"),
                              List[Variable]),
            require_project=True, project_id=project_id,
        )

    def get_job_details(self, job_id: str, project_id: Optional[str] = None) -> Dict[str, Any]:
        # A project ID passed with the request wins over the configured one
        project_id = project_id or self.config.project_id
        resource = Resource(
            name="job", key="job",
            example=examples.example_job,
            empty=lambda: examples.job_not_found(job_id, self.config.url),
            not_found_note=(f"Job with ID {job_id} not found. Please check if the job exists "
                            f"and you have access to it."),
            error_note="Error fetching job details",
        )

        def op():
            job = normalize(self.client.get(f"projects/{project_id}/jobs/{job_id}"), JobDetails)
            try:
                trace = self.client.get(f"projects/{project_id}/jobs/{job_id}/trace")
                job.trace = trace.decode("utf-8", errors="replace")
            except UpstreamError as e:
                logger.warning(f"Error fetching trace for job {job_id}: {e}")
                job.trace = "Job logs not available"
            return job

        return self.policy.run(resource, op, require_project=True, project_id=project_id)

    def list_merge_requests(self, **query: Optional[str]) -> Dict[str, Any]:
        project_id = self.config.project_id
        params = {name: query.get(name) or default for name, default in MERGE_REQUEST_DEFAULTS.items()}

        def op():
            logger.info(f"Fetching merge requests for project {project_id} with {params}")
            merge_requests = normalize(self.client.get(f"projects/{project_id}/merge_requests", params),
                                       List[MergeRequest])
            logger.info(f"Successfully fetched {len(merge_requests)} merge requests from GitLab")
            return Outcome(payload=merge_requests, extra={"count": len(merge_requests)})

        return self.policy.run(MERGE_REQUESTS, op, require_project=True, project_id=project_id)

    def retry_pipeline(self, pipeline_id: str, project_id: Optional[str] = None) -> Dict[str, Any]:
        return self._mutate_pipeline("retry", pipeline_id, project_id)

    def cancel_pipeline(self, pipeline_id: str, project_id: Optional[str] = None) -> Dict[str, Any]:
        return self._mutate_pipeline("cancel", pipeline_id, project_id)

    def _mutate_pipeline(self, action: str, pipeline_id: str, project_id: Optional[str]) -> Dict[str, Any]:
        """POST a retry/cancel. Its failure is reported in the body, not as an HTTP error."""
        project_id = self._project(project_id)
        if not self.config.token:
            raise MissingConfigError(f"Cannot {action} pipeline: GitLab token not configured")
        if not project_id:
            raise MissingConfigError(f"Cannot {action} pipeline: No project ID configured or provided")

        endpoint = f"projects/{project_id}/pipelines/{pipeline_id}/{action}"
        logger.info(f"Requesting pipeline {action} with endpoint: {endpoint}")
        try:
            body = self.client.post(endpoint)
        except UpstreamError as e:
            logger.error(f"Error requesting {action} of pipeline {pipeline_id}: {e}")
            return {"success": False, "message": f"Failed to {action} pipeline: {e}"}

        try:
            pipeline = normalize(body, Pipeline)
        except ParseError as e:
            logger.warning(f"Pipeline {action} accepted but response could not be parsed: {e}")
            return {"success": True, "message": f"Pipeline {action} initiated but failed to parse response"}

        logger.info(f"Pipeline {pipeline_id} {action} initiated, new status: {pipeline.status}")
        return {
            "success": True,
            "message": f"Pipeline {action} initiated successfully",
            "pipeline": dump(pipeline),
        }
