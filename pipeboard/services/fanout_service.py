import re
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence
from urllib.parse import parse_qs, quote, urlsplit

from ..models.gitlab import Pipeline, Project
from .errors import DeadlineExceeded, ParseError, UpstreamError
from .gitlab_client import GitLabClient
from .normalizer import normalize

logger = logging.getLogger(__name__)

PROJECT_DISCOVERY_LIMIT = 100
MAX_PROJECTS = 5             # cap on projects queried per request
PIPELINES_PER_PROJECT = 5
PIPELINE_PATH_MARKER = "/-/pipelines/"


@dataclass
class FanoutResult:
    pipelines: List[Pipeline]
    info: str = ""
    note: Optional[str] = None


def decorate_web_url(web_url: str, project_id: int) -> str:
    """Tag a pipeline URL with its project ID unless it already carries it.

    Safe to apply repeatedly: a URL containing `projects/<id>` or an equal
    `project_id` query parameter is returned unchanged.
    """
    if re.search(rf"projects/{project_id}(?!\d)", web_url):
        return web_url
    query = urlsplit(web_url).query
    if str(project_id) in parse_qs(query).get("project_id", []):
        return web_url
    separator = "&" if query else "?"
    return f"{web_url}{separator}project_id={project_id}"


def decorate_pipeline(pipeline: Pipeline, project: Project) -> Pipeline:
    return pipeline.model_copy(update={
        "ref": f"{pipeline.ref} ({project.name})",
        "web_url": decorate_web_url(pipeline.web_url, project.id),
    })


def pipeline_endpoint(pipeline: Pipeline, project_id: Optional[str] = None) -> Optional[str]:
    """Endpoint for one pipeline's details, or None if it cannot be derived.

    Without a project ID the project path is taken from the pipeline URL,
    e.g. https://gitlab.com/namespace/project/-/pipelines/123.
    """
    if project_id:
        return f"projects/{project_id}/pipelines/{pipeline.id}"
    parts = urlsplit(pipeline.web_url).path.split(PIPELINE_PATH_MARKER)
    if len(parts) != 2:
        return None
    segments = [s for s in parts[0].split("/") if s]
    if len(segments) < 2:
        return None
    project_path = "/".join(segments[-2:])
    return f"projects/{quote(project_path, safe='')}/pipelines/{pipeline.id}"


class ProjectFanout:
    """Collects pipelines from several projects when no default project is set."""

    def __init__(self, client: GitLabClient, max_projects: int = MAX_PROJECTS,
                 pipelines_per_project: int = PIPELINES_PER_PROJECT):
        self.client = client
        self.max_projects = max_projects
        self.pipelines_per_project = pipelines_per_project

    def discover_projects(self) -> List[Project]:
        body = self.client.get("projects", {"membership": "true", "per_page": PROJECT_DISCOVERY_LIMIT})
        return normalize(body, List[Project])

    def fetch_pipelines_across_projects(self) -> FanoutResult:
        projects = self.discover_projects()
        if not projects:
            logger.info("No GitLab projects found for this token")
            return FanoutResult(pipelines=[], note="No projects found in your GitLab account")

        projects = projects[:self.max_projects]
        logger.info(f"Fetching pipelines from {len(projects)} projects with {len(projects)} workers")
        per_project = _run_ordered(self._fetch_project_pipelines, projects, max_workers=len(projects))

        pipelines = [pipeline for batch in per_project for pipeline in batch]
        names = ", ".join(project.name for project in projects)
        info = f"Showing pipelines from {len(projects)} projects: {names}"
        logger.info(f"Found {len(pipelines)} pipelines across {len(projects)} projects")
        return FanoutResult(pipelines=pipelines, info=info)

    def _fetch_project_pipelines(self, project: Project) -> List[Pipeline]:
        logger.info(f"Fetching pipelines for project {project.id}: {project.name}")
        try:
            body = self.client.get(f"projects/{project.id}/pipelines",
                                   {"per_page": self.pipelines_per_project})
            pipelines = normalize(body, List[Pipeline])
        except DeadlineExceeded:
            raise
        except (UpstreamError, ParseError) as e:
            logger.warning(f"Skipping project {project.id} ({project.name}): {e}")
            return []
        return [decorate_pipeline(pipeline, project) for pipeline in pipelines]

    def enrich_pipeline_users(self, pipelines: List[Pipeline],
                              project_id: Optional[str] = None) -> List[Pipeline]:
        """Fill in the triggering user, which the list endpoint leaves out."""
        if not pipelines:
            return pipelines

        def fetch_user(pipeline: Pipeline) -> Pipeline:
            endpoint = pipeline_endpoint(pipeline, project_id)
            if endpoint is None:
                logger.debug(f"Cannot derive project for pipeline {pipeline.id} from {pipeline.web_url}")
                return pipeline
            try:
                details = normalize(self.client.get(endpoint), Pipeline)
            except DeadlineExceeded:
                raise
            except (UpstreamError, ParseError) as e:
                logger.warning(f"Could not fetch user for pipeline {pipeline.id}: {e}")
                return pipeline
            return pipeline.model_copy(update={"user": details.user}) if details.user else pipeline

        return _run_ordered(fetch_user, pipelines, max_workers=len(pipelines))


def _run_ordered(fn: Callable, items: Sequence, max_workers: int) -> list:
    """Run fn over items in parallel and return results in input order.

    DeadlineExceeded from any worker cancels the ones not yet started and is
    re-raised.
    """
    results = [None] * len(items)
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        future_to_index = {executor.submit(fn, item): i for i, item in enumerate(items)}
        try:
            for future in as_completed(future_to_index):
                results[future_to_index[future]] = future.result()
        except DeadlineExceeded:
            logger.error("Request deadline exceeded, cancelling remaining GitLab calls")
            for future in future_to_index:
                future.cancel()
            raise
    return results
