import pytest

from pipeboard.models.config import GitLabConfig
from pipeboard.services import examples
from pipeboard.services.dashboard_service import DashboardService
from pipeboard.services.degradation import PARSE_NOTE, PROJECT_NOTE, TOKEN_NOTE, dump
from pipeboard.services.errors import DeadlineExceeded, MissingConfigError, UpstreamError


@pytest.fixture
def service(config, fake_gitlab):
    return DashboardService(config, fake_gitlab)


@pytest.fixture
def multi_project_service(config_without_project, fake_gitlab):
    return DashboardService(config_without_project, fake_gitlab)


NO_TOKEN_READS = [
    (lambda s: s.list_projects(), "projects", examples.example_projects),
    (lambda s: s.list_pipelines(), "pipelines", examples.example_pipelines),
    (lambda s: s.get_pipeline("1"), "pipeline", examples.example_pipeline),
    (lambda s: s.get_pipeline_details("1"), "pipeline", examples.example_pipeline_details),
    (lambda s: s.get_pipeline_jobs("1"), "jobs", examples.example_jobs),
    (lambda s: s.get_test_report("1"), None, examples.example_test_report),
    (lambda s: s.get_test_report_summary("1"), None, examples.example_test_report_summary),
    (lambda s: s.get_pipeline_variables("1"), "variables", examples.example_variables),
    (lambda s: s.get_job_details("1"), "job", examples.example_job),
    (lambda s: s.list_merge_requests(), "merge_requests", examples.example_merge_requests),
]


@pytest.mark.parametrize(
    "read, key, example", NO_TOKEN_READS,
    ids=["projects", "pipelines", "pipeline", "pipeline_details", "jobs", "test_report",
         "test_report_summary", "variables", "job", "merge_requests"],
)
def test_missing_token_serves_example_data_everywhere(fake_gitlab, read, key, example):
    service = DashboardService(GitLabConfig(), fake_gitlab)

    body = read(service)

    assert body.pop("note") == TOKEN_NOTE
    assert (body[key] if key else body) == dump(example())
    assert fake_gitlab.calls == []


def test_example_data_is_deterministic(fake_gitlab):
    service = DashboardService(GitLabConfig(), fake_gitlab)

    assert service.get_pipeline_details("1") == service.get_pipeline_details("1")


def test_single_project_pipelines_are_enriched(service, fake_gitlab, pipeline_json):
    fake_gitlab.responses["projects/7/pipelines"] = [pipeline_json(1), pipeline_json(2, status="failed")]
    fake_gitlab.responses["projects/7"] = {"id": 7, "name": "web"}
    fake_gitlab.responses["projects/7/pipelines/1"] = pipeline_json(1, user={"name": "Ada", "username": "ada"})
    fake_gitlab.responses["projects/7/pipelines/2"] = pipeline_json(2, user={"name": "Bob", "username": "bob"})

    body = service.list_pipelines()

    assert [p["id"] for p in body["pipelines"]] == [1, 2]
    assert [p["user"]["username"] for p in body["pipelines"]] == ["ada", "bob"]
    assert body["info"] == "Showing pipelines for project: web (ID: 7)"
    assert "note" not in body


def test_pipelines_across_projects_when_no_project_configured(multi_project_service, fake_gitlab,
                                                              pipeline_json):
    fake_gitlab.responses["projects"] = [{"id": 1, "name": "api"}, {"id": 2, "name": "web"}]
    fake_gitlab.responses["projects/1/pipelines"] = [pipeline_json(10, "group/api")]
    fake_gitlab.responses["projects/2/pipelines"] = [pipeline_json(20, "group/web")]

    body = multi_project_service.list_pipelines()

    assert [p["ref"] for p in body["pipelines"]] == ["main (api)", "main (web)"]
    assert body["info"] == "Showing pipelines from 2 projects: api, web"


def test_pipelines_with_no_projects_in_account(multi_project_service, fake_gitlab):
    fake_gitlab.responses["projects"] = []

    body = multi_project_service.list_pipelines()

    assert body == {"pipelines": [], "note": "No projects found in your GitLab account"}


def test_deadline_during_fanout_serves_example(multi_project_service, fake_gitlab):
    fake_gitlab.responses["projects"] = [{"id": 1, "name": "api"}, {"id": 2, "name": "web"}]
    fake_gitlab.responses["projects/1/pipelines"] = DeadlineExceeded("Request deadline exceeded")
    fake_gitlab.responses["projects/2/pipelines"] = []

    body = multi_project_service.list_pipelines()

    assert len(body["pipelines"]) == 3
    assert body["note"].startswith("Using example data due to API error")


def test_pipeline_list_parse_error_serves_example(service, fake_gitlab):
    fake_gitlab.responses["projects/7/pipelines"] = {"message": "unexpected"}

    body = service.list_pipelines()

    assert len(body["pipelines"]) == 3
    assert body["note"].startswith(PARSE_NOTE)


def test_pipeline_not_found_is_null(service):
    assert service.get_pipeline("404") == {"pipeline": None, "note": "Pipeline not found"}


def test_pipeline_uses_query_project_when_none_configured(multi_project_service, fake_gitlab,
                                                          pipeline_json):
    fake_gitlab.responses["projects/42/pipelines/5"] = pipeline_json(5)

    body = multi_project_service.get_pipeline("5", project_id="42")

    assert body["pipeline"]["id"] == 5
    assert fake_gitlab.endpoints() == ["projects/42/pipelines/5"]


def test_pipeline_without_any_project_serves_example(multi_project_service, fake_gitlab):
    body = multi_project_service.get_pipeline_jobs("5")

    assert len(body["jobs"]) == 2
    assert body["note"] == PROJECT_NOTE
    assert fake_gitlab.calls == []


def test_pipeline_details_defaults_unknown_user(service, fake_gitlab, pipeline_json):
    fake_gitlab.responses["projects/7/pipelines/5"] = pipeline_json(5, coverage="91.20", duration=42)

    body = service.get_pipeline_details("5")

    assert body["pipeline"]["coverage"] == 91.2
    assert body["pipeline"]["duration"] == 42.0
    assert body["pipeline"]["user"]["name"] == "Unknown User"


def test_jobs_upstream_error_serves_example(service, fake_gitlab):
    fake_gitlab.responses["projects/7/pipelines/5/jobs"] = UpstreamError.from_status(502)

    body = service.get_pipeline_jobs("5")

    assert len(body["jobs"]) == 2
    assert body["note"] == "Using example data due to API error: GitLab API returned status code 502"


def test_test_report_requires_configured_project(multi_project_service):
    with pytest.raises(MissingConfigError):
        multi_project_service.get_test_report("5")


def test_test_report_with_no_tests(service, fake_gitlab):
    fake_gitlab.responses["projects/7/pipelines/5/test_report"] = {
        "total_time": 0, "total_count": 0, "success_count": 0, "failed_count": 0,
        "skipped_count": 0, "error_count": 0, "test_suites": [],
    }

    body = service.get_test_report("5")

    assert body["total"]["count"] == 0
    assert body["note"] == "No test data available for this pipeline"


def test_test_report_summary_not_found_is_zeroed(service):
    body = service.get_test_report_summary("5")

    assert body["total"] == {"time": 0.0, "count": 0, "success": 0, "failed": 0, "skipped": 0, "error": 0}
    assert body["test_suites"] == []
    assert body["note"] == "No test report available for this pipeline"


def test_test_report_summary_error_is_zeroed_with_reason(service, fake_gitlab):
    fake_gitlab.responses["projects/7/pipelines/5/test_report_summary"] = UpstreamError.from_status(500)

    body = service.get_test_report_summary("5")

    assert body["total"]["count"] == 0
    assert body["note"] == "Error fetching test report: GitLab API returned status code 500"


def test_test_report_summary_success(service, fake_gitlab):
    fake_gitlab.responses["projects/7/pipelines/5/test_report_summary"] = {
        "total": {"time": 3.5, "count": 4, "success": 3, "failed": 1, "skipped": 0, "error": 0},
        "test_suites": [{"name": "pytest", "total_time": 3.5, "total_count": 4,
                         "success_count": 3, "failed_count": 1}],
    }

    body = service.get_test_report_summary("5")

    assert body["total"]["failed"] == 1
    assert body["test_suites"][0]["name"] == "pytest"
    assert body["test_suites"][0]["count"] == 4
    assert "note" not in body


def test_variables_error_is_empty(service, fake_gitlab):
    fake_gitlab.responses["projects/7/pipelines/5/variables"] = UpstreamError.from_status(403)

    body = service.get_pipeline_variables("5")

    assert body["variables"] == []
    assert body["note"].startswith("No variables available")


def test_job_details_include_trace(service, fake_gitlab):
    fake_gitlab.responses["projects/7/jobs/11"] = {
        "id": 11, "name": "test", "status": "failed", "stage": "test",
        "artifacts": [{"file_type": "junit", "size": 512, "filename": "junit.xml.gz"}],
        "runner": {"id": 3, "description": "shared-runner", "runner_type": "instance_type"},
    }
    fake_gitlab.responses["projects/7/jobs/11/trace"] = "Running tests...\nFAILED\n"

    body = service.get_job_details("11")

    assert body["job"]["trace"] == "Running tests...\nFAILED\n"
    assert body["job"]["artifacts"][0]["filename"] == "junit.xml.gz"
    assert body["job"]["runner"]["description"] == "shared-runner"


def test_job_details_without_trace(service, fake_gitlab):
    fake_gitlab.responses["projects/7/jobs/11"] = {"id": 11, "name": "test"}

    body = service.get_job_details("11")

    assert body["job"]["trace"] == "Job logs not available"
    assert "note" not in body


def test_job_details_query_project_wins(service, fake_gitlab):
    fake_gitlab.responses["projects/99/jobs/11"] = {"id": 11}
    fake_gitlab.responses["projects/99/jobs/11/trace"] = "ok"

    service.get_job_details("11", project_id="99")

    assert fake_gitlab.endpoints() == ["projects/99/jobs/11", "projects/99/jobs/11/trace"]


def test_job_not_found_placeholder(service):
    body = service.get_job_details("12")

    assert body["job"]["name"] == "Job Not Found"
    assert body["job"]["web_url"] == "https://gitlab.example.com/project/-/jobs/12"
    assert body["note"].startswith("Job with ID 12 not found")


def test_merge_request_query_defaults(service, fake_gitlab):
    fake_gitlab.responses["projects/7/merge_requests"] = [
        {"id": 1, "iid": 4, "title": "Add login", "state": "opened",
         "author": {"id": 2, "name": "Ada", "username": "ada"}},
    ]

    body = service.list_merge_requests(state="opened", per_page=None, page="2")

    assert fake_gitlab.calls[0][2] == {
        "state": "opened", "per_page": "100", "page": "2", "order_by": "created_at", "sort": "desc",
    }
    assert body["count"] == 1
    assert body["merge_requests"][0]["author"]["username"] == "ada"


def test_merge_requests_error_serves_example(service, fake_gitlab):
    fake_gitlab.responses["projects/7/merge_requests"] = UpstreamError("Error connecting to GitLab: refused")

    body = service.list_merge_requests()

    assert len(body["merge_requests"]) == 3
    assert body["note"].startswith("Error fetching merge requests, using example data instead")


def test_retry_pipeline(service, fake_gitlab, pipeline_json):
    fake_gitlab.responses["projects/7/pipelines/5/retry"] = pipeline_json(5, status="pending")

    body = service.retry_pipeline("5")

    assert body["success"] is True
    assert body["message"] == "Pipeline retry initiated successfully"
    assert body["pipeline"]["status"] == "pending"
    assert fake_gitlab.endpoints("POST") == ["projects/7/pipelines/5/retry"]


def test_cancel_pipeline_failure_is_reported_in_body(service, fake_gitlab):
    fake_gitlab.responses["projects/7/pipelines/5/cancel"] = UpstreamError.from_status(403, "403 Forbidden")

    body = service.cancel_pipeline("5")

    assert body == {
        "success": False,
        "message": "Failed to cancel pipeline: GitLab API returned status code 403: 403 Forbidden",
    }


def test_retry_pipeline_with_unparseable_response(service, fake_gitlab):
    fake_gitlab.responses["projects/7/pipelines/5/retry"] = b"{}"

    body = service.retry_pipeline("5")

    assert body["success"] is True
    assert "pipeline" not in body


def test_retry_pipeline_requires_token(fake_gitlab):
    service = DashboardService(GitLabConfig(project_id="7"), fake_gitlab)

    with pytest.raises(MissingConfigError):
        service.retry_pipeline("5")


def test_cancel_pipeline_requires_project(multi_project_service, fake_gitlab):
    with pytest.raises(MissingConfigError):
        multi_project_service.cancel_pipeline("5")

    assert fake_gitlab.calls == []
