"""Example data served when real GitLab data cannot be shown.

All timestamps are relative to a fixed reference time so the same request
always produces the same payload.
"""
from datetime import datetime, timedelta, timezone
from typing import List

from ..models.gitlab import (
    Job, JobDetails, MergeRequest, Pipeline, PipelineDetails, PipelineTestReport,
    Project, ReportCase, ReportSuite, ReportTotals, TimeStats, User, Variable,
)

REFERENCE_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _ago(**kwargs) -> datetime:
    return REFERENCE_TIME - timedelta(**kwargs)


def _john() -> User:
    return User(id=1, name="John Doe", username="johndoe",
                web_url="https://gitlab.com/johndoe",
                avatar_url="https://secure.gravatar.com/avatar/abcdefg")


def _jane() -> User:
    return User(id=2, name="Jane Smith", username="janesmith",
                web_url="https://gitlab.com/janesmith",
                avatar_url="https://secure.gravatar.com/avatar/hijklmn")


def _avatar_user(user_id: int, name: str, username: str) -> User:
    return User(id=user_id, name=name, username=username,
                avatar_url=f"https://gitlab.com/uploads/-/system/user/avatar/{user_id}/avatar.png")


def example_projects() -> List[Project]:
    return [
        Project(id=1, name="Example Project 1", name_with_namespace="Group / Example Project 1",
                web_url="https://gitlab.com/group/example-project-1"),
        Project(id=2, name="Example Project 2", name_with_namespace="Group / Example Project 2",
                web_url="https://gitlab.com/group/example-project-2"),
    ]


def example_pipelines() -> List[Pipeline]:
    return [
        Pipeline(id=1, status="success", ref="main", sha="1234567890abcdef",
                 web_url="https://gitlab.com/group/project/-/pipelines/1",
                 created_at=_ago(hours=1), updated_at=_ago(minutes=30), user=_john()),
        Pipeline(id=2, status="failed", ref="feature-branch", sha="abcdef1234567890",
                 web_url="https://gitlab.com/group/project/-/pipelines/2",
                 created_at=_ago(hours=2), updated_at=_ago(minutes=90), user=_jane()),
        Pipeline(id=3, status="running", ref="develop", sha="9876543210fedcba",
                 web_url="https://gitlab.com/group/project/-/pipelines/3",
                 created_at=_ago(minutes=30), updated_at=_ago(minutes=5), user=_john()),
    ]


def example_pipeline() -> Pipeline:
    return example_pipelines()[0]


def example_pipeline_details() -> PipelineDetails:
    started, finished = _ago(minutes=30), _ago(minutes=5)
    return PipelineDetails(
        id=1, status="success", ref="main", sha="1234567890abcdef",
        web_url="https://gitlab.com/group/project/-/pipelines/1",
        created_at=_ago(hours=1), updated_at=_ago(minutes=30),
        started_at=started, finished_at=finished,
        duration=(finished - started).total_seconds(),
        coverage=85.5,
        user=_john(),
    )


def example_jobs() -> List[Job]:
    return [
        Job(id=1, name="build", status="success", stage="build",
            created_at=_ago(hours=1), started_at=_ago(hours=1), finished_at=_ago(minutes=55),
            duration=300.0, web_url="https://gitlab.com/group/project/-/jobs/1", user=_john()),
        Job(id=2, name="test", status="success", stage="test",
            created_at=_ago(minutes=55), started_at=_ago(minutes=55), finished_at=_ago(minutes=45),
            duration=600.0, web_url="https://gitlab.com/group/project/-/jobs/2", user=_john()),
    ]


def example_job() -> JobDetails:
    return JobDetails(id=0, name="Example Job", status="unknown", stage="build", web_url="#",
                      created_at=REFERENCE_TIME, started_at=REFERENCE_TIME,
                      finished_at=REFERENCE_TIME)


def job_not_found(job_id: str, gitlab_url: str) -> JobDetails:
    return JobDetails(id=0, name="Job Not Found", status="unknown", stage="unknown",
                      web_url=f"{gitlab_url}/project/-/jobs/{job_id}")


def example_variables() -> List[Variable]:
    return [
        Variable(key="CI_COMMIT_REF_NAME", value="main"),
        Variable(key="CI_COMMIT_SHA", value="1234567890abcdef"),
        Variable(key="CI_PROJECT_NAME", value="example-project"),
        Variable(key="CI_ENVIRONMENT_NAME", value="production"),
        Variable(key="CI_PIPELINE_ID", value="1856940408"),
    ]


def example_test_report() -> PipelineTestReport:
    return PipelineTestReport(
        total=ReportTotals(time=5000, count=20, success=18, failed=2),
        test_suites=[
            ReportSuite(name="Unit Tests", duration=3000),
            ReportSuite(name="Integration Tests", duration=2000),
        ],
    )


def example_test_report_summary() -> PipelineTestReport:
    return PipelineTestReport(
        total=ReportTotals(time=5000, count=20, success=18, failed=2),
        test_suites=[
            ReportSuite(name="Unit Tests", duration=3000, count=12, success=11, failed=1, tests=[
                ReportCase(name="Test User Authentication", status="success", duration=150),
                ReportCase(name="Test Data Validation", status="failed", duration=200,
                           failure="Expected value to be 42 but got 41"),
            ]),
            ReportSuite(name="Integration Tests", duration=2000, count=8, success=7, failed=1, tests=[
                ReportCase(name="Test API Endpoint", status="success", duration=350),
                ReportCase(name="Test Database Connection", status="failed", duration=400,
                           failure="Connection timed out"),
            ]),
        ],
    )


def empty_test_report() -> PipelineTestReport:
    return PipelineTestReport()


def example_merge_requests() -> List[MergeRequest]:
    alice = _avatar_user(1, "Alice Developer", "alice")
    bob = _avatar_user(2, "Bob Reviewer", "bob")
    return [
        MergeRequest(
            id=1, iid=101, title="Add new feature for user authentication",
            description="This MR adds OAuth2 authentication support", state="merged",
            created_at=_ago(hours=3), updated_at=_ago(hours=2), merged_at=_ago(hours=2),
            web_url="https://gitlab.com/group/project/-/merge_requests/101",
            source_branch="feature/oauth2-auth", target_branch="main",
            author=alice, assignee=bob, merged_by=bob, merge_status="can_be_merged",
            time_stats=TimeStats(time_estimate=7200, total_time_spent=5400,
                                 human_time_estimate="2h", human_total_time_spent="1h 30m"),
        ),
        MergeRequest(
            id=2, iid=102, title="Fix critical bug in payment processing",
            description="Resolves issue #123 with payment validation", state="opened",
            created_at=_ago(hours=1), updated_at=_ago(minutes=30),
            web_url="https://gitlab.com/group/project/-/merge_requests/102",
            source_branch="bugfix/payment-validation", target_branch="main",
            author=_avatar_user(3, "Charlie Coder", "charlie"), assignee=alice,
            merge_status="can_be_merged",
            time_stats=TimeStats(time_estimate=3600, total_time_spent=1800,
                                 human_time_estimate="1h", human_total_time_spent="30m"),
        ),
        MergeRequest(
            id=3, iid=103, title="Update documentation for API endpoints",
            description="Comprehensive documentation update for v2 API", state="opened",
            created_at=_ago(minutes=45), updated_at=_ago(minutes=15),
            web_url="https://gitlab.com/group/project/-/merge_requests/103",
            source_branch="docs/api-v2-update", target_branch="develop",
            author=_avatar_user(4, "Diana Writer", "diana"),
            work_in_progress=True, merge_status="can_be_merged", draft=True,
            time_stats=TimeStats(time_estimate=5400, total_time_spent=2700,
                                 human_time_estimate="1h 30m", human_total_time_spent="45m"),
        ),
    ]
