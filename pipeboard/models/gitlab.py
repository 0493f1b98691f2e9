from pydantic import AliasChoices, BaseModel, BeforeValidator, Field, model_validator
from typing import Annotated, List, Optional
from datetime import datetime


def _or(default):
    """Before-validator replacing null with `default`."""
    def replace_null(value):
        return default() if value is None else value
    return BeforeValidator(replace_null)


# GitLab sends null for many fields; these types fall back to a zero value.
Text = Annotated[str, _or(str)]
Count = Annotated[int, _or(int)]
Seconds = Annotated[float, _or(float)]
Flag = Annotated[bool, _or(bool)]


def _alias(*names: str, default=0):
    return Field(default=default, validation_alias=AliasChoices(*names))


class User(BaseModel):
    id: Count = 0
    name: Text = ""
    username: Text = ""
    web_url: Text = ""
    avatar_url: Text = ""


def unknown_user() -> User:
    return User(name="Unknown User", username="unknown")


def _user_or_unknown(value):
    return value if value else unknown_user()


class Project(BaseModel):
    id: int
    name: Text = ""
    name_with_namespace: Text = ""
    web_url: Text = ""


class Pipeline(BaseModel):
    id: int
    status: Text = ""
    ref: Text = ""
    sha: Text = ""
    web_url: Text = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Not returned by the list endpoint; filled in by the enrichment pass
    user: Optional[User] = None


class PipelineDetails(Pipeline):
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    duration: Seconds = 0.0
    # GitLab sends coverage as a string such as "85.50"
    coverage: Seconds = 0.0
    user: Annotated[User, BeforeValidator(_user_or_unknown)] = Field(default_factory=unknown_user)


class Runner(BaseModel):
    id: Count = 0
    description: Text = ""
    runner_type: Text = ""
    status: Text = ""


class Artifact(BaseModel):
    file_type: Text = ""
    size: Count = 0
    filename: Text = ""


class Job(BaseModel):
    id: int
    name: Text = ""
    status: Text = ""
    stage: Text = ""
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    duration: Seconds = 0.0
    web_url: Text = ""
    user: Optional[User] = None


class JobDetails(Job):
    trace: Text = ""
    artifacts: Annotated[List[Artifact], _or(list)] = []
    runner: Optional[Runner] = None


class Variable(BaseModel):
    key: Text = ""
    value: Text = ""
    variable_type: Text = "env_var"


class TimeStats(BaseModel):
    time_estimate: Count = 0
    total_time_spent: Count = 0
    human_time_estimate: Optional[str] = None
    human_total_time_spent: Optional[str] = None


class MergeRequest(BaseModel):
    id: int
    iid: Count = 0
    title: Text = ""
    description: Text = ""
    state: Text = ""  # opened, closed, merged, locked
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    merged_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    web_url: Text = ""
    source_branch: Text = ""
    target_branch: Text = ""
    author: Annotated[User, _or(User)] = Field(default_factory=User)
    assignee: Optional[User] = None
    merged_by: Optional[User] = None
    work_in_progress: Flag = False
    merge_status: Text = ""
    draft: Flag = False
    has_conflicts: Flag = False
    time_stats: Annotated[TimeStats, _or(TimeStats)] = Field(default_factory=TimeStats)


class ReportTotals(BaseModel):
    time: Seconds = 0.0
    count: Count = 0
    success: Count = 0
    failed: Count = 0
    skipped: Count = 0
    error: Count = 0


class ReportCase(BaseModel):
    name: Text = ""
    status: Text = ""
    duration: Seconds = _alias("duration", "execution_time", default=0.0)
    failure: Optional[str] = Field(default=None, validation_alias=AliasChoices("failure", "system_output"))


class ReportSuite(BaseModel):
    """One test suite, in either our shape or GitLab's *_count / total_* shape."""
    name: Text = ""
    duration: Seconds = _alias("duration", "total_time", default=0.0)
    count: Count = _alias("count", "total_count")
    success: Count = _alias("success", "success_count")
    failed: Count = _alias("failed", "failed_count")
    skipped: Count = _alias("skipped", "skipped_count")
    error: Count = _alias("error", "error_count")
    tests: Annotated[List[ReportCase], _or(list)] = Field(
        default_factory=list, validation_alias=AliasChoices("tests", "test_cases")
    )


class PipelineTestReport(BaseModel):
    total: Annotated[ReportTotals, _or(ReportTotals)] = Field(default_factory=ReportTotals)
    test_suites: Annotated[List[ReportSuite], _or(list)] = []

    @model_validator(mode="before")
    @classmethod
    def _lift_flat_totals(cls, data):
        # The full test_report endpoint puts totals at the top level
        # (total_time, total_count, ...) instead of under "total".
        if isinstance(data, dict) and "total" not in data and "total_count" in data:
            data = dict(data)
            data["total"] = {
                "time": data.get("total_time"),
                "count": data.get("total_count"),
                "success": data.get("success_count"),
                "failed": data.get("failed_count"),
                "skipped": data.get("skipped_count"),
                "error": data.get("error_count"),
            }
        return data

    def is_empty(self) -> bool:
        return self.total.count == 0 and not self.test_suites
