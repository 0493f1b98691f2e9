import json
import threading

import pytest

from pipeboard.models.config import GitLabConfig
from pipeboard.services.errors import UpstreamError


class FakeGitLab:
    """Stands in for GitLabClient: maps endpoints to canned bodies or errors.

    Endpoints without a canned reply answer 404.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []
        self._lock = threading.Lock()

    def get(self, endpoint, params=None):
        return self._reply("GET", endpoint, params)

    def post(self, endpoint, params=None):
        return self._reply("POST", endpoint, params)

    def endpoints(self, method="GET"):
        return [endpoint for verb, endpoint, _ in self.calls if verb == method]

    def _reply(self, method, endpoint, params):
        with self._lock:
            self.calls.append((method, endpoint, params))
        reply = self.responses.get(endpoint)
        if reply is None:
            raise UpstreamError.from_status(404, '{"message":"404 Not found"}')
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, bytes):
            return reply
        if isinstance(reply, str):
            return reply.encode("utf-8")
        return json.dumps(reply).encode("utf-8")


@pytest.fixture
def fake_gitlab():
    return FakeGitLab()


@pytest.fixture
def config():
    return GitLabConfig(url="https://gitlab.example.com", token="glpat-test", project_id="7")


@pytest.fixture
def config_without_project():
    return GitLabConfig(url="https://gitlab.example.com", token="glpat-test")


@pytest.fixture
def pipeline_json():
    return make_pipeline


def make_pipeline(pipeline_id, project_path="group/web", status="success", ref="main", **extra):
    body = {
        "id": pipeline_id,
        "status": status,
        "ref": ref,
        "sha": f"sha{pipeline_id}",
        "web_url": f"https://gitlab.example.com/{project_path}/-/pipelines/{pipeline_id}",
        "created_at": "2024-05-01T10:00:00.000Z",
        "updated_at": "2024-05-01T10:05:00.000Z",
    }
    body.update(extra)
    return body
