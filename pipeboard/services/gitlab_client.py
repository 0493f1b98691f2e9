import logging
import time
from typing import Any, Dict, Optional

import gitlab
import requests

from ..models.config import GitLabConfig
from .errors import DeadlineExceeded, UpstreamError

logger = logging.getLogger(__name__)

SUCCESS_CODES = (200, 201)


class Deadline:
    """A time budget shared by every GitLab call made for one inbound request."""

    def __init__(self, seconds: float):
        self.expires_at = time.monotonic() + seconds

    def remaining(self) -> float:
        return self.expires_at - time.monotonic()

    def expired(self) -> bool:
        return self.remaining() <= 0


class GitLabClient:
    """Single authenticated calls against the GitLab v4 REST API.

    Every failure is raised as an UpstreamError carrying the HTTP status (or
    None for transport failures). Nothing is retried here.
    """

    def __init__(self, config: GitLabConfig, timeout: float = 10.0,
                 deadline: Optional[Deadline] = None, gl: Optional[gitlab.Gitlab] = None):
        self.config = config
        self.timeout = timeout
        self.deadline = deadline
        # Only a client built here is closed by close()
        self._owns_gl = gl is None
        self.gl = gl or gitlab.Gitlab(
            url=config.url,
            private_token=config.token,
            timeout=timeout,
            api_version="4",
        )

    def close(self):
        """Release the HTTP session of a python-gitlab client built by this object."""
        if self._owns_gl:
            self.gl.session.close()

    def _call_timeout(self) -> float:
        if self.deadline is None:
            return self.timeout
        remaining = self.deadline.remaining()
        if remaining <= 0:
            raise DeadlineExceeded("Request deadline exceeded before contacting GitLab")
        return min(self.timeout, remaining)

    def call(self, method: str, endpoint: str, params: Optional[Dict[str, Any]] = None) -> bytes:
        """Call `<url>/api/v4/<endpoint>` and return the raw response body."""
        path = "/" + endpoint.lstrip("/")
        timeout = self._call_timeout()
        logger.debug(f"GitLab {method.upper()} {path} params={params}")
        try:
            response = self.gl.http_request(
                method.lower(),
                path,
                query_data=params or {},
                timeout=timeout,
                obey_rate_limit=False,
                retry_transient_errors=False,
            )
        except gitlab.exceptions.GitlabError as e:
            if e.response_code is None:
                raise UpstreamError(f"GitLab API error: {_error_text(e)}") from e
            raise UpstreamError.from_status(e.response_code, _error_text(e)) from e
        except requests.Timeout as e:
            if self.deadline is not None and self.deadline.expired():
                raise DeadlineExceeded(f"Request deadline exceeded while calling GitLab: {e}") from e
            raise UpstreamError(f"Timed out calling GitLab: {e}") from e
        except requests.RequestException as e:
            raise UpstreamError(f"Error connecting to GitLab: {e}") from e

        # python-gitlab accepts any 2xx; the dashboard only trusts 200 and 201
        if response.status_code not in SUCCESS_CODES:
            raise UpstreamError.from_status(response.status_code, response.text)
        return response.content

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> bytes:
        return self.call("GET", endpoint, params)

    def post(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> bytes:
        return self.call("POST", endpoint, params)


def _error_text(error: gitlab.exceptions.GitlabError) -> str:
    message = error.error_message
    if isinstance(message, bytes):
        message = message.decode("utf-8", errors="replace")
    return "" if message is None else str(message)
