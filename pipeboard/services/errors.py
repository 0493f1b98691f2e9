from typing import Optional


class DashboardError(Exception):
    """Base class for errors raised by the dashboard services."""


class ConfigError(DashboardError):
    """The configuration store could not be read or written."""


class MissingConfigError(DashboardError):
    """A required configuration value (token or project ID) is not set."""


class UpstreamError(DashboardError):
    """A GitLab API call failed.

    status_code is None when the request never got an HTTP response
    (DNS, connection refused, TLS, deadline).
    """

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    @classmethod
    def from_status(cls, status_code: int, body: str = "") -> "UpstreamError":
        message = f"GitLab API returned status code {status_code}"
        if body:
            message = f"{message}: {body}"
        if status_code == 404:
            return NotFoundError(message, status_code=status_code, body=body)
        return cls(message, status_code=status_code, body=body)


class NotFoundError(UpstreamError):
    """GitLab answered 404: there is legitimately nothing to show."""


class DeadlineExceeded(UpstreamError):
    """The request-scoped deadline ran out before the call could be made."""


class ParseError(DashboardError):
    """GitLab returned JSON that does not match the expected shape."""
