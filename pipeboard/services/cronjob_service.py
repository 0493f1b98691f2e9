import logging

import requests

from .errors import DashboardError

logger = logging.getLogger(__name__)


class CronjobError(DashboardError):
    """The cron controller could not be reached or answered with an error."""


class CronjobClient:
    """Request/response proxy to the cron controller. No retries."""

    def __init__(self, base_url: str, session: requests.Session, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs) -> dict:
        if not self.base_url:
            raise CronjobError("CRONJOB_URL is not configured")
        try:
            response = self.session.request(method, f"{self.base_url}/{path}", timeout=self.timeout, **kwargs)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.error(f"Error sending request to cronjob controller: {e}")
            raise CronjobError(str(e)) from e
        except ValueError as e:
            raise CronjobError(f"Invalid response from cronjob controller: {e}") from e
        if not isinstance(data, dict):
            raise CronjobError("Invalid response from cronjob controller: expected a JSON object")
        return data

    def trigger(self, start: bool) -> str:
        """Start or stop the cron job and return the controller's message."""
        data = self._request("POST", "control", json={"start_cronjob": start})
        message = str(data.get("message", ""))
        if not data.get("success", False):
            logger.warning(f"Cronjob controller refused request: {message}")
        else:
            logger.info(f"Cronjob status: {message}")
        return message

    def status(self) -> bool:
        data = self._request("GET", "status")
        running = bool(data.get("running", False))
        logger.info(f"Cronjob running: {running}")
        return running
