from dotenv import load_dotenv
from functools import lru_cache
from typing import Iterator
import os
import logging
from fastapi import Depends, HTTPException, Request

from .models.config import GitLabConfig
from .services.config_service import ConfigService
from .services.cronjob_service import CronjobClient
from .services.dashboard_service import DashboardService
from .services.errors import ConfigError
from .services.gitlab_client import Deadline, GitLabClient
from .services.notification_service import NotificationService

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Where the GitLab connection settings are persisted (relative to the working directory)
GITLAB_CONFIG_FILE = os.getenv("GITLAB_CONFIG_FILE", ".gitlab-config.json")
GITLAB_DOTENV_FILE = os.getenv("GITLAB_DOTENV_FILE", ".env")

# Per-call timeout and the overall budget for one inbound request, in seconds
GITLAB_REQUEST_TIMEOUT = float(os.getenv("GITLAB_REQUEST_TIMEOUT", "10"))
GITLAB_REQUEST_DEADLINE = float(os.getenv("GITLAB_REQUEST_DEADLINE", "30"))

NOTIFICATION_SERVICE_URL = os.getenv("NOTIFICATION_SERVICE_URL", "")
CRONJOB_URL = os.getenv("CRONJOB_URL", "")

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]
PORT = int(os.getenv("PORT", "8001"))


@lru_cache(maxsize=1)
def get_config_service() -> ConfigService:
    return ConfigService(config_path=GITLAB_CONFIG_FILE, dotenv_path=GITLAB_DOTENV_FILE)


def get_gitlab_config(config_service: ConfigService = Depends(get_config_service)) -> GitLabConfig:
    try:
        return config_service.resolve()
    except ConfigError as e:
        logger.error(f"Error getting GitLab config: {e}")
        raise HTTPException(status_code=500, detail=f"Error getting GitLab config: {e}")


def get_dashboard_service(config: GitLabConfig = Depends(get_gitlab_config)) -> Iterator[DashboardService]:
    logger.info(f"GitLab URL: {config.url}, token present: {bool(config.token)}, "
                 f"project ID: {config.project_id or 'not set'}")
    client = GitLabClient(
        config,
        timeout=GITLAB_REQUEST_TIMEOUT,
        deadline=Deadline(GITLAB_REQUEST_DEADLINE),
    )
    try:
        yield DashboardService(config, client)
    finally:
        client.close()


def get_notification_service(request: Request) -> NotificationService:
    return NotificationService(getattr(request.app.state, "notification_publisher", None))


def get_cronjob_client(request: Request) -> CronjobClient:
    client = getattr(request.app.state, "cronjob_client", None)
    if client is None:
        raise HTTPException(status_code=503, detail="Cronjob client is not initialized")
    return client
