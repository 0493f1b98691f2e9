from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from typing import Optional
from ..models.config import ConfigView
from ..services.config_service import ConfigService
from ..services.errors import ConfigError
from ..config import get_config_service
import logging

# Configure logger
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/gitlab", tags=["config"])


class TokenRequest(BaseModel):
    token: str = ""


class URLRequest(BaseModel):
    url: str = ""


class ProjectIDRequest(BaseModel):
    project_id: Optional[str] = ""


def _store(config_service: ConfigService, field: str, value: str, label: str):
    try:
        config_service.update(field, value)
    except ValueError as e:
        logger.warning(f"Rejected {label}: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except ConfigError as e:
        logger.error(f"Failed to store {label}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to store {label}")
    return {"message": f"{label[0].upper()}{label[1:]} stored successfully"}


@router.get("/config", response_model=ConfigView)
def get_config(config_service: ConfigService = Depends(get_config_service)):
    """Current GitLab settings. The token itself is never returned."""
    try:
        return ConfigView.from_config(config_service.resolve())
    except ConfigError as e:
        logger.error(f"Error getting GitLab config: {e}")
        raise HTTPException(status_code=500, detail=f"Error getting GitLab config: {e}")


@router.post("/token")
def set_token(request: TokenRequest, config_service: ConfigService = Depends(get_config_service)):
    logger.info("Storing GitLab token")
    return _store(config_service, "token", request.token, "GitLab token")


@router.post("/url")
def set_url(request: URLRequest, config_service: ConfigService = Depends(get_config_service)):
    logger.info(f"Storing GitLab URL: {request.url or '(default)'}")
    return _store(config_service, "url", request.url, "GitLab URL")


@router.post("/project-id")
def set_project_id(request: ProjectIDRequest, config_service: ConfigService = Depends(get_config_service)):
    logger.info(f"Storing GitLab project ID: {request.project_id or '(none)'}")
    return _store(config_service, "project_id", request.project_id or "", "GitLab project ID")
