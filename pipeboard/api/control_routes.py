from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from ..services.cronjob_service import CronjobClient, CronjobError
from ..services.notification_service import NotificationService
from ..config import get_cronjob_client, get_notification_service
import logging

# Configure logger
logger = logging.getLogger(__name__)

router = APIRouter(tags=["control"])


class NotificationRequest(BaseModel):
    message: str


class CronjobRequest(BaseModel):
    start: bool


@router.post("/notifications")
def send_notification(
    request: NotificationRequest,
    service: NotificationService = Depends(get_notification_service)
):
    """Relay a message to the Slack and email channels."""
    return {"status": service.send_notification(request.message)}


@router.post("/cronjob")
def control_cronjob(
    request: CronjobRequest,
    client: CronjobClient = Depends(get_cronjob_client)
):
    try:
        logger.info(f"{'Starting' if request.start else 'Stopping'} cronjob")
        return {"message": client.trigger(request.start)}
    except CronjobError as e:
        raise HTTPException(status_code=502, detail=f"Cronjob controller error: {e}")


@router.get("/cronjob/status")
def get_cronjob_status(client: CronjobClient = Depends(get_cronjob_client)):
    try:
        return {"running": client.status()}
    except CronjobError as e:
        raise HTTPException(status_code=502, detail=f"Cronjob controller error: {e}")
