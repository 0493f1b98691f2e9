from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import requests
import uvicorn
from .config import CORS_ORIGINS, CRONJOB_URL, NOTIFICATION_SERVICE_URL, PORT
from .api.gitlab_routes import router as gitlab_router
from .api.config_routes import router as config_router
from .api.control_routes import router as control_router
from .services.cronjob_service import CronjobClient
from .services.notification_service import WebhookPublisher
import logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    notification_session = requests.Session()
    cronjob_session = requests.Session()

    if NOTIFICATION_SERVICE_URL:
        app.state.notification_publisher = WebhookPublisher(NOTIFICATION_SERVICE_URL, notification_session)
    else:
        logger.warning("NOTIFICATION_SERVICE_URL not set, notifications are disabled")
        app.state.notification_publisher = None
    app.state.cronjob_client = CronjobClient(CRONJOB_URL, cronjob_session)

    logger.info("Pipeboard API started")
    try:
        yield
    finally:
        logger.info("Shutting down, closing collaborator sessions")
        notification_session.close()
        cronjob_session.close()


app = FastAPI(title="Pipeboard API", lifespan=lifespan)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(gitlab_router)
app.include_router(config_router)
app.include_router(control_router)


@app.get("/")
async def root():
    return {"message": "Pipeboard API"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


def run():
    uvicorn.run("pipeboard.main:app", host="0.0.0.0", port=PORT)
