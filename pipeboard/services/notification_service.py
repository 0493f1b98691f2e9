import logging
from typing import Optional, Protocol, Sequence

import requests

logger = logging.getLogger(__name__)

CHANNELS = ("slack", "email")


class Publisher(Protocol):
    def publish(self, channel: str, message: str) -> None: ...


class WebhookPublisher:
    """Publishes messages to the notification relay over HTTP.

    The session is opened once at startup and closed on shutdown by the app
    lifespan; every request reuses it.
    """

    def __init__(self, base_url: str, session: requests.Session, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.timeout = timeout

    def publish(self, channel: str, message: str) -> None:
        response = self.session.post(
            f"{self.base_url}/{channel}",
            json={"message": message},
            timeout=self.timeout,
        )
        response.raise_for_status()


class NotificationService:
    """Fans one message out to every delivery channel independently."""

    def __init__(self, publisher: Optional[Publisher], channels: Sequence[str] = CHANNELS):
        self.publisher = publisher
        self.channels = tuple(channels)

    def send_notification(self, message: str) -> str:
        logger.info(f"Received notification request ({len(message)} chars)")
        if self.publisher is None:
            logger.error("Notification publisher is not initialized")
            return "Notification service is not configured"

        failed = []
        for channel in self.channels:
            try:
                self.publisher.publish(channel, message)
                logger.info(f"Message published ({channel}) successfully")
            except requests.RequestException as e:
                logger.error(f"Error publishing message on channel {channel}: {e}")
                failed.append(channel)

        if failed:
            return f"Notification delivery failed for: {', '.join(failed)}"
        return "Notification sent successfully"
