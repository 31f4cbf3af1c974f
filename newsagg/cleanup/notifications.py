"""
Notification channels for cleanup runs that crossed the error threshold.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

import aiohttp
import structlog

from ..config.schema import CleanupNotificationConfig
from .models import CleanupSummary

logger = structlog.get_logger(__name__)


class Notifier(ABC):
    """Receives the summary of a cleanup run that needs attention."""

    @abstractmethod
    async def notify(self, summary: CleanupSummary) -> bool:
        """Deliver the summary. Returns True when delivery succeeded."""
        pass


class LogNotifier(Notifier):
    """Reports through the log stream only."""

    async def notify(self, summary: CleanupSummary) -> bool:
        logger.warning("Cleanup error threshold reached", **summary.to_dict())
        return True


class WebhookNotifier(Notifier):
    """Posts the summary as JSON to a webhook URL."""

    def __init__(self, url: str, timeout_seconds: float = 30):
        self.url = url
        self.timeout_seconds = timeout_seconds

    async def notify(self, summary: CleanupSummary) -> bool:
        payload = {
            'event': 'cleanup_errors',
            'summary': summary.to_dict(),
        }
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.url,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=self.timeout_seconds)
                ) as response:
                    if 200 <= response.status < 300:
                        logger.info("Cleanup webhook notification sent", url=self.url)
                        return True
                    error_text = await response.text()
                    logger.error("Cleanup webhook rejected notification",
                                 url=self.url,
                                 status_code=response.status,
                                 response=error_text[:200])
                    return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("Failed to send cleanup webhook notification", url=self.url, error=str(e))
            return False


def build_notifier(settings: Optional[CleanupNotificationConfig]) -> Notifier:
    if settings is not None and settings.webhook_url:
        return WebhookNotifier(settings.webhook_url)
    return LogNotifier()
