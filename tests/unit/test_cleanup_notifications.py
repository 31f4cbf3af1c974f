"""
Unit tests for cleanup notification channels.
"""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from newsagg.cleanup.models import CleanupSummary
from newsagg.cleanup.notifications import LogNotifier, WebhookNotifier, build_notifier
from newsagg.config.schema import CleanupNotificationConfig


@pytest.fixture
def summary():
    return CleanupSummary(total_files_cleaned=0, total_records_cleaned=0, total_cache_cleared=0,
                          errors=12, rules=4, dry_run=False, started_at=datetime(2024, 1, 1),
                          duration_seconds=1.2)


def _mock_session(status=200, text="ok"):
    response = MagicMock()
    response.status = status
    response.text = AsyncMock(return_value=text)
    response.__aenter__ = AsyncMock(return_value=response)
    response.__aexit__ = AsyncMock(return_value=None)

    session = MagicMock()
    session.post = MagicMock(return_value=response)
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=None)
    return session


class TestWebhookNotifier:

    @pytest.mark.asyncio
    async def test_successful_post(self, summary):
        session = _mock_session()
        with patch('aiohttp.ClientSession', return_value=session):
            assert await WebhookNotifier("https://hooks.example.com/cleanup").notify(summary) is True

        args, kwargs = session.post.call_args
        assert args[0] == "https://hooks.example.com/cleanup"
        assert kwargs['json']['event'] == 'cleanup_errors'
        assert kwargs['json']['summary']['errors'] == 12

    @pytest.mark.asyncio
    async def test_rejected_post(self, summary):
        session = _mock_session(status=500, text="server error")
        with patch('aiohttp.ClientSession', return_value=session):
            assert await WebhookNotifier("https://hooks.example.com/cleanup").notify(summary) is False

    @pytest.mark.asyncio
    async def test_connection_error(self, summary):
        session = _mock_session()
        session.post.side_effect = aiohttp.ClientError("connection refused")
        with patch('aiohttp.ClientSession', return_value=session):
            assert await WebhookNotifier("https://hooks.example.com/cleanup").notify(summary) is False


class TestBuildNotifier:

    @pytest.mark.asyncio
    async def test_log_notifier_by_default(self, summary):
        notifier = build_notifier(CleanupNotificationConfig())
        assert isinstance(notifier, LogNotifier)
        assert await notifier.notify(summary) is True

    def test_webhook_when_url_configured(self):
        notifier = build_notifier(CleanupNotificationConfig(webhook_url="https://hooks.example.com/x"))
        assert isinstance(notifier, WebhookNotifier)
        assert notifier.timeout_seconds == 30
