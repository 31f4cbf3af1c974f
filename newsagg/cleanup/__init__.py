"""
Cleanup orchestration: prioritized maintenance rules for log, cache, temp
file and database retention.
"""

from .models import (
    CleanupCounts, CleanupPriority, CleanupReport, CleanupRule, CleanupStats,
    CleanupSummary, RuleResult, RuleStatus
)
from .notifications import LogNotifier, Notifier, WebhookNotifier
from .registry import RuleRegistry
from .service import CleanupService

__all__ = [
    'CleanupService',
    'CleanupCounts',
    'CleanupPriority',
    'CleanupReport',
    'CleanupRule',
    'CleanupStats',
    'CleanupSummary',
    'RuleResult',
    'RuleStatus',
    'RuleRegistry',
    'Notifier',
    'LogNotifier',
    'WebhookNotifier'
]
