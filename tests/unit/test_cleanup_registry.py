"""
Unit tests for the rule registry and cleanup result models.
"""

from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from newsagg.cleanup.models import (
    CleanupCounts, CleanupPriority, CleanupRule, CleanupStats, CleanupSummary, RuleResult, RuleStatus
)
from newsagg.cleanup.registry import RuleRegistry
from newsagg.exceptions import RuleNotFoundError


def _rule(name, priority):
    return CleanupRule(name=name, label=name.title(), description=f"{name} rule",
                       priority=priority, action=AsyncMock(), schedule='0 2 * * *')


class TestRuleRegistry:

    def test_register_and_get(self):
        registry = RuleRegistry()
        rule = _rule('logs', CleanupPriority.LOW)
        registry.register(rule)
        assert registry.get('logs') is rule
        assert 'logs' in registry
        assert len(registry) == 1

    def test_duplicate_name_rejected(self):
        registry = RuleRegistry()
        registry.register(_rule('logs', CleanupPriority.LOW))
        with pytest.raises(ValueError):
            registry.register(_rule('logs', CleanupPriority.HIGH))

    def test_unknown_rule(self):
        with pytest.raises(RuleNotFoundError) as exc_info:
            RuleRegistry().get('missing')
        assert exc_info.value.rule == 'missing'

    def test_ordered_by_priority_stable_within_tier(self):
        registry = RuleRegistry()
        for name, priority in [('logs', CleanupPriority.LOW),
                               ('cache', CleanupPriority.MEDIUM),
                               ('temp_files', CleanupPriority.MEDIUM),
                               ('database', CleanupPriority.HIGH)]:
            registry.register(_rule(name, priority))

        ordered = registry.ordered(['logs', 'temp_files', 'cache', 'database'])

        assert [r.name for r in ordered] == ['database', 'temp_files', 'cache', 'logs']

    def test_ordered_drops_unknown_and_duplicates(self):
        registry = RuleRegistry()
        registry.register(_rule('logs', CleanupPriority.LOW))
        assert [r.name for r in registry.ordered(['logs', 'ghost', 'logs'])] == ['logs']


class TestResultModels:

    def test_cleaned_count_picks_first_nonzero(self):
        assert RuleResult.succeeded('x', CleanupCounts(records_cleaned=4)).cleaned_count == 4
        assert RuleResult.succeeded('x', CleanupCounts(files_cleaned=2, cache_cleared=9)).cleaned_count == 2
        assert RuleResult.failed('x', 'boom').cleaned_count == 0

    def test_result_to_dict(self):
        assert RuleResult.failed('cache', 'boom').to_dict() == {
            'rule': 'cache', 'status': 'error', 'error': 'boom'
        }
        skipped = RuleResult.skipped('logs', 'Dry run').to_dict()
        assert skipped['status'] == RuleStatus.SKIPPED.value
        assert skipped['files_cleaned'] == 0

    def test_stats_record(self):
        stats = CleanupStats()
        started = datetime(2024, 1, 1, 2, 0)
        stats.record(CleanupSummary(total_files_cleaned=3, total_records_cleaned=5, total_cache_cleared=1,
                                    errors=1, rules=4, dry_run=False, started_at=started,
                                    duration_seconds=0.5))
        data = stats.to_dict()
        assert data['total_cleanups'] == 1
        assert data['files_cleaned'] == 3
        assert data['errors'] == 1
        assert data['last_cleanup'] == started.isoformat()
