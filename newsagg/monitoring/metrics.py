"""
Prometheus metrics for the maintenance core.

The collectors subscribe to the cleanup and config event channels, so the
services themselves stay free of metric bookkeeping.
"""

from typing import Optional

import structlog
from prometheus_client import CollectorRegistry, Counter, Gauge

from ..cleanup.models import RuleStatus
from ..cleanup.service import CleanupService
from ..config.manager import ConfigManager
from ..events import (
    CleanupCompletedEvent, CleanupErrorEvent, ConfigChangedEvent,
    ConfigFileChangedEvent, ConfigResetEvent, ConfigValidationErrorsEvent
)

logger = structlog.get_logger(__name__)


class CleanupMetrics:
    """Counts rule outcomes and cleaned items per rule."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()
        self._initialize_metrics()

    def _initialize_metrics(self) -> None:
        self.rule_runs = Counter(
            'cleanup_rule_runs_total',
            'Cleanup rule executions by outcome',
            ['rule', 'status'],
            registry=self.registry
        )

        self.items_cleaned = Counter(
            'cleanup_items_cleaned_total',
            'Files, records or cache entries removed by cleanup rules',
            ['rule'],
            registry=self.registry
        )

        self.rule_errors = Counter(
            'cleanup_rule_errors_total',
            'Cleanup rule failures',
            ['rule'],
            registry=self.registry
        )

        self.last_cleaned = Gauge(
            'cleanup_last_cleaned_count',
            'Items removed by the most recent execution of a rule',
            ['rule'],
            registry=self.registry
        )

    def attach(self, service: CleanupService) -> "CleanupMetrics":
        service.events.cleanup_completed.subscribe(self._on_completed)
        service.events.rule_executed.subscribe(self._on_completed)
        service.events.cleanup_error.subscribe(self._on_error)
        logger.debug("Cleanup metrics attached")
        return self

    def _on_completed(self, event) -> None:
        result = event.result
        rule = getattr(event, 'operation', None) or result.rule
        self.rule_runs.labels(rule=rule, status=result.status.value).inc()
        if result.status == RuleStatus.SUCCESS:
            self.items_cleaned.labels(rule=rule).inc(result.cleaned_count)
            self.last_cleaned.labels(rule=rule).set(result.cleaned_count)

    def _on_error(self, event: CleanupErrorEvent) -> None:
        self.rule_errors.labels(rule=event.rule).inc()
        self.rule_runs.labels(rule=event.rule, status=RuleStatus.ERROR.value).inc()


class ConfigMetrics:
    """Counts config writes, resets, file reloads and validation problems."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()
        self._initialize_metrics()

    def _initialize_metrics(self) -> None:
        self.changes = Counter(
            'config_changes_total',
            'Config values written at runtime',
            ['section'],
            registry=self.registry
        )

        self.resets = Counter(
            'config_resets_total',
            'Config overrides reset',
            registry=self.registry
        )

        self.file_reloads = Counter(
            'config_file_reloads_total',
            'Config files reloaded after a change on disk',
            registry=self.registry
        )

        self.validation_errors = Gauge(
            'config_validation_errors',
            'Violations found by the most recent revalidation',
            registry=self.registry
        )

    def attach(self, manager: ConfigManager) -> "ConfigMetrics":
        manager.events.config_changed.subscribe(self._on_changed)
        manager.events.config_reset.subscribe(self._on_reset)
        manager.events.config_file_changed.subscribe(self._on_file_changed)
        manager.events.config_validation_errors.subscribe(self._on_validation_errors)
        logger.debug("Config metrics attached")
        return self

    def _on_changed(self, event: ConfigChangedEvent) -> None:
        self.changes.labels(section=event.key.split('.')[0]).inc()

    def _on_reset(self, event: ConfigResetEvent) -> None:
        self.resets.inc()

    def _on_file_changed(self, event: ConfigFileChangedEvent) -> None:
        self.file_reloads.inc()

    def _on_validation_errors(self, event: ConfigValidationErrorsEvent) -> None:
        self.validation_errors.set(len(event.errors))
