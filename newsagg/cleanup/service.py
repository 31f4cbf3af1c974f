"""
Cleanup service - orchestrates the maintenance rules.

Rules run one at a time in priority order. A failing rule is recorded and
reported but never stops the rules after it.
"""

import copy
import gc
import time
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import psutil
import structlog
from pydantic import ValidationError as PydanticValidationError

from ..config.manager import ConfigManager
from ..config.schema import CleanupSettings
from ..events import (
    CleanupCompletedEvent, CleanupErrorEvent, CleanupEvents, ConfigChangedEvent,
    ErrorEvent, RuleExecutedEvent
)
from ..exceptions import CleanupConfigError, DatabaseError
from ..storage.client import DatabaseClient
from . import database as db_policies
from .files import prune_directories, prune_files
from .models import (
    CleanupCounts, CleanupPriority, CleanupReport, CleanupRule, CleanupStats,
    CleanupSummary, RuleResult
)
from .notifications import Notifier, build_notifier
from .registry import RuleRegistry

logger = structlog.get_logger(__name__)

DEFAULT_RULES = ['logs', 'cache', 'database', 'temp_files']
REQUIRED_DIRECTORIES = ['logs', 'cache', 'temp', 'backup']


class CleanupService:
    """
    Runs named maintenance rules against the filesystem and the database.

    Thresholds come from the ``cleanup`` config section. When a ConfigManager
    is supplied the service re-reads them whenever that section changes.
    """

    def __init__(self,
                 db: DatabaseClient,
                 config: Union[ConfigManager, CleanupSettings, None] = None,
                 notifier: Optional[Notifier] = None,
                 base_dir: Union[str, Path] = ".",
                 registry: Optional[RuleRegistry] = None):
        self.db = db
        self.base_dir = Path(base_dir)
        self.events = CleanupEvents()
        self.stats = CleanupStats()
        self.registry = registry if registry is not None else RuleRegistry()
        self._config_manager = config if isinstance(config, ConfigManager) else None
        self._running = False

        if isinstance(config, CleanupSettings):
            self.settings = config
        else:
            self.settings = self._read_settings()

        self._notifier_injected = notifier is not None
        self.notifier = notifier if notifier is not None else build_notifier(self.settings.notifications)
        self._register_builtin_rules()

        if self._config_manager is not None:
            self._config_manager.events.config_changed.subscribe(self._on_config_changed)
            self._config_manager.events.config_reset.subscribe(lambda event: self.reload_settings())
            self._config_manager.events.config_file_changed.subscribe(lambda event: self.reload_settings())

    @property
    def is_running(self) -> bool:
        return self._running

    def _read_settings(self) -> CleanupSettings:
        if self._config_manager is None:
            return CleanupSettings()
        try:
            return CleanupSettings.model_validate(self._config_manager.get('cleanup', {}))
        except PydanticValidationError as e:
            raise CleanupConfigError(f"Invalid cleanup settings: {e}") from e

    def reload_settings(self) -> CleanupSettings:
        """Re-read thresholds, schedules and the notification target from the config manager."""
        self.settings = self._read_settings()
        if not self._notifier_injected:
            self.notifier = build_notifier(self.settings.notifications)
        schedules = self._builtin_schedules()
        for name in self._builtin_names:
            self.registry.get(name).schedule = schedules[name]
        logger.info("Cleanup settings reloaded", notifier=type(self.notifier).__name__)
        return self.settings

    def _builtin_schedules(self) -> Dict[str, str]:
        interval = self.settings.schedule.interval
        return {
            'logs': interval,
            'cache': interval,
            'database': interval,
            'temp_files': interval,
            'optimization': self.settings.schedule.optimization_interval,
        }

    def _on_config_changed(self, event: ConfigChangedEvent) -> None:
        if event.key == 'cleanup' or event.key.startswith('cleanup.'):
            self.reload_settings()

    def _register_builtin_rules(self) -> None:
        schedules = self._builtin_schedules()
        builtin = [
            CleanupRule(
                name='logs',
                label='Log file cleanup',
                description='Delete expired log files and truncate oversized ones',
                priority=CleanupPriority.LOW,
                action=self.cleanup_logs,
                schedule=schedules['logs'],
            ),
            CleanupRule(
                name='cache',
                label='Cache cleanup',
                description='Delete expired cache files',
                priority=CleanupPriority.MEDIUM,
                action=self.cleanup_cache,
                schedule=schedules['cache'],
            ),
            CleanupRule(
                name='database',
                label='Database cleanup',
                description='Delete expired sessions, failed task logs, old articles and audit logs',
                priority=CleanupPriority.HIGH,
                action=self.cleanup_database,
                schedule=schedules['database'],
            ),
            CleanupRule(
                name='temp_files',
                label='Temporary file cleanup',
                description='Delete expired temporary files',
                priority=CleanupPriority.MEDIUM,
                action=self.cleanup_temp_files,
                schedule=schedules['temp_files'],
            ),
            CleanupRule(
                name='optimization',
                label='System optimization',
                description='Refresh database statistics and reclaim memory',
                priority=CleanupPriority.LOW,
                action=self.optimize_system,
                schedule=schedules['optimization'],
            ),
        ]
        # rules injected through the registry under a built-in name are left alone
        self._builtin_names = []
        for rule in builtin:
            if rule.name not in self.registry:
                self.registry.register(rule)
                self._builtin_names.append(rule.name)

    async def initialize(self) -> None:
        """Validate settings and create working directories. Raises CleanupConfigError."""
        logger.info("Initializing cleanup service", base_dir=str(self.base_dir))
        try:
            self._validate_settings()
        except CleanupConfigError as e:
            logger.error("Cleanup service initialization failed", error=str(e))
            self.events.error.emit(ErrorEvent(source='cleanup', operation='initialize', error=str(e)))
            raise

        self._create_required_directories()

        if self.settings.schedule.enabled:
            logger.info("Cleanup rules ready for scheduling",
                        schedules={rule.name: rule.schedule for rule in self.registry.rules()},
                        timezone=self.settings.schedule.timezone)

        self._running = True
        logger.info("Cleanup service initialized", rules=self.registry.names())

    def _validate_settings(self) -> None:
        if self.settings.logs.max_age_days <= 0:
            raise CleanupConfigError("Log max age must be greater than 0")
        if self.settings.cache.max_age_hours <= 0:
            raise CleanupConfigError("Cache max age must be greater than 0")
        if not self.settings.temp_files.patterns:
            raise CleanupConfigError("Temp file patterns must not be empty")

    def _create_required_directories(self) -> None:
        for name in REQUIRED_DIRECTORIES:
            directory = self.base_dir / name
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.error("Failed to create directory", directory=str(directory), error=str(e))

    async def stop(self) -> None:
        """Mark the service stopped. Safe to call when already stopped."""
        if self._running:
            logger.info("Cleanup service stopped")
        self._running = False

    async def perform_full_cleanup(self,
                                   force: bool = False,
                                   dry_run: bool = False,
                                   rules: Optional[List[str]] = None) -> CleanupReport:
        """
        Run the requested rules (default: logs, cache, database, temp_files).

        Args:
            force: Run rule sections even when their enabled flag is off.
            dry_run: Report every rule as skipped without invoking it.
            rules: Rule names to run; unknown names are skipped.

        Returns:
            CleanupReport with the summary, per-rule results and a stats snapshot.
        """
        requested = list(rules) if rules is not None else list(DEFAULT_RULES)
        ordered = self.registry.ordered(requested)
        started_at = datetime.now()
        start = time.monotonic()

        logger.info("Starting full cleanup",
                    rules=[rule.name for rule in ordered],
                    force=force,
                    dry_run=dry_run)

        results: Dict[str, RuleResult] = {}
        files_cleaned = records_cleaned = cache_cleared = errors = 0

        for rule in ordered:
            if dry_run:
                result = RuleResult.skipped(rule.name, "Dry run, rule not executed")
                results[rule.name] = result
                self.events.cleanup_completed.emit(CleanupCompletedEvent(
                    operation=rule.name, result=result, cleaned_count=0))
                continue

            try:
                logger.info("Executing cleanup rule", rule=rule.name, label=rule.label)
                counts = await rule.action(force)
            except Exception as e:
                errors += 1
                results[rule.name] = RuleResult.failed(rule.name, str(e))
                logger.error("Cleanup rule failed", rule=rule.name, error=str(e))
                self.events.cleanup_error.emit(CleanupErrorEvent(rule=rule.name, error=str(e)))
                self.events.error.emit(ErrorEvent(source='cleanup', operation='fullCleanup',
                                                  rule=rule.name, error=str(e)))
                continue

            result = RuleResult.succeeded(rule.name, counts)
            results[rule.name] = result
            files_cleaned += counts.files_cleaned
            records_cleaned += counts.records_cleaned
            cache_cleared += counts.cache_cleared
            self.events.cleanup_completed.emit(CleanupCompletedEvent(
                operation=rule.name, result=result, cleaned_count=result.cleaned_count))

        summary = CleanupSummary(
            total_files_cleaned=files_cleaned,
            total_records_cleaned=records_cleaned,
            total_cache_cleared=cache_cleared,
            errors=errors,
            rules=len(ordered),
            dry_run=dry_run,
            started_at=started_at,
            duration_seconds=round(time.monotonic() - start, 3),
        )

        if not dry_run:
            self.stats.record(summary)

        logger.info("Full cleanup completed", **summary.to_dict())

        notifications = self.settings.notifications
        if notifications.enabled and errors >= notifications.threshold:
            await self._send_notification(summary)

        return CleanupReport(summary=summary, results=results, stats=copy.copy(self.stats))

    async def _send_notification(self, summary: CleanupSummary) -> None:
        logger.warning("Cleanup errors reached notification threshold",
                       errors=summary.errors,
                       threshold=self.settings.notifications.threshold)
        try:
            await self.notifier.notify(summary)
        except Exception as e:
            logger.error("Failed to send cleanup notification", error=str(e))

    async def execute_rule(self, name: str, force: bool = False) -> RuleResult:
        """
        Run one rule on demand.

        Raises RuleNotFoundError for unknown names. A failing action is logged,
        reported through the error channels and re-raised.
        """
        if name not in self.registry:
            logger.warning("Unknown cleanup rule requested", rule=name)
        rule = self.registry.get(name)

        logger.info("Executing cleanup rule on demand", rule=name, label=rule.label)
        try:
            counts = await rule.action(force)
        except Exception as e:
            logger.error("Cleanup rule failed", rule=name, error=str(e))
            self.events.cleanup_error.emit(CleanupErrorEvent(rule=name, error=str(e)))
            self.events.error.emit(ErrorEvent(source='cleanup', operation='executeRule',
                                              rule=name, error=str(e)))
            raise

        result = RuleResult.succeeded(name, counts)
        self.events.rule_executed.emit(RuleExecutedEvent(rule=name, result=result))
        return result

    async def cleanup_logs(self, force: bool = False) -> CleanupCounts:
        settings = self.settings.logs
        if not settings.enabled and not force:
            return CleanupCounts(message="Log cleanup disabled")

        logger.info("Cleaning up log files", patterns=settings.patterns)
        result = prune_files(
            self.base_dir,
            settings.patterns,
            max_age=timedelta(days=settings.max_age_days),
            max_size_bytes=int(settings.max_size_mb * 1024 * 1024),
            kind="log file",
        )
        logger.info("Log cleanup completed",
                    deleted=result.deleted,
                    truncated=result.truncated,
                    failed=result.failed)
        return CleanupCounts(
            files_cleaned=result.deleted,
            message=f"Deleted {result.deleted} log files, truncated {result.truncated}",
        )

    async def cleanup_cache(self, force: bool = False) -> CleanupCounts:
        settings = self.settings.cache
        if not settings.enabled and not force:
            return CleanupCounts(message="Cache cleanup disabled")

        logger.info("Cleaning up cache", directories=settings.directories)
        result = prune_directories(
            self.base_dir,
            settings.directories,
            max_age=timedelta(hours=settings.max_age_hours),
        )
        gc.collect()
        logger.info("Cache cleanup completed", cleared=result.deleted, failed=result.failed)
        return CleanupCounts(
            cache_cleared=result.deleted,
            message=f"Cleared {result.deleted} cache entries",
        )

    async def cleanup_database(self, force: bool = False) -> CleanupCounts:
        settings = self.settings.database
        if not settings.enabled and not force:
            return CleanupCounts(message="Database cleanup disabled")

        logger.info("Cleaning up database")
        policies = [
            ('expired_sessions', settings.expired_sessions, db_policies.delete_expired_sessions),
            ('failed_tasks', settings.failed_tasks, db_policies.delete_failed_tasks),
            ('old_articles', settings.old_articles, db_policies.delete_old_articles),
            ('audit_logs', settings.audit_logs, db_policies.delete_audit_logs),
        ]

        total = 0
        for name, policy, delete in policies:
            if not policy.enabled and not force:
                continue
            try:
                total += await delete(self.db, policy)
            except DatabaseError as e:
                logger.error("Database cleanup policy failed", policy=name, error=str(e))
                self.events.error.emit(ErrorEvent(source='cleanup', operation=name,
                                                  rule='database', error=str(e)))

        logger.info("Database cleanup completed", records=total)
        return CleanupCounts(records_cleaned=total, message=f"Deleted {total} database records")

    async def cleanup_temp_files(self, force: bool = False) -> CleanupCounts:
        settings = self.settings.temp_files
        if not settings.enabled and not force:
            return CleanupCounts(message="Temp file cleanup disabled")

        logger.info("Cleaning up temp files", patterns=settings.patterns)
        result = prune_files(
            self.base_dir,
            settings.patterns,
            max_age=timedelta(hours=settings.max_age_hours),
            kind="temp file",
        )
        logger.info("Temp file cleanup completed", deleted=result.deleted, failed=result.failed)
        return CleanupCounts(
            files_cleaned=result.deleted,
            message=f"Deleted {result.deleted} temp files",
        )

    async def optimize_system(self, force: bool = False) -> CleanupCounts:
        logger.info("Starting system optimization")
        await self._optimize_database()
        self._optimize_memory()
        logger.info("System optimization completed")
        return CleanupCounts(message="System optimization completed")

    async def _optimize_database(self) -> None:
        for procedure in ('analyze_tables', 'cleanup_unused_indexes'):
            try:
                await self.db.rpc(procedure)
            except DatabaseError as e:
                logger.warning("Database maintenance procedure failed", procedure=procedure, error=str(e))

        try:
            size = await self.db.rpc('get_database_size')
            if size:
                logger.info("Database size", size_mb=size.get('size'))

            table_sizes = await self.db.rpc('get_table_sizes')
            for table in table_sizes or []:
                logger.debug("Table size",
                             table=table.get('table_name'),
                             rows=table.get('row_count'),
                             size_mb=table.get('size'))
        except DatabaseError as e:
            logger.warning("Database size report failed", error=str(e))

    def _optimize_memory(self) -> None:
        process = psutil.Process()
        before_mb = process.memory_info().rss / (1024 * 1024)
        collected = gc.collect()
        after_mb = process.memory_info().rss / (1024 * 1024)
        logger.debug("Memory reclamation hint issued",
                     collected_objects=collected,
                     rss_before_mb=round(before_mb, 2),
                     rss_after_mb=round(after_mb, 2))

    def reset_stats(self) -> None:
        self.stats = CleanupStats()

    def get_rules(self) -> List[Dict[str, str]]:
        return [rule.describe() for rule in self.registry.rules()]

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self.stats.to_dict(),
            'is_running': self._running,
            'settings': self.settings.model_dump(by_alias=True),
            'rules': self.get_rules(),
        }
