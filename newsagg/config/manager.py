"""
Configuration manager for the news aggregation backend.

The manager owns one in-memory configuration tree built, lowest precedence
first, from:

1. built-in defaults
2. file sources (.env files, JSON and YAML documents)
3. overrides persisted in the system_configs table and set at runtime

It validates writes against per-section schemas, persists overrides, watches
file sources for changes and periodically re-validates the whole tree.

Writes are not serialized. Callers that set the same key from several tasks
must coordinate themselves; a background file reload can interleave with a
set() between awaits.
"""

import asyncio
import copy
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, Union

import structlog

from ..events import (
    ConfigChangedEvent, ConfigEvents, ConfigFileChangedEvent, ConfigResetEvent,
    ConfigValidationErrorsEvent, ErrorEvent
)
from ..exceptions import ConfigLoadError, DatabaseError, ValidationError
from .defaults import get_default_config
from .schema import SECTION_SCHEMAS, SectionModel, validate_section
from .sources import ConfigSource, default_sources, load_source
from .store import ConfigStore, is_sensitive_key
from .tree import count_leaves, deep_merge, get_path, set_path, split_key

logger = structlog.get_logger(__name__)

MASK = '***'


def _mask(tree: Dict[str, Any]) -> Dict[str, Any]:
    masked = {}
    for key, value in tree.items():
        if isinstance(value, dict):
            masked[key] = _mask(value)
        elif is_sensitive_key(key) and value not in (None, ''):
            masked[key] = MASK
        else:
            masked[key] = value
    return masked


class ConfigManager:
    """
    Single authoritative configuration tree with validation and change events.

    Subscribe to ``manager.events.<channel>`` to observe changes.
    """

    def __init__(self,
                 store: Optional[ConfigStore] = None,
                 sources: Optional[List[ConfigSource]] = None,
                 base_dir: Union[str, Path] = ".",
                 environment: Optional[str] = None,
                 schemas: Optional[Dict[str, Type[SectionModel]]] = None,
                 defaults: Optional[Dict[str, Any]] = None,
                 watch_interval: float = 5.0,
                 validation_interval: float = 60.0):
        self.environment = environment or os.getenv('APP_ENV', 'development')
        self.store = store
        self.sources = sources if sources is not None else default_sources(base_dir, self.environment)
        self.schemas = schemas if schemas is not None else SECTION_SCHEMAS
        self.watch_interval = watch_interval
        self.validation_interval = validation_interval
        self.events = ConfigEvents()

        self._defaults = defaults if defaults is not None else get_default_config()
        self._config: Dict[str, Any] = copy.deepcopy(self._defaults)
        self._file_layers: Dict[str, Dict[str, Any]] = {}
        self._overrides: Dict[str, Any] = {}
        self._updated_at: Dict[str, datetime] = {}
        self._mtimes: Dict[str, float] = {}
        self._tasks: List[asyncio.Task] = []
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def initialize(self, watch: bool = True) -> None:
        """
        Build the tree from defaults, file sources and persisted overrides.

        Raises ConfigLoadError when a required source is malformed or the
        override table cannot be read.
        """
        logger.info("Initializing config manager",
                    environment=self.environment,
                    sources=len(self.sources))
        try:
            self._file_layers = {}
            self._overrides = {}
            self._load_files()
            await self._load_overrides()
            self._rebuild()
            self._record_mtimes()
        except ConfigLoadError as e:
            logger.error("Config manager initialization failed", source=e.source, error=e.reason)
            self.events.error.emit(ErrorEvent(source='config', operation='initialize', error=str(e)))
            raise

        if watch:
            self._start_background_tasks()

        self._running = True
        logger.info("Config manager initialized",
                    keys=count_leaves(self._config),
                    file_sources=len(self._file_layers),
                    overrides=len(self._overrides))

    def _read_source(self, source: ConfigSource) -> Optional[Dict[str, Any]]:
        try:
            layer = load_source(source)
        except ConfigLoadError as e:
            if source.required:
                raise
            logger.warning("Skipping malformed config source", source=source.name, error=e.reason)
            return None
        if layer is None:
            logger.warning("Config source not found, skipping", source=source.name)
        return layer

    def _load_files(self) -> None:
        for source in self.sources:
            layer = self._read_source(source)
            if layer is None:
                self._file_layers.pop(source.name, None)
                continue
            self._file_layers[source.name] = layer
            logger.info("Config source loaded", source=source.name, format=source.format)

    async def _load_overrides(self) -> None:
        if self.store is None:
            return
        try:
            overrides = await self.store.load_overrides()
        except DatabaseError as e:
            raise ConfigLoadError('database', str(e)) from e
        for key, value in overrides.items():
            self._overrides[key] = value
            logger.info("Config override loaded", key=key)

    def _rebuild(self) -> None:
        tree = copy.deepcopy(self._defaults)
        for source in self.sources:
            layer = self._file_layers.get(source.name)
            if layer is not None:
                deep_merge(tree, copy.deepcopy(layer))
        for key, value in self._overrides.items():
            set_path(tree, key, copy.deepcopy(value))
        self._config = tree

    def _record_mtimes(self) -> None:
        self._mtimes = {}
        for source in self.sources:
            if source.watched and source.path.exists():
                self._mtimes[source.name] = source.path.stat().st_mtime

    def get(self, key: str, fallback: Any = None) -> Any:
        """Return the value at a dotted key, or fallback when any segment is absent."""
        return get_path(self._config, key, fallback)

    def get_all(self, include_sensitive: bool = True) -> Dict[str, Any]:
        tree = copy.deepcopy(self._config)
        return tree if include_sensitive else _mask(tree)

    def validate(self, key: str, value: Any) -> List[str]:
        """Violations that writing value at key would introduce."""
        parts = split_key(key)
        if not parts:
            return ["Config key must not be empty"]
        section = parts[0]
        if section not in self.schemas:
            return []

        if len(parts) == 1:
            candidate = value
        else:
            current = self.get(section)
            candidate = copy.deepcopy(current) if isinstance(current, dict) else {}
            set_path(candidate, ".".join(parts[1:]), copy.deepcopy(value))

        return validate_section(section, candidate, self.schemas, scope=".".join(parts))

    async def set(self, key: str, value: Any,
                  persist: bool = True,
                  validate: bool = True,
                  emit_event: bool = True) -> None:
        """
        Validate, persist, then apply a config value.

        Raises ValidationError without touching the tree or the store when the
        value violates its section schema. Store failures propagate and leave
        the tree unchanged.
        """
        if validate:
            errors = self.validate(key, value)
            if errors:
                logger.warning("Config validation failed", key=key, errors=errors)
                raise ValidationError(key, errors)

        if persist and self.store is not None:
            try:
                await self.store.set(key, value)
                # child rows would otherwise shadow the new value on the next load
                await self.store.delete_prefix(key)
            except DatabaseError as e:
                logger.error("Failed to persist config override", key=key, error=str(e))
                self.events.error.emit(ErrorEvent(source='config', operation='set', error=str(e)))
                raise

        set_path(self._config, key, copy.deepcopy(value))
        for existing in [k for k in self._overrides if k == key or k.startswith(key + '.')]:
            del self._overrides[existing]
        self._overrides[key] = copy.deepcopy(value)
        self._updated_at[key] = datetime.now()

        if emit_event:
            self.events.config_changed.emit(ConfigChangedEvent(key=key, value=copy.deepcopy(value)))

        logger.info("Config updated", key=key, persisted=persist and self.store is not None)

    async def reset(self, key: str, persist: bool = True) -> None:
        """
        Drop the override for key (and any beneath it) and rebuild from files
        and defaults.
        """
        affected = [k for k in self._overrides if k == key or k.startswith(key + '.')]

        if persist and self.store is not None:
            try:
                await self.store.delete(key)
                await self.store.delete_prefix(key)
            except DatabaseError as e:
                logger.error("Failed to delete config override", key=key, error=str(e))
                self.events.error.emit(ErrorEvent(source='config', operation='reset', error=str(e)))
                raise

        for existing in affected:
            del self._overrides[existing]
            self._updated_at.pop(existing, None)

        self._load_files()
        self._rebuild()

        self.events.config_reset.emit(ConfigResetEvent(key=key))
        logger.info("Config reset", key=key, overrides_removed=len(affected))

    def validate_all(self) -> List[str]:
        """Re-validate every schema-bound section. Detection only, nothing is reverted."""
        errors: List[str] = []
        for section in self.schemas:
            if section not in self._config:
                continue
            errors.extend(validate_section(section, self._config[section], self.schemas))

        if errors:
            logger.warning("Config validation errors detected", errors=errors)
            self.events.config_validation_errors.emit(ConfigValidationErrorsEvent(errors=errors))
        return errors

    async def check_file_changes(self) -> List[str]:
        """Reload watched sources whose modification time moved. Returns their names."""
        changed = []
        for source in self.sources:
            if not source.watched:
                continue

            if not source.path.exists():
                if self._mtimes.pop(source.name, None) is not None:
                    self._file_layers.pop(source.name, None)
                    changed.append(source.name)
                continue

            mtime = source.path.stat().st_mtime
            if self._mtimes.get(source.name) == mtime:
                continue
            self._mtimes[source.name] = mtime

            try:
                layer = load_source(source)
            except ConfigLoadError as e:
                logger.warning("Changed config source is malformed, keeping previous contents",
                               source=source.name, error=e.reason)
                self.events.error.emit(ErrorEvent(source='config', operation='reload', error=str(e)))
                continue

            if layer is not None:
                self._file_layers[source.name] = layer
            changed.append(source.name)

        for name in changed:
            logger.info("Config source reloaded", source=name)
        if changed:
            self._rebuild()
            for name in changed:
                self.events.config_file_changed.emit(ConfigFileChangedEvent(file=name))
        return changed

    def _start_background_tasks(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, background config tasks not started")
            return
        self._tasks.append(loop.create_task(self._watch_loop()))
        self._tasks.append(loop.create_task(self._validation_loop()))

    async def _watch_loop(self) -> None:
        while True:
            await asyncio.sleep(self.watch_interval)
            try:
                await self.check_file_changes()
            except Exception as e:
                logger.warning("Config file change check failed", error=str(e))

    async def _validation_loop(self) -> None:
        while True:
            await asyncio.sleep(self.validation_interval)
            try:
                self.validate_all()
            except Exception as e:
                logger.warning("Periodic config validation failed", error=str(e))

    async def stop(self) -> None:
        """Cancel background tasks. Safe to call when already stopped."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self._running:
            logger.info("Config manager stopped")
        self._running = False

    def get_stats(self) -> Dict[str, Any]:
        last_updated = max(self._updated_at.values()) if self._updated_at else None
        return {
            'config_count': count_leaves(self._config),
            'override_count': len(self._overrides),
            'watched_files': len(self._mtimes),
            'is_running': self._running,
            'last_updated': last_updated.isoformat() if last_updated else None,
        }
