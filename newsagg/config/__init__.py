"""
Configuration management: defaults, file sources, persisted overrides and
per-section schema validation merged into one tree.
"""

from .manager import ConfigManager
from .schema import CleanupSettings, SECTION_SCHEMAS, validate_section
from .sources import ConfigSource, default_sources
from .store import ConfigStore
from .tree import deep_merge

__all__ = [
    'ConfigManager',
    'ConfigSource',
    'ConfigStore',
    'CleanupSettings',
    'SECTION_SCHEMAS',
    'default_sources',
    'deep_merge',
    'validate_section'
]
