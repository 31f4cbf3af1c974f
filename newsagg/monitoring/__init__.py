"""
Monitoring hooks for the maintenance core.
"""

from .metrics import CleanupMetrics, ConfigMetrics

__all__ = [
    'CleanupMetrics',
    'ConfigMetrics'
]
