"""
Exception hierarchy for the newsagg maintenance core.
"""

from typing import List, Optional


class NewsAggError(Exception):
    """Base class for all newsagg errors."""
    pass


class ConfigError(NewsAggError):
    """Raised for configuration management failures."""
    pass


class ValidationError(ConfigError):
    """Raised when a configuration value fails its section schema."""

    def __init__(self, key: str, errors: List[str]):
        self.key = key
        self.errors = list(errors)
        super().__init__(f"Validation failed for {key}: {', '.join(self.errors)}")


class ConfigLoadError(ConfigError):
    """Raised when a required configuration source is malformed."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to load config source {source}: {reason}")


class CleanupError(NewsAggError):
    """Raised for cleanup orchestration failures."""
    pass


class RuleNotFoundError(CleanupError):
    """Raised when a cleanup rule name is not registered."""

    def __init__(self, rule: str):
        self.rule = rule
        super().__init__(f"Cleanup rule not found: {rule}")


class CleanupConfigError(CleanupError):
    """Raised when cleanup settings are unusable."""
    pass


class DatabaseError(NewsAggError):
    """Raised when the database client fails to execute a query or procedure."""

    def __init__(self, message: str, operation: Optional[str] = None):
        self.operation = operation
        super().__init__(message)
