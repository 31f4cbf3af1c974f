"""
Per-section configuration schemas.

Each schema-bound top-level section of the config tree has a pydantic model.
Keys in the tree are camelCase, so models accept their camelCase aliases.
Models validate strictly (no string to number coercion) and tolerate keys they
do not declare.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel


class SectionModel(BaseModel):
    """Base for config section models."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        strict=True,
        extra='allow',
    )


class RSSConfig(SectionModel):
    max_concurrent_fetches: int = Field(ge=1, le=20)
    default_timeout: int = Field(ge=5000, le=120000)
    max_retries: int = Field(ge=0, le=10)
    retry_delay: Optional[Annotated[int, Field(ge=100, le=10000)]] = None
    max_content_length: Optional[Annotated[int, Field(ge=1000, le=100000)]] = None


class NewsAPIConfig(SectionModel):
    enabled: bool
    api_key: str = Field(min_length=10)
    articles_per_page: Optional[Annotated[int, Field(ge=1, le=100)]] = None


class ServiceCredentials(SectionModel):
    enabled: bool = False
    api_key: Optional[str] = None


class TranslationConfig(SectionModel):
    enabled: bool
    default_service: Literal['openai', 'google', 'baidu']
    services: Optional[Dict[str, ServiceCredentials]] = None


class AIConfig(SectionModel):
    enabled: bool
    default_service: Literal['openai', 'anthropic']


class LoggingConfig(SectionModel):
    level: Literal['debug', 'info', 'warning', 'error', 'critical'] = 'info'
    format: Literal['json', 'console'] = 'json'
    file: Optional[str] = None


class LogsCleanupConfig(SectionModel):
    enabled: bool = True
    max_age_days: float = Field(default=7, gt=0)
    max_size_mb: float = Field(default=100, gt=0)
    patterns: List[str] = Field(default_factory=lambda: ['logs/*.log', '*.log'])


class CacheCleanupConfig(SectionModel):
    enabled: bool = True
    max_age_hours: float = Field(default=24, gt=0)
    directories: List[str] = Field(default_factory=lambda: ['cache', 'temp'])


class AgePolicy(SectionModel):
    enabled: bool = True
    max_age_days: float = Field(default=30, gt=0)


class ArticlePolicy(AgePolicy):
    max_age_days: float = Field(default=90, gt=0)
    keep_count: int = Field(default=10000, ge=0)


class DatabaseCleanupConfig(SectionModel):
    enabled: bool = True
    expired_sessions: AgePolicy = Field(default_factory=lambda: AgePolicy(max_age_days=30))
    failed_tasks: AgePolicy = Field(default_factory=lambda: AgePolicy(max_age_days=7))
    old_articles: ArticlePolicy = Field(default_factory=ArticlePolicy)
    audit_logs: AgePolicy = Field(default_factory=lambda: AgePolicy(max_age_days=30))


class TempFilesCleanupConfig(SectionModel):
    enabled: bool = True
    max_age_hours: float = Field(default=24, gt=0)
    patterns: List[str] = Field(default_factory=lambda: ['temp/**/*', 'tmp/**/*', '*.tmp'])


class CleanupScheduleConfig(SectionModel):
    enabled: bool = True
    interval: str = '0 2 * * *'
    optimization_interval: str = '0 3 * * 0'
    timezone: str = 'Asia/Shanghai'


class CleanupNotificationConfig(SectionModel):
    enabled: bool = True
    webhook_url: Optional[str] = None
    threshold: int = Field(default=10, ge=1)


class CleanupSettings(SectionModel):
    """Thresholds and switches read by the cleanup service."""
    logs: LogsCleanupConfig = Field(default_factory=LogsCleanupConfig)
    cache: CacheCleanupConfig = Field(default_factory=CacheCleanupConfig)
    database: DatabaseCleanupConfig = Field(default_factory=DatabaseCleanupConfig)
    temp_files: TempFilesCleanupConfig = Field(default_factory=TempFilesCleanupConfig)
    schedule: CleanupScheduleConfig = Field(default_factory=CleanupScheduleConfig)
    notifications: CleanupNotificationConfig = Field(default_factory=CleanupNotificationConfig)


SECTION_SCHEMAS: Dict[str, Type[SectionModel]] = {
    'rss': RSSConfig,
    'newsapi': NewsAPIConfig,
    'translation': TranslationConfig,
    'ai': AIConfig,
    'logging': LoggingConfig,
    'cleanup': CleanupSettings,
}


def format_errors(section: str, error: PydanticValidationError) -> List[Tuple[str, str]]:
    """Flatten a pydantic error into (dotted path, message) pairs."""
    violations = []
    for item in error.errors():
        location = ".".join(str(part) for part in item['loc'])
        path = f"{section}.{location}" if location else section
        violations.append((path, item['msg']))
    return violations


def _in_scope(path: str, scope: Optional[str]) -> bool:
    if scope is None:
        return True
    return path == scope or path.startswith(scope + '.')


def validate_section(section: str, data: Any,
                     schemas: Optional[Dict[str, Type[SectionModel]]] = None,
                     scope: Optional[str] = None) -> List[str]:
    """
    Validate one section's data against its schema.

    Returns a list of human-readable violations; empty when the data is valid
    or when the section has no schema. With scope set to a dotted key, only
    violations at or beneath that key are reported.
    """
    schema = (schemas if schemas is not None else SECTION_SCHEMAS).get(section)
    if schema is None:
        return []
    if not isinstance(data, dict):
        return [f"{section}: must be an object"]
    try:
        schema.model_validate(data)
    except PydanticValidationError as e:
        return [f"{path}: {message}" for path, message in format_errors(section, e)
                if _in_scope(path, scope)]
    return []
