"""
Data models for the cleanup system.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional


class CleanupPriority(Enum):
    """Execution tiers; rules run high first, then medium, then low."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    CleanupPriority.HIGH: 0,
    CleanupPriority.MEDIUM: 1,
    CleanupPriority.LOW: 2,
}


class RuleStatus(Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass
class CleanupCounts:
    """What a single rule action removed."""
    files_cleaned: int = 0
    records_cleaned: int = 0
    cache_cleared: int = 0
    message: str = ""

    @property
    def total(self) -> int:
        return self.files_cleaned + self.records_cleaned + self.cache_cleared


# Called with the force flag; returns what was removed
RuleAction = Callable[[bool], Awaitable[CleanupCounts]]


@dataclass
class CleanupRule:
    """A named, independently invocable maintenance action."""
    name: str
    label: str
    description: str
    priority: CleanupPriority
    action: RuleAction
    schedule: str

    def describe(self) -> Dict[str, str]:
        return {
            'name': self.name,
            'label': self.label,
            'description': self.description,
            'priority': self.priority.value,
            'schedule': self.schedule,
        }


@dataclass
class RuleResult:
    """Outcome of one rule in one run: counts on success or skip, error otherwise."""
    rule: str
    status: RuleStatus
    counts: Optional[CleanupCounts] = None
    error: Optional[str] = None

    @classmethod
    def succeeded(cls, rule: str, counts: CleanupCounts) -> "RuleResult":
        return cls(rule=rule, status=RuleStatus.SUCCESS, counts=counts)

    @classmethod
    def skipped(cls, rule: str, message: str) -> "RuleResult":
        return cls(rule=rule, status=RuleStatus.SKIPPED, counts=CleanupCounts(message=message))

    @classmethod
    def failed(cls, rule: str, error: str) -> "RuleResult":
        return cls(rule=rule, status=RuleStatus.ERROR, error=error)

    @property
    def cleaned_count(self) -> int:
        if self.counts is None:
            return 0
        return self.counts.files_cleaned or self.counts.records_cleaned or self.counts.cache_cleared

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'rule': self.rule, 'status': self.status.value}
        if self.counts is not None:
            data.update(asdict(self.counts))
        if self.error is not None:
            data['error'] = self.error
        return data


@dataclass
class CleanupSummary:
    """Aggregated totals for one full cleanup run."""
    total_files_cleaned: int
    total_records_cleaned: int
    total_cache_cleared: int
    errors: int
    rules: int
    dry_run: bool
    started_at: datetime
    duration_seconds: float

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['started_at'] = self.started_at.isoformat()
        return data


@dataclass
class CleanupStats:
    """Running totals across all full cleanup runs of this process."""
    total_cleanups: int = 0
    files_cleaned: int = 0
    records_cleaned: int = 0
    cache_cleared: int = 0
    errors: int = 0
    last_cleanup: Optional[datetime] = None

    def record(self, summary: CleanupSummary) -> None:
        self.total_cleanups += 1
        self.files_cleaned += summary.total_files_cleaned
        self.records_cleaned += summary.total_records_cleaned
        self.cache_cleared += summary.total_cache_cleared
        self.errors += summary.errors
        self.last_cleanup = summary.started_at

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['last_cleanup'] = self.last_cleanup.isoformat() if self.last_cleanup else None
        return data


@dataclass
class CleanupReport:
    """Return value of a full cleanup: summary, per-rule results and a stats snapshot."""
    summary: CleanupSummary
    results: Dict[str, RuleResult] = field(default_factory=dict)
    stats: CleanupStats = field(default_factory=CleanupStats)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'summary': self.summary.to_dict(),
            'results': {name: result.to_dict() for name, result in self.results.items()},
            'stats': self.stats.to_dict(),
        }
