"""
Filesystem pruning used by the log, cache and temp-file cleanup rules.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class PruneResult:
    deleted: int = 0
    truncated: int = 0
    failed: int = 0


def expand_patterns(base_dir: Union[str, Path], patterns: Iterable[str]) -> Iterator[Path]:
    """Yield the regular files matching any glob pattern, each at most once."""
    base = Path(base_dir)
    seen = set()
    for pattern in patterns:
        for path in sorted(base.glob(pattern)):
            if path in seen or not path.is_file():
                continue
            seen.add(path)
            yield path


def truncate_to_newest_half(path: Path) -> int:
    """
    Keep the newest floor(n/2) lines of a text file, n counted by splitting on newlines.

    A single-line file is left as it is. Returns the number of lines kept.
    """
    content = path.read_text(encoding='utf-8', errors='replace')
    lines = content.split('\n')
    keep = len(lines) // 2
    if keep == 0:
        return len(lines)
    path.write_text('\n'.join(lines[len(lines) - keep:]), encoding='utf-8')
    return keep


def prune_files(base_dir: Union[str, Path],
                patterns: Iterable[str],
                max_age: timedelta,
                max_size_bytes: Optional[int] = None,
                kind: str = "file",
                now: Optional[datetime] = None) -> PruneResult:
    """
    Delete files older than max_age.

    When max_size_bytes is given, younger files above that size are truncated
    to their newest half instead of being deleted. A file that cannot be
    processed is logged and skipped.
    """
    cutoff = (now or datetime.now()) - max_age
    result = PruneResult()

    for path in expand_patterns(base_dir, patterns):
        try:
            stat = path.stat()
            if datetime.fromtimestamp(stat.st_mtime) < cutoff:
                path.unlink()
                result.deleted += 1
                logger.debug(f"Deleted {kind}", path=str(path))
                continue

            if max_size_bytes is not None and stat.st_size > max_size_bytes:
                kept = truncate_to_newest_half(path)
                result.truncated += 1
                logger.debug(f"Truncated {kind}", path=str(path), lines_kept=kept)
        except OSError as e:
            result.failed += 1
            logger.error(f"Failed to process {kind}", path=str(path), error=str(e))

    return result


def prune_directories(base_dir: Union[str, Path],
                      directories: Iterable[str],
                      max_age: timedelta,
                      now: Optional[datetime] = None) -> PruneResult:
    """Recursively delete files older than max_age under each directory."""
    patterns: List[str] = [f"{directory.rstrip('/')}/**/*" for directory in directories]
    return prune_files(base_dir, patterns, max_age, kind="cache file", now=now)
