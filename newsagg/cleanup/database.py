"""
Database retention policies.

Each policy issues one delete against its table, filtered by a timestamp
cutoff. Old articles are additionally bounded so that at least keepCount rows
survive.
"""

from datetime import datetime, timedelta
from typing import Optional

import structlog

from ..config.schema import AgePolicy, ArticlePolicy
from ..storage.client import DatabaseClient

logger = structlog.get_logger(__name__)


def _cutoff(days: float, now: Optional[datetime]) -> str:
    return ((now or datetime.now()) - timedelta(days=days)).isoformat()


async def delete_expired_sessions(db: DatabaseClient, policy: AgePolicy,
                                  now: Optional[datetime] = None) -> int:
    result = await (db.table('sessions')
                    .delete(count=True)
                    .lt('created_at', _cutoff(policy.max_age_days, now))
                    .execute())
    count = result.count or 0
    logger.info("Expired sessions deleted", count=count)
    return count


async def delete_failed_tasks(db: DatabaseClient, policy: AgePolicy,
                              now: Optional[datetime] = None) -> int:
    result = await (db.table('task_logs')
                    .delete(count=True)
                    .eq('status', 'failed')
                    .lt('created_at', _cutoff(policy.max_age_days, now))
                    .execute())
    count = result.count or 0
    logger.info("Failed task logs deleted", count=count)
    return count


async def delete_old_articles(db: DatabaseClient, policy: ArticlePolicy,
                              now: Optional[datetime] = None) -> int:
    """
    Delete articles published before the cutoff, oldest first, removing at
    most (total rows - keepCount).
    """
    total = await db.table('articles').select('*', count=True, head=True).execute()
    excess = max(0, (total.count or 0) - policy.keep_count)
    if excess <= 0:
        logger.info("Article count within retention limit", total=total.count, keep_count=policy.keep_count)
        return 0

    result = await (db.table('articles')
                    .delete(count=True)
                    .lt('published_at', _cutoff(policy.max_age_days, now))
                    .order('published_at', ascending=True)
                    .limit(excess)
                    .execute())
    count = result.count or 0
    logger.info("Old articles deleted", count=count, keep_count=policy.keep_count)
    return count


async def delete_audit_logs(db: DatabaseClient, policy: AgePolicy,
                            now: Optional[datetime] = None) -> int:
    result = await (db.table('audit_logs')
                    .delete(count=True)
                    .lt('created_at', _cutoff(policy.max_age_days, now))
                    .execute())
    count = result.count or 0
    logger.info("Audit logs deleted", count=count)
    return count
