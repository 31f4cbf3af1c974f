"""
Database access for the maintenance core.
"""

from .client import DatabaseClient, QueryBuilder, QueryResult, SQLiteDatabaseClient

__all__ = [
    'DatabaseClient',
    'QueryBuilder',
    'QueryResult',
    'SQLiteDatabaseClient'
]
