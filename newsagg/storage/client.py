"""
Database client used by the maintenance core.

The services talk to the store through a small table-scoped query builder
(select/insert/update/delete with eq/lt filters, ordering, limits and row
counts) plus named remote procedures. SQLiteDatabaseClient executes those
builders against a local SQLite database.
"""

import re
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union

import structlog

from ..exceptions import DatabaseError

logger = structlog.get_logger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_OPERATORS = {
    'eq': '=',
    'lt': '<',
}


@dataclass
class QueryResult:
    """Rows returned by a query and, when requested, the exact row count."""
    data: List[Dict[str, Any]] = field(default_factory=list)
    count: Optional[int] = None


class QueryBuilder:
    """
    Accumulates a single table operation until execute() is awaited.

    Filters, ordering and limits apply to select, update and delete alike.
    """

    def __init__(self, client: "DatabaseClient", table: str):
        self.client = client
        self.table = table
        self.action = 'select'
        self.columns = '*'
        self.want_count = False
        self.head = False
        self.values: Union[Dict[str, Any], List[Dict[str, Any]], None] = None
        self.filters: List[Tuple[str, str, Any]] = []
        self.ordering: Optional[Tuple[str, bool]] = None
        self.row_limit: Optional[int] = None

    def select(self, columns: str = '*', count: bool = False, head: bool = False) -> "QueryBuilder":
        self.action = 'select'
        self.columns = columns
        self.want_count = count
        self.head = head
        return self

    def insert(self, row: Union[Dict[str, Any], List[Dict[str, Any]]]) -> "QueryBuilder":
        self.action = 'insert'
        self.values = row
        return self

    def update(self, values: Dict[str, Any]) -> "QueryBuilder":
        self.action = 'update'
        self.values = values
        return self

    def delete(self, count: bool = False) -> "QueryBuilder":
        self.action = 'delete'
        self.want_count = count
        return self

    def eq(self, column: str, value: Any) -> "QueryBuilder":
        self.filters.append((column, 'eq', value))
        return self

    def lt(self, column: str, value: Any) -> "QueryBuilder":
        self.filters.append((column, 'lt', value))
        return self

    def order(self, column: str, ascending: bool = True) -> "QueryBuilder":
        self.ordering = (column, ascending)
        return self

    def limit(self, n: int) -> "QueryBuilder":
        self.row_limit = int(n)
        return self

    async def execute(self) -> QueryResult:
        return await self.client.execute(self)


class DatabaseClient(ABC):
    """Abstract table store with query builders and remote procedures."""

    def table(self, name: str) -> QueryBuilder:
        return QueryBuilder(self, name)

    @abstractmethod
    async def execute(self, query: QueryBuilder) -> QueryResult:
        """Run an accumulated query."""
        pass

    @abstractmethod
    async def rpc(self, name: str, args: Optional[Dict[str, Any]] = None) -> Any:
        """Invoke a named maintenance or reporting procedure."""
        pass


def _quote(identifier: str) -> str:
    if not _IDENTIFIER.match(identifier):
        raise DatabaseError(f"Invalid identifier: {identifier!r}")
    return f'"{identifier}"'


def _param(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class SQLiteDatabaseClient(DatabaseClient):
    """DatabaseClient backed by a SQLite file."""

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self._procedures: Dict[str, Callable[..., Any]] = {
            'analyze_tables': self._analyze_tables,
            'cleanup_unused_indexes': self._cleanup_unused_indexes,
            'get_database_size': self._get_database_size,
            'get_table_sizes': self._get_table_sizes,
        }

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def register_procedure(self, name: str, fn: Callable[..., Any]) -> None:
        """Register fn(conn, **args) as an rpc-callable procedure."""
        self._procedures[name] = fn

    def ensure_schema(self) -> None:
        """Create the tables the config and cleanup layers work against."""
        with self._connect() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS system_configs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    key TEXT NOT NULL,
                    value TEXT,
                    type TEXT NOT NULL DEFAULT 'string',
                    description TEXT DEFAULT '',
                    environment TEXT NOT NULL DEFAULT 'development',
                    is_sensitive INTEGER NOT NULL DEFAULT 0,
                    updated_at TEXT,
                    UNIQUE (key, environment)
                );
                CREATE TABLE IF NOT EXISTS sessions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT,
                    created_at TEXT NOT NULL,
                    expires_at TEXT
                );
                CREATE TABLE IF NOT EXISTS task_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    task_name TEXT,
                    status TEXT NOT NULL,
                    message TEXT,
                    created_at TEXT NOT NULL
                );
                CREATE TABLE IF NOT EXISTS articles (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT,
                    url TEXT,
                    source TEXT,
                    published_at TEXT NOT NULL,
                    created_at TEXT
                );
                CREATE TABLE IF NOT EXISTS audit_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    action TEXT,
                    actor TEXT,
                    details TEXT,
                    created_at TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_articles_published_at ON articles (published_at);
                CREATE INDEX IF NOT EXISTS idx_task_logs_status ON task_logs (status, created_at);
            """)

    def _where(self, query: QueryBuilder) -> Tuple[str, List[Any]]:
        if not query.filters:
            return "", []
        clauses = []
        params = []
        for column, op, value in query.filters:
            if op not in _OPERATORS:
                raise DatabaseError(f"Unsupported filter operator: {op}")
            clauses.append(f"{_quote(column)} {_OPERATORS[op]} ?")
            params.append(_param(value))
        return " WHERE " + " AND ".join(clauses), params

    def _tail(self, query: QueryBuilder) -> Tuple[str, List[Any]]:
        sql = ""
        params: List[Any] = []
        if query.ordering:
            column, ascending = query.ordering
            sql += f" ORDER BY {_quote(column)} {'ASC' if ascending else 'DESC'}"
        if query.row_limit is not None:
            sql += " LIMIT ?"
            params.append(query.row_limit)
        return sql, params

    def _columns(self, columns: str) -> str:
        if columns.strip() == '*':
            return '*'
        return ", ".join(_quote(c.strip()) for c in columns.split(','))

    async def execute(self, query: QueryBuilder) -> QueryResult:
        table = _quote(query.table)
        try:
            with self._connect() as conn:
                if query.action == 'select':
                    return self._execute_select(conn, table, query)
                if query.action == 'insert':
                    return self._execute_insert(conn, table, query)
                if query.action == 'update':
                    return self._execute_update(conn, table, query)
                if query.action == 'delete':
                    return self._execute_delete(conn, table, query)
                raise DatabaseError(f"Unsupported action: {query.action}")
        except sqlite3.Error as e:
            logger.error("Database query failed",
                         table=query.table,
                         action=query.action,
                         error=str(e))
            raise DatabaseError(str(e), operation=f"{query.action}:{query.table}") from e

    def _execute_select(self, conn: sqlite3.Connection, table: str, query: QueryBuilder) -> QueryResult:
        where, params = self._where(query)
        count = None
        if query.want_count:
            count = conn.execute(f"SELECT COUNT(*) FROM {table}{where}", params).fetchone()[0]
        if query.head:
            return QueryResult(data=[], count=count)
        tail, tail_params = self._tail(query)
        cursor = conn.execute(f"SELECT {self._columns(query.columns)} FROM {table}{where}{tail}",
                              params + tail_params)
        return QueryResult(data=[dict(row) for row in cursor.fetchall()], count=count)

    def _execute_insert(self, conn: sqlite3.Connection, table: str, query: QueryBuilder) -> QueryResult:
        rows = query.values if isinstance(query.values, list) else [query.values]
        inserted = 0
        for row in rows:
            if not row:
                continue
            columns = ", ".join(_quote(c) for c in row)
            placeholders = ", ".join("?" for _ in row)
            conn.execute(f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
                         [_param(v) for v in row.values()])
            inserted += 1
        return QueryResult(data=[dict(r) for r in rows if r], count=inserted)

    def _execute_update(self, conn: sqlite3.Connection, table: str, query: QueryBuilder) -> QueryResult:
        values = query.values or {}
        if not values:
            raise DatabaseError("Update requires at least one column", operation="update")
        assignments = ", ".join(f"{_quote(c)} = ?" for c in values)
        where, params = self._where(query)
        cursor = conn.execute(f"UPDATE {table} SET {assignments}{where}",
                              [_param(v) for v in values.values()] + params)
        return QueryResult(data=[], count=cursor.rowcount)

    def _execute_delete(self, conn: sqlite3.Connection, table: str, query: QueryBuilder) -> QueryResult:
        where, params = self._where(query)
        if query.ordering or query.row_limit is not None:
            # SQLite has no ORDER BY/LIMIT on DELETE by default, so select the victims first
            tail, tail_params = self._tail(query)
            sql = f"DELETE FROM {table} WHERE rowid IN (SELECT rowid FROM {table}{where}{tail})"
            params = params + tail_params
        else:
            sql = f"DELETE FROM {table}{where}"
        cursor = conn.execute(sql, params)
        return QueryResult(data=[], count=cursor.rowcount if query.want_count else None)

    async def rpc(self, name: str, args: Optional[Dict[str, Any]] = None) -> Any:
        procedure = self._procedures.get(name)
        if procedure is None:
            raise DatabaseError(f"Unknown procedure: {name}", operation=f"rpc:{name}")
        try:
            with self._connect() as conn:
                return procedure(conn, **(args or {}))
        except sqlite3.Error as e:
            logger.error("Database procedure failed", procedure=name, error=str(e))
            raise DatabaseError(str(e), operation=f"rpc:{name}") from e

    def _user_tables(self, conn: sqlite3.Connection) -> List[str]:
        cursor = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )
        return [row[0] for row in cursor.fetchall()]

    def _analyze_tables(self, conn: sqlite3.Connection) -> bool:
        conn.execute("ANALYZE")
        return True

    def _cleanup_unused_indexes(self, conn: sqlite3.Connection) -> bool:
        conn.execute("PRAGMA optimize")
        return True

    def _get_database_size(self, conn: sqlite3.Connection) -> Dict[str, float]:
        page_count = conn.execute("PRAGMA page_count").fetchone()[0]
        page_size = conn.execute("PRAGMA page_size").fetchone()[0]
        return {'size': round(page_count * page_size / 1024 / 1024, 2)}

    def _get_table_sizes(self, conn: sqlite3.Connection) -> List[Dict[str, Any]]:
        page_size = conn.execute("PRAGMA page_size").fetchone()[0]
        sizes = []
        for name in self._user_tables(conn):
            row_count = conn.execute(f"SELECT COUNT(*) FROM {_quote(name)}").fetchone()[0]
            try:
                pages = conn.execute("SELECT COUNT(*) FROM dbstat WHERE name = ?", (name,)).fetchone()[0]
                size_bytes = pages * page_size
            except sqlite3.OperationalError:
                # dbstat is an optional compile-time extension; rough estimate instead
                size_bytes = row_count * 100
            sizes.append({
                'table_name': name,
                'row_count': row_count,
                'size': round(size_bytes / 1024 / 1024, 2),
            })
        return sizes
