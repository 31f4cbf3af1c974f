"""
Database persistence for configuration overrides.

Each override is one row of the system_configs table holding the dotted key,
the value as a string, and a type tag used to decode it again.
"""

import json
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import structlog

from ..storage.client import DatabaseClient

logger = structlog.get_logger(__name__)

TABLE = 'system_configs'


def encode_value(value: Any) -> Tuple[str, str]:
    """Return (string value, type tag) for a config value."""
    if isinstance(value, bool):
        return ('true' if value else 'false'), 'boolean'
    if isinstance(value, (int, float)):
        return str(value), 'number'
    if isinstance(value, str):
        return value, 'string'
    if isinstance(value, (list, tuple)):
        return json.dumps(list(value)), 'array'
    return json.dumps(value), 'json'


def decode_value(raw: Optional[str], type_tag: str) -> Any:
    """Inverse of encode_value. Raises ValueError for undecodable rows."""
    if raw is None:
        return None
    if type_tag == 'number':
        if any(c in raw for c in '.eE'):
            return float(raw)
        return int(raw)
    if type_tag == 'boolean':
        return raw.lower() == 'true'
    if type_tag in ('json', 'array'):
        return json.loads(raw)
    return raw


SENSITIVE_TOKENS = {'key', 'secret', 'password', 'pass', 'token'}


def is_sensitive_key(key: str) -> bool:
    """True when the last segment of a dotted key names a credential, e.g. apiKey or smtp_password."""
    name = key.split('.')[-1]
    tokens = re.sub(r'([a-z0-9])([A-Z])', r'\1_\2', name).lower().split('_')
    return any(token in SENSITIVE_TOKENS for token in tokens)


class ConfigStore:
    """Reads and writes config override rows for one environment."""

    def __init__(self, db: DatabaseClient, environment: str = 'development'):
        self.db = db
        self.environment = environment

    async def get_all(self) -> List[Dict[str, Any]]:
        result = await (self.db.table(TABLE)
                        .select('key, value, type')
                        .eq('environment', self.environment)
                        .order('key')
                        .execute())
        return result.data

    async def load_overrides(self) -> Dict[str, Any]:
        """Decode every stored row; rows that fail to decode are skipped."""
        overrides = {}
        for row in await self.get_all():
            try:
                overrides[row['key']] = decode_value(row['value'], row['type'])
            except (ValueError, TypeError) as e:
                logger.warning("Skipping undecodable config override",
                               key=row.get('key'),
                               type=row.get('type'),
                               error=str(e))
        return overrides

    async def set(self, key: str, value: Any, description: str = '') -> None:
        raw, type_tag = encode_value(value)
        now = datetime.now().isoformat()

        existing = await (self.db.table(TABLE)
                          .select('id')
                          .eq('key', key)
                          .eq('environment', self.environment)
                          .execute())
        if existing.data:
            await (self.db.table(TABLE)
                   .update({'value': raw, 'type': type_tag, 'description': description, 'updated_at': now})
                   .eq('key', key)
                   .eq('environment', self.environment)
                   .execute())
        else:
            await self.db.table(TABLE).insert({
                'key': key,
                'value': raw,
                'type': type_tag,
                'description': description,
                'environment': self.environment,
                'is_sensitive': 1 if is_sensitive_key(key) else 0,
                'updated_at': now,
            }).execute()

        logger.debug("Config override persisted", key=key, type=type_tag)

    async def delete(self, key: str) -> int:
        result = await (self.db.table(TABLE)
                        .delete(count=True)
                        .eq('key', key)
                        .eq('environment', self.environment)
                        .execute())
        return result.count or 0

    async def delete_prefix(self, key: str) -> List[str]:
        """Delete every row stored beneath key (``key.*``). Returns the deleted keys."""
        prefix = key + '.'
        deleted = []
        for row in await self.get_all():
            if row['key'].startswith(prefix):
                await self.delete(row['key'])
                deleted.append(row['key'])
        return deleted
