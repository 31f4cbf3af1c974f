"""
Unit tests for persisted config overrides.
"""

import pytest

from newsagg.config.store import ConfigStore, decode_value, encode_value, is_sensitive_key


class TestValueEncoding:
    """Test type-tagged string encoding."""

    def test_encode_tags(self):
        assert encode_value(True) == ('true', 'boolean')
        assert encode_value(12) == ('12', 'number')
        assert encode_value('text') == ('text', 'string')
        assert encode_value(['a']) == ('["a"]', 'array')
        assert encode_value({'a': 1}) == ('{"a": 1}', 'json')

    def test_decode(self):
        assert decode_value('false', 'boolean') is False
        assert decode_value('2.5', 'number') == 2.5
        assert decode_value('7', 'number') == 7
        assert decode_value('{"a": [1]}', 'json') == {'a': [1]}
        assert decode_value(None, 'string') is None

    def test_decode_invalid_number(self):
        with pytest.raises(ValueError):
            decode_value('seven', 'number')

    def test_sensitive_keys(self):
        assert is_sensitive_key('newsapi.apiKey')
        assert is_sensitive_key('translation.services.baidu.secretKey')
        assert is_sensitive_key('email.providers.smtp.auth.pass')
        assert not is_sensitive_key('cache.maxSize')
        assert not is_sensitive_key('email.providers.smtp.host')


class TestConfigStore:
    """Test the system_configs table wrapper."""

    @pytest.mark.asyncio
    async def test_set_inserts_then_updates(self, db):
        store = ConfigStore(db, environment='test')
        await store.set('rss.maxRetries', 4)
        await store.set('rss.maxRetries', 6)

        rows = await store.get_all()
        assert rows == [{'key': 'rss.maxRetries', 'value': '6', 'type': 'number'}]
        assert await store.load_overrides() == {'rss.maxRetries': 6}

    @pytest.mark.asyncio
    async def test_environments_are_isolated(self, db):
        await ConfigStore(db, environment='production').set('logging.level', 'warning')
        assert await ConfigStore(db, environment='test').load_overrides() == {}

    @pytest.mark.asyncio
    async def test_sensitive_flag_recorded(self, db):
        store = ConfigStore(db, environment='test')
        await store.set('newsapi.apiKey', 'abcdefghijkl')
        result = await db.table('system_configs').select('is_sensitive').execute()
        assert result.data == [{'is_sensitive': 1}]

    @pytest.mark.asyncio
    async def test_undecodable_rows_are_skipped(self, db):
        await db.table('system_configs').insert({
            'key': 'broken', 'value': '{oops', 'type': 'json', 'environment': 'test'
        }).execute()
        store = ConfigStore(db, environment='test')
        await store.set('cache.ttl', 1000)
        assert await store.load_overrides() == {'cache.ttl': 1000}

    @pytest.mark.asyncio
    async def test_delete(self, db):
        store = ConfigStore(db, environment='test')
        await store.set('cache.ttl', 1000)
        assert await store.delete('cache.ttl') == 1
        assert await store.delete('cache.ttl') == 0

    @pytest.mark.asyncio
    async def test_delete_prefix(self, db):
        store = ConfigStore(db, environment='test')
        await store.set('cache', {'ttl': 1})
        await store.set('cache.ttl', 1000)
        await store.set('cache.maxSize', 5)
        await store.set('cacheWarmup', True)

        assert sorted(await store.delete_prefix('cache')) == ['cache.maxSize', 'cache.ttl']
        assert await store.load_overrides() == {'cache': {'ttl': 1}, 'cacheWarmup': True}
