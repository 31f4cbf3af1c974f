"""
Integration tests for the maintenance core.

Config files, persisted overrides and a real SQLite database drive a full
cleanup run end to end.
"""

import json
import os
import time
from datetime import datetime, timedelta

import pytest

from newsagg.cleanup.models import RuleStatus
from newsagg.cleanup.service import CleanupService
from newsagg.config.manager import ConfigManager
from newsagg.config.store import ConfigStore
from newsagg.storage.client import SQLiteDatabaseClient


def _age(path, days):
    stamp = time.time() - days * 86400
    os.utime(path, (stamp, stamp))


@pytest.fixture
def project(tmp_path):
    """Project directory with a config file, stale files and a populated database."""
    base = tmp_path / "project"
    (base / "config").mkdir(parents=True)
    (base / "config" / "default.json").write_text(json.dumps({
        "cleanup": {
            "logs": {"maxAgeDays": 5, "maxSizeMb": 0.001},
            "database": {"oldArticles": {"keepCount": 1}},
            "notifications": {"threshold": 1}
        }
    }))

    (base / "logs").mkdir()
    stale_log = base / "logs" / "app-old.log"
    stale_log.write_text("old\n")
    _age(stale_log, 6)
    big_log = base / "logs" / "app.log"
    big_log.write_text("\n".join(f"entry {i}" for i in range(200)))

    (base / "cache").mkdir()
    stale_cache = base / "cache" / "feed.json"
    stale_cache.write_text("{}")
    _age(stale_cache, 2)

    stale_tmp = base / "upload.tmp"
    stale_tmp.write_text("partial")
    _age(stale_tmp, 2)

    db = SQLiteDatabaseClient(base / "data.db")
    db.ensure_schema()
    return base, db


async def _seed_database(db):
    old = (datetime.now() - timedelta(days=365)).isoformat()
    recent = datetime.now().isoformat()
    await db.table('sessions').insert([
        {'user_id': 'u1', 'created_at': old},
        {'user_id': 'u2', 'created_at': recent},
    ]).execute()
    await db.table('task_logs').insert([
        {'status': 'failed', 'created_at': old},
        {'status': 'completed', 'created_at': old},
    ]).execute()
    await db.table('articles').insert([
        {'title': 'a', 'published_at': old},
        {'title': 'b', 'published_at': old},
        {'title': 'c', 'published_at': recent},
    ]).execute()


class TestMaintenanceSystem:

    @pytest.mark.asyncio
    async def test_full_cleanup_run(self, project):
        base, db = project
        await _seed_database(db)

        manager = ConfigManager(store=ConfigStore(db, environment='test'), base_dir=base, environment='test')
        await manager.initialize(watch=False)
        service = CleanupService(db, manager, base_dir=base)
        await service.initialize()

        report = await service.perform_full_cleanup()

        assert report.summary.errors == 0
        assert all(r.status == RuleStatus.SUCCESS for r in report.results.values())
        # one stale log, one stale temp file
        assert report.summary.total_files_cleaned == 2
        assert report.summary.total_cache_cleared == 1
        # one session, one failed task, two old articles
        assert report.summary.total_records_cleaned == 4

        assert not (base / "logs" / "app-old.log").exists()
        assert (base / "logs" / "app.log").read_text().startswith("entry 100")
        assert not (base / "upload.tmp").exists()

        articles = await db.table('articles').select('title').execute()
        assert articles.data == [{'title': 'c'}]

        await service.stop()
        await manager.stop()

    @pytest.mark.asyncio
    async def test_persisted_override_disables_rule_section(self, project):
        base, db = project
        store = ConfigStore(db, environment='test')

        manager = ConfigManager(store=store, base_dir=base, environment='test')
        await manager.initialize(watch=False)
        await manager.set('cleanup.tempFiles.enabled', False)

        restarted = ConfigManager(store=store, base_dir=base, environment='test')
        await restarted.initialize(watch=False)
        service = CleanupService(db, restarted, base_dir=base)

        report = await service.perform_full_cleanup(rules=['temp_files'])

        assert report.results['temp_files'].counts.files_cleaned == 0
        assert (base / "upload.tmp").exists()

    @pytest.mark.asyncio
    async def test_optimization_rule(self, project):
        base, db = project
        service = CleanupService(db, base_dir=base)

        result = await service.execute_rule('optimization')

        assert result.status == RuleStatus.SUCCESS
        assert result.cleaned_count == 0
