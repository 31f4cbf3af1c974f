"""
Command-line interface for configuration and cleanup maintenance.
"""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import List, Optional

from .cleanup.service import CleanupService
from .config.manager import ConfigManager
from .config.sources import coerce_value
from .config.store import ConfigStore
from .exceptions import NewsAggError
from .logging_setup import setup_logging
from .storage.client import SQLiteDatabaseClient


async def _build(args) -> tuple:
    setup_logging(level='debug' if args.verbose else 'warning')

    environment = os.getenv('APP_ENV', 'development')
    db = SQLiteDatabaseClient(args.db)
    db.ensure_schema()
    manager = ConfigManager(store=ConfigStore(db, environment), base_dir=args.base_dir, environment=environment)
    await manager.initialize(watch=False)

    logging_config = manager.get('logging', {}) or {}
    setup_logging(
        level='debug' if args.verbose else logging_config.get('level', 'info'),
        fmt=logging_config.get('format', 'json'),
        log_file=logging_config.get('file'),
    )
    return db, manager


async def run_cleanup(args) -> int:
    db, manager = await _build(args)
    service = CleanupService(db, manager, base_dir=args.base_dir)
    await service.initialize()

    report = await service.perform_full_cleanup(force=args.force, dry_run=args.dry_run, rules=args.rules)
    summary = report.summary

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
        await service.stop()
        return 1 if summary.errors else 0

    print(f"Cleanup {'dry run ' if summary.dry_run else ''}completed: {summary.rules} rules")
    print(f"Files cleaned: {summary.total_files_cleaned}")
    print(f"Records cleaned: {summary.total_records_cleaned}")
    print(f"Cache entries cleared: {summary.total_cache_cleared}")
    print(f"Errors: {summary.errors}")
    for name, result in report.results.items():
        status_icon = "✗" if result.error else "✓"
        detail = result.error or (result.counts.message if result.counts else "")
        print(f"{status_icon} {name}: {detail}")

    await service.stop()
    return 1 if summary.errors else 0


async def run_rule(args) -> int:
    db, manager = await _build(args)
    service = CleanupService(db, manager, base_dir=args.base_dir)
    result = await service.execute_rule(args.name, force=args.force)
    print(json.dumps(result.to_dict(), indent=2))
    return 0


async def show_rules(args) -> int:
    db, manager = await _build(args)
    service = CleanupService(db, manager, base_dir=args.base_dir)
    print("Cleanup Rules")
    print("=" * 40)
    for rule in service.get_rules():
        print(f"{rule['name']} ({rule['priority'].upper()}) - {rule['label']}")
        print(f"  {rule['description']}")
        print(f"  Schedule: {rule['schedule']}")
    return 0


async def config_get(args) -> int:
    _, manager = await _build(args)
    value = manager.get(args.key) if args.key else manager.get_all(include_sensitive=args.show_secrets)
    print(json.dumps(value, indent=2, default=str))
    return 0


async def config_set(args) -> int:
    _, manager = await _build(args)
    value = coerce_value(args.value)
    await manager.set(args.key, value, persist=not args.no_persist)
    print(f"{args.key} = {json.dumps(value)}")
    return 0


async def config_reset(args) -> int:
    _, manager = await _build(args)
    await manager.reset(args.key)
    print(f"{args.key} reset to {json.dumps(manager.get(args.key), default=str)}")
    return 0


async def config_validate(args) -> int:
    _, manager = await _build(args)
    errors = manager.validate_all()
    if not errors:
        print("Configuration is valid")
        return 0
    for error in errors:
        print(f"✗ {error}")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="News aggregator maintenance tools")
    parser.add_argument('--db', default='data/newsagg.db',
                        help='Path to SQLite database file')
    parser.add_argument('--base-dir', default='.',
                        help='Directory config files and cleanup patterns are relative to')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable verbose logging')

    commands = parser.add_subparsers(dest='command', required=True)

    cleanup = commands.add_parser('cleanup', help='Run cleanup rules')
    cleanup_commands = cleanup.add_subparsers(dest='cleanup_command', required=True)

    run = cleanup_commands.add_parser('run', help='Run a full cleanup')
    run.add_argument('--dry-run', action='store_true', help='Report rules without executing them')
    run.add_argument('--force', action='store_true', help='Run rule sections that are disabled')
    run.add_argument('--rules', nargs='+', help='Rule names to run')
    run.add_argument('--json', action='store_true', help='Print the full report as JSON')
    run.set_defaults(handler=run_cleanup)

    rule = cleanup_commands.add_parser('rule', help='Run a single rule')
    rule.add_argument('name')
    rule.add_argument('--force', action='store_true')
    rule.set_defaults(handler=run_rule)

    rules = cleanup_commands.add_parser('rules', help='List registered rules')
    rules.set_defaults(handler=show_rules)

    config = commands.add_parser('config', help='Inspect and change configuration')
    config_commands = config.add_subparsers(dest='config_command', required=True)

    get = config_commands.add_parser('get', help='Show a value or the whole tree')
    get.add_argument('key', nargs='?')
    get.add_argument('--show-secrets', action='store_true')
    get.set_defaults(handler=config_get)

    set_ = config_commands.add_parser('set', help='Validate and store a value')
    set_.add_argument('key')
    set_.add_argument('value')
    set_.add_argument('--no-persist', action='store_true')
    set_.set_defaults(handler=config_set)

    reset = config_commands.add_parser('reset', help='Remove a stored override')
    reset.add_argument('key')
    reset.set_defaults(handler=config_reset)

    validate = config_commands.add_parser('validate', help='Validate every schema-bound section')
    validate.set_defaults(handler=config_validate)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    Path(args.db).parent.mkdir(parents=True, exist_ok=True)
    try:
        return asyncio.run(args.handler(args))
    except NewsAggError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
