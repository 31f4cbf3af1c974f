"""
Integration tests for the newsagg command-line interface.
"""

import json
import logging

import pytest
import structlog

from newsagg.cli import build_parser, main


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    # main() installs handlers bound to this test's captured streams
    structlog.reset_defaults()
    logging.basicConfig(handlers=[logging.NullHandler()], force=True)


@pytest.fixture
def cli_args(tmp_path):
    return ['--db', str(tmp_path / "data" / "newsagg.db"), '--base-dir', str(tmp_path)]


class TestParser:

    def test_cleanup_run_options(self):
        args = build_parser().parse_args(['cleanup', 'run', '--dry-run', '--rules', 'logs', 'cache'])
        assert args.dry_run
        assert not args.force
        assert args.rules == ['logs', 'cache']

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestCommands:

    def test_dry_run(self, cli_args, tmp_path, capsys):
        assert main(cli_args + ['cleanup', 'run', '--dry-run']) == 0
        output = capsys.readouterr().out
        assert "dry run" in output
        assert (tmp_path / "backup").is_dir()

    def test_json_report(self, cli_args, capsys):
        assert main(cli_args + ['cleanup', 'run', '--dry-run', '--json', '--rules', 'logs', 'database']) == 0
        report = json.loads(capsys.readouterr().out)
        assert list(report['results']) == ['database', 'logs']
        assert report['results']['logs']['status'] == 'skipped'
        assert report['summary']['dry_run'] is True

    def test_list_rules(self, cli_args, capsys):
        assert main(cli_args + ['cleanup', 'rules']) == 0
        output = capsys.readouterr().out
        assert "database (HIGH)" in output
        assert "optimization (LOW)" in output

    def test_unknown_rule(self, cli_args, capsys):
        assert main(cli_args + ['cleanup', 'rule', 'nonexistent']) == 1
        assert "Cleanup rule not found: nonexistent" in capsys.readouterr().err

    def test_config_set_get_reset(self, cli_args, capsys):
        assert main(cli_args + ['config', 'set', 'rss.maxRetries', '6']) == 0
        capsys.readouterr()

        assert main(cli_args + ['config', 'get', 'rss.maxRetries']) == 0
        assert json.loads(capsys.readouterr().out) == 6

        assert main(cli_args + ['config', 'reset', 'rss.maxRetries']) == 0
        capsys.readouterr()
        assert main(cli_args + ['config', 'get', 'rss.maxRetries']) == 0
        assert json.loads(capsys.readouterr().out) == 3

    def test_config_set_invalid(self, cli_args, capsys):
        assert main(cli_args + ['config', 'set', 'rss.maxRetries', '50']) == 1
        assert "Validation failed for rss.maxRetries" in capsys.readouterr().err

    def test_config_validate_reports_default_api_key(self, cli_args, capsys):
        assert main(cli_args + ['config', 'validate']) == 1
        assert "newsapi.apiKey" in capsys.readouterr().out
