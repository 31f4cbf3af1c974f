"""
Unit tests for per-section config schemas.
"""

from newsagg.config.defaults import get_default_config
from newsagg.config.schema import CleanupSettings, validate_section


def _rss(**overrides):
    data = {'maxConcurrentFetches': 5, 'defaultTimeout': 30000, 'maxRetries': 3}
    data.update(overrides)
    return data


class TestSectionValidation:
    """Test schema validation of individual sections."""

    def test_valid_rss_section(self):
        assert validate_section('rss', _rss()) == []

    def test_rss_upper_bound(self):
        errors = validate_section('rss', _rss(maxConcurrentFetches=25))
        assert len(errors) == 1
        assert errors[0].startswith('rss.maxConcurrentFetches')

    def test_rss_lower_bound(self):
        errors = validate_section('rss', _rss(defaultTimeout=1000))
        assert errors and errors[0].startswith('rss.defaultTimeout')

    def test_rss_required_field(self):
        data = _rss()
        del data['maxRetries']
        errors = validate_section('rss', data)
        assert any(e.startswith('rss.maxRetries') for e in errors)

    def test_strings_are_not_coerced_to_numbers(self):
        errors = validate_section('rss', _rss(maxRetries='3'))
        assert any(e.startswith('rss.maxRetries') for e in errors)

    def test_unknown_keys_are_allowed(self):
        assert validate_section('rss', _rss(userAgent='Agent/1.0')) == []

    def test_enum_violation(self):
        errors = validate_section('translation', {'enabled': True, 'defaultService': 'deepl'})
        assert errors and errors[0].startswith('translation.defaultService')

    def test_min_length(self):
        errors = validate_section('newsapi', {'enabled': True, 'apiKey': 'short'})
        assert errors and errors[0].startswith('newsapi.apiKey')

    def test_non_mapping_section(self):
        assert validate_section('rss', 5) == ['rss: must be an object']

    def test_unbound_section_is_always_valid(self):
        assert validate_section('scheduler', {'anything': 'goes'}) == []

    def test_scope_filters_unrelated_violations(self):
        data = {'enabled': True, 'apiKey': '', 'articlesPerPage': 500}
        scoped = validate_section('newsapi', data, scope='newsapi.articlesPerPage')
        assert len(scoped) == 1
        assert scoped[0].startswith('newsapi.articlesPerPage')

    def test_notification_threshold_must_be_positive(self):
        errors = validate_section('cleanup', {'notifications': {'threshold': 0}})
        assert errors and errors[0].startswith('cleanup.notifications.threshold')


class TestCleanupSettings:
    """Test the typed view of the cleanup section."""

    def test_defaults_parse(self):
        settings = CleanupSettings.model_validate(get_default_config()['cleanup'])
        assert settings.logs.max_age_days == 7
        assert settings.database.old_articles.keep_count == 10000
        assert settings.temp_files.patterns == ['temp/**/*', 'tmp/**/*', '*.tmp']
        assert settings.notifications.threshold == 10

    def test_partial_section_uses_defaults(self):
        settings = CleanupSettings.model_validate({'cache': {'maxAgeHours': 2}})
        assert settings.cache.max_age_hours == 2
        assert settings.cache.directories == ['cache', 'temp']
        assert settings.database.failed_tasks.max_age_days == 7

    def test_default_tree_cleanup_section_is_valid(self):
        assert validate_section('cleanup', get_default_config()['cleanup']) == []
