"""
Built-in configuration defaults.

Durations in the rss/newsapi/scheduler sections are milliseconds, matching what
the fetchers and scheduler expect. The cleanup section uses explicit units in
its key names.
"""

from typing import Any, Dict


def get_default_config() -> Dict[str, Any]:
    """Return a fresh copy of the default configuration tree."""
    return {
        'rss': {
            'maxConcurrentFetches': 5,
            'defaultTimeout': 30000,
            'maxRetries': 3,
            'retryDelay': 1000,
            'userAgent': 'NewsAggregator/1.0',
            'maxContentLength': 50000,
            'defaultLanguage': 'zh',
            'cleanupInterval': 3600000
        },
        'newsapi': {
            'enabled': True,
            'apiKey': '',
            'baseUrl': 'https://newsapi.org/v2',
            'timeout': 30000,
            'maxRetries': 3,
            'articlesPerPage': 100,
            'maxArticlesPerRequest': 100
        },
        'translation': {
            'enabled': True,
            'defaultService': 'openai',
            'services': {
                'openai': {
                    'enabled': True,
                    'model': 'gpt-3.5-turbo',
                    'maxTokens': 2000,
                    'temperature': 0.3
                },
                'google': {
                    'enabled': False,
                    'apiKey': ''
                },
                'baidu': {
                    'enabled': False,
                    'appId': '',
                    'secretKey': ''
                }
            },
            'cache': {
                'enabled': True,
                'ttl': 86400000
            }
        },
        'ai': {
            'enabled': True,
            'defaultService': 'openai',
            'services': {
                'openai': {
                    'enabled': True,
                    'model': 'gpt-3.5-turbo',
                    'maxTokens': 1000,
                    'temperature': 0.5
                },
                'anthropic': {
                    'enabled': False,
                    'model': 'claude-3-sonnet-20240229',
                    'maxTokens': 1000
                }
            },
            'tasks': {
                'sentiment': {'enabled': True, 'threshold': 0.7},
                'categorization': {'enabled': True, 'threshold': 0.8},
                'keywords': {'enabled': True, 'maxKeywords': 10},
                'summarization': {'enabled': True, 'maxLength': 200}
            },
            'cache': {
                'enabled': True,
                'ttl': 86400000
            }
        },
        'email': {
            'enabled': False,
            'defaultProvider': 'sendgrid',
            'providers': {
                'sendgrid': {
                    'enabled': True,
                    'apiKey': '',
                    'fromEmail': 'noreply@example.com'
                },
                'smtp': {
                    'enabled': False,
                    'host': '',
                    'port': 587,
                    'secure': False,
                    'auth': {'user': '', 'pass': ''}
                }
            }
        },
        'database': {
            'pool': {'min': 2, 'max': 10, 'idle': 30000, 'acquire': 10000},
            'retry': {'maxAttempts': 3, 'delayMs': 1000}
        },
        'logging': {
            'level': 'info',
            'format': 'json',
            'file': None
        },
        'scheduler': {
            'enabled': True,
            'rssFetchInterval': 1800000,
            'newsapiFetchInterval': 1800000,
            'cleanupInterval': 3600000,
            'statsInterval': 300000
        },
        'cache': {
            'enabled': True,
            'provider': 'memory',
            'ttl': 300000,
            'maxSize': 1000
        },
        'cleanup': {
            'logs': {
                'enabled': True,
                'maxAgeDays': 7,
                'maxSizeMb': 100,
                'patterns': ['logs/*.log', '*.log']
            },
            'cache': {
                'enabled': True,
                'maxAgeHours': 24,
                'directories': ['cache', 'temp']
            },
            'database': {
                'enabled': True,
                'expiredSessions': {'enabled': True, 'maxAgeDays': 30},
                'failedTasks': {'enabled': True, 'maxAgeDays': 7},
                'oldArticles': {'enabled': True, 'maxAgeDays': 90, 'keepCount': 10000},
                'auditLogs': {'enabled': True, 'maxAgeDays': 30}
            },
            'tempFiles': {
                'enabled': True,
                'maxAgeHours': 24,
                'patterns': ['temp/**/*', 'tmp/**/*', '*.tmp']
            },
            'schedule': {
                'enabled': True,
                'interval': '0 2 * * *',
                'optimizationInterval': '0 3 * * 0',
                'timezone': 'Asia/Shanghai'
            },
            'notifications': {
                'enabled': True,
                'webhookUrl': None,
                'threshold': 10
            }
        }
    }
