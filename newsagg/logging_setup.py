"""
Logging configuration shared by the CLI and long-running processes.
"""

import logging
from pathlib import Path
from typing import Optional

import structlog


def setup_logging(level: str = 'info', fmt: str = 'json', log_file: Optional[str] = None) -> None:
    """
    Route structlog through stdlib logging to stderr and, optionally, a file.

    Safe to call again once the logging config section is known.
    """
    handlers = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(message)s',
        handlers=handlers,
        force=True
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt='iso'),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer() if fmt == 'json' else structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        # reconfigured after the config tree loads, so loggers must not be frozen
        cache_logger_on_first_use=False,
    )
