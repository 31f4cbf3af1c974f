"""
newsagg - maintenance core for the news aggregation backend.

This package contains the configuration management and cleanup orchestration
layers, the database client they run against, and the monitoring hooks that
observe them.
"""

__version__ = "0.1.0"
