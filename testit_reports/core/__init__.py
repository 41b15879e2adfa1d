"""
Core infrastructure package for the TestIT Reports backend.

Provides:
- Configuration management via pydantic-settings
- Async PostgreSQL database connectivity via asyncpg

Re-exports key components so other modules can write:

    from testit_reports.core import get_settings, get_db_pool
"""

from testit_reports.core.config import Settings, get_settings

from testit_reports.core.database import (
    init_db,
    close_db,
    get_db_pool,
    init_schema,
    execute_query,
    execute_query_one,
)

__all__ = [
    # Configuration management (from config.py)
    'Settings',
    'get_settings',
    # Database pool lifecycle (from database.py)
    'init_db',
    'close_db',
    'get_db_pool',
    'init_schema',
    'execute_query',
    'execute_query_one',
]
