"""
Database Infrastructure Package for Tonr

Exports database utilities and repository dependencies.
"""

from app.infrastructure.db.database import (
    DatabaseManager,
    get_db_manager,
    get_session_context,
    storage_session,
    init_db,
    close_db,
)

from app.infrastructure.db.dependencies import (
    UserRepoDep,
    UsageRepoDep,
    WebhookEventRepoDep,
)


__all__ = [
    # Database management
    "DatabaseManager",
    "get_db_manager",
    "get_session_context",
    "storage_session",
    "init_db",
    "close_db",
    # Dependencies
    "UserRepoDep",
    "UsageRepoDep",
    "WebhookEventRepoDep",
]
