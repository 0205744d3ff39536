"""
Database Package Initialization.

============================================================
AUDIT TRAIL PERSISTENCE LAYER
============================================================

Durable, append-only record of what the risk engine did:
committed events and recomputed pool risk scores.

REQUIRED:
- Every write goes through an explicit transaction
- Every failure raises a hard exception
- Persistence never feeds back into engine state

============================================================
"""

# Core engine and session management
from .engine import (
    # Declarative base
    Base,

    # Engine creation
    DEFAULT_DATABASE_URL,
    get_database_url,
    create_database_engine,
    create_session_factory,

    # Session management
    transaction_scope,

    # Database initialization
    initialize_database,
    verify_database_connection,
    create_all_tables,

    # Exceptions
    DatabasePersistenceError,
    DatabaseConnectionError,
    DatabaseInitializationError,
)

# ORM Models
from .models import (
    RiskEventRecord,
    PoolRiskSnapshotRecord,
)

# Repository
from .repository import (
    RiskAuditRepository,
    AuditTrailWriter,
)


__all__ = [
    "Base",
    "DEFAULT_DATABASE_URL",
    "get_database_url",
    "create_database_engine",
    "create_session_factory",
    "transaction_scope",
    "initialize_database",
    "verify_database_connection",
    "create_all_tables",
    "DatabasePersistenceError",
    "DatabaseConnectionError",
    "DatabaseInitializationError",
    "RiskEventRecord",
    "PoolRiskSnapshotRecord",
    "RiskAuditRepository",
    "AuditTrailWriter",
]
