"""
spine-auth -- run an auth framework's storage-agnostic queries on SQLAlchemy.

The adapter translates logical model and field names to tables and columns,
compiles ``where`` clauses into SQLAlchemy predicates, and diffs the
framework's schema against a live database to emit Alembic revisions and
declarative entity modules.

Example:
    >>> from spine_auth import create_adapter, create_auth_engine
    >>> engine = create_auth_engine("sqlite+aiosqlite:///auth.db")
    >>> adapter = create_adapter(engine, tables)
    >>> await adapter.create_schema()
"""

__version__ = "0.1.0"

from spine_auth.adapter import AdapterConfig, AuthAdapter, create_adapter  # noqa: E402
from spine_auth.core.dispatcher import ScopedDispatcher  # noqa: E402
from spine_auth.core.errors import (  # noqa: E402
    AdapterError,
    ConfigError,
    MigrationError,
    PersistenceError,
    SchemaError,
    SoftDeleteConfigError,
    TransactionError,
)
from spine_auth.core.predicates import WhereClause  # noqa: E402
from spine_auth.core.schema import SchemaRegistry  # noqa: E402
from spine_auth.core.session import create_auth_engine  # noqa: E402
from spine_auth.core.settings import AdapterSettings  # noqa: E402
from spine_auth.core.tables import build_metadata  # noqa: E402
from spine_auth.core.transform import generate_id  # noqa: E402
from spine_auth.migrations.synchronize import SchemaChangelog  # noqa: E402

__all__ = [
    "AdapterConfig",
    "AdapterError",
    "AdapterSettings",
    "AuthAdapter",
    "ConfigError",
    "MigrationError",
    "PersistenceError",
    "SchemaChangelog",
    "SchemaError",
    "SchemaRegistry",
    "ScopedDispatcher",
    "SoftDeleteConfigError",
    "TransactionError",
    "WhereClause",
    "__version__",
    "build_metadata",
    "create_adapter",
    "create_auth_engine",
    "generate_id",
]
