"""spine-auth core -- name resolution, predicates, records and the dispatcher.

Architecture::

    errors.py        AdapterError hierarchy (SchemaError, PersistenceError, ...)
    logging.py       structlog configuration and get_logger
    settings.py      AdapterSettings (pydantic-settings, SPINE_AUTH_*)
    schema.py        ModelSchema / FieldDescriptor / SchemaRegistry
    tables.py        SQLAlchemy Table objects built from the registry
    naming.py        NameResolver (logical -> physical names)
    transform.py     RecordTransformer (logical <-> physical records)
    predicates.py    PredicateCompiler and to_sql
    session.py       Async engine and session factory
    repository.py    TableRepository (Core statements over one table)
    transaction.py   TransactionCoordinator
    dispatcher.py    OperationDispatcher / ScopedDispatcher
"""

from spine_auth.core.errors import (
    AdapterError,
    ConfigError,
    ErrorCategory,
    ErrorContext,
    MigrationError,
    PersistenceError,
    SchemaError,
    SoftDeleteConfigError,
    TransactionError,
)
from spine_auth.core.schema import FieldDescriptor, ModelSchema, SchemaRegistry

__all__ = [
    "AdapterError",
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "FieldDescriptor",
    "MigrationError",
    "ModelSchema",
    "PersistenceError",
    "SchemaError",
    "SchemaRegistry",
    "SoftDeleteConfigError",
    "TransactionError",
]
