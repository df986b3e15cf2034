from infrastructure.database.database import (
    Base,
    create_session_factory,
    create_tables,
    ensure_database_directory,
    init_database_engine,
)
from infrastructure.database.document_store import (
    DocumentStore,
    InMemoryDocumentStore,
    SQLDocumentStore,
    WriteConflictError,
)

__all__ = [
    "Base",
    "DocumentStore",
    "InMemoryDocumentStore",
    "SQLDocumentStore",
    "WriteConflictError",
    "create_session_factory",
    "create_tables",
    "ensure_database_directory",
    "init_database_engine",
]
