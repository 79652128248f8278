"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
JSON files on disk are the persistent backend; the in-memory backend
serves tests and embedding. Both are swappable behind the interfaces.
"""

from finance_manager.services.storage.interface import (
    AuditStorageInterface,
    DirectoryInterface,
    LedgerStorageInterface,
    StorageConnectionError,
    StorageError,
)
from finance_manager.services.storage.json_file import (
    AUDIT_LOG_FILE,
    DIRECTORY_FILE,
    PERSONAL_ACCOUNT_FILE,
    SALARY_PERIODS_FILE,
    JsonDocumentStore,
    JsonFileAuditStorage,
    JsonFileDirectory,
    JsonFileLedgerStorage,
)
from finance_manager.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryDirectory,
    InMemoryLedgerStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "DirectoryInterface",
    "LedgerStorageInterface",
    # Exceptions
    "StorageConnectionError",
    "StorageError",
    # JSON files
    "AUDIT_LOG_FILE",
    "DIRECTORY_FILE",
    "PERSONAL_ACCOUNT_FILE",
    "SALARY_PERIODS_FILE",
    "JsonDocumentStore",
    "JsonFileAuditStorage",
    "JsonFileDirectory",
    "JsonFileLedgerStorage",
    # In-memory
    "InMemoryAuditStorage",
    "InMemoryDirectory",
    "InMemoryLedgerStorage",
]
