"""Custom exceptions for the repository layer."""

from __future__ import annotations


class RepositoryError(RuntimeError):
    """Base exception raised when a repository operation fails."""


class DuplicateKeyRepositoryError(RepositoryError):
    """Raised when attempting to insert a document that violates a unique index."""


class NotFoundRepositoryError(RepositoryError):
    """Raised when an expected document is missing."""


class BackendTimeoutError(RepositoryError):
    """Raised when a backend call does not complete within the client-side timeout."""


class StorageError(RepositoryError):
    """Raised when the object store rejects or fails an upload or delete."""


__all__ = [
    "BackendTimeoutError",
    "DuplicateKeyRepositoryError",
    "NotFoundRepositoryError",
    "RepositoryError",
    "StorageError",
]
