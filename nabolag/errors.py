# nabolag/errors.py
"""
Error taxonomy for the post lifecycle.

- NotFound: post row absent
- Forbidden: requesting user does not own the post
- StorageUnavailable: object storage failed to remove, list or upload objects
- StoreUnavailable: the relational store failed
"""


class LifecycleError(Exception):
    """Base class for lifecycle errors."""


class NotFound(LifecycleError):
    """Raised when a post does not exist."""


class Forbidden(LifecycleError):
    """Raised when a user tries to mutate a post they do not own."""


class StorageUnavailable(LifecycleError):
    """Raised when an object storage call fails (transient)."""

    def __init__(self, message: str, namespace: str | None = None):
        super().__init__(message)
        self.namespace = namespace


class StoreUnavailable(LifecycleError):
    """Raised when a relational store call fails (transient)."""
