"""Error taxonomy shared by the executor, the store and the command API.

Every runtime error carries a human-readable message; ``str(exc)`` is what
the command API hands back to the caller.  ``StoreInitFailed`` is the only
condition that is fatal to startup.
"""

from __future__ import annotations


class GettyError(Exception):
    """Base class for all errors raised by this package."""


# ---------------------------------------------------------------------------
# Request executor
# ---------------------------------------------------------------------------


class ExecutorError(GettyError):
    """Raised when an HTTP request cannot be executed or normalised."""


class InvalidMethod(ExecutorError):
    """The method token is not a valid HTTP method."""


class RequestFailed(ExecutorError):
    """The transport failed before a response was received."""


class BodyReadFailed(ExecutorError):
    """The response arrived but its body could not be read."""


# ---------------------------------------------------------------------------
# Document store
# ---------------------------------------------------------------------------


class StoreError(GettyError):
    """Raised when a document store operation fails."""


class LockUnavailable(StoreError):
    """The connection lock could not be acquired."""


class WriteFailed(StoreError):
    """The database rejected an upsert."""


class ReadFailed(StoreError):
    """A lookup failed at the database level."""


class DeleteFailed(StoreError):
    """The database rejected a delete."""


class StoreInitFailed(StoreError):
    """The backing database could not be opened or initialised."""
