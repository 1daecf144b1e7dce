"""Error taxonomy for the voting sync engine."""


class SyncError(Exception):
    """Base class for all sync engine errors."""


class ChainReadError(SyncError):
    """A contract read or event fetch failed to reach the node or to decode.

    Non-fatal: callers log it and skip the affected unit of work.
    """


class CacheWriteError(SyncError):
    """A cache row could not be persisted.

    Fatal to the enclosing operation and reported to the caller.
    """


class ValidationError(SyncError):
    """Request input was malformed. Raised before any chain or cache I/O."""
