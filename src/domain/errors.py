from __future__ import annotations


class LeaderboardError(Exception):
    """Base class for all domain/service errors."""


# -------------------------
# Data layer
# -------------------------

class DataUnavailable(LeaderboardError):
    """Achievement store is unreachable or returned malformed data.

    Callers recover by retrying the whole query; nothing retries internally.
    """


# -------------------------
# Caller errors
# -------------------------

class InvalidArgument(LeaderboardError):
    """Caller passed a nonsensical window size or scope (programming error)."""


class NotFound(LeaderboardError):
    """Requested entity was not found."""


class ConflictError(LeaderboardError):
    """Operation conflicts with current state (e.g., badge already earned)."""
