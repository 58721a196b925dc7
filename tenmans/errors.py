"""
Exception hierarchy for the 10-Mans leaderboard.

Validation errors are raised before any mutation happens, so callers can
treat every error here as "nothing was written".
"""


class TenMansError(Exception):
    """Base exception for all leaderboard errors"""
    pass


class ValidationError(TenMansError):
    """Malformed input: wrong participant count, bad winner tag, bad stat"""
    pass


class NotFoundError(TenMansError):
    """Raised when a player or event has no stored record"""
    pass


class DuplicateMatchError(TenMansError):
    """Raised when a match id has already been applied"""
    pass


class DuplicatePlayerError(TenMansError):
    """Raised when registering or renaming onto an existing (name, tag)"""
    pass


class DuplicateEventError(TenMansError):
    """Raised when creating an event whose name is already taken"""
    pass
