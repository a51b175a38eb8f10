"""Exception taxonomy.

A rejected completion is not an exception; it is a normal ``accepted=False``
outcome. Missing profiles and tasks are created, never reported.
"""

from __future__ import annotations


class DisciplineError(Exception):
    """Base class for engine errors."""


class PersistenceFailure(DisciplineError):
    """The backing store rejected a read or write. Nothing was committed."""

    retryable = True


class ProfileConflict(PersistenceFailure):
    """Another writer updated the profile first."""


class InvalidChallenge(DisciplineError, ValueError):
    """Challenge creation input was rejected."""


class ChallengeNotFound(DisciplineError, LookupError):
    """No challenge with that id belongs to the user."""
