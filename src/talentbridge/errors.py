from __future__ import annotations


class AIConfigurationError(RuntimeError):
    """No usable credentials for the configured AI provider."""


class RowAccessDenied(PermissionError):
    """A user-scoped repository touched rows owned by another user."""


class RecordNotFound(LookupError):
    pass


class MatchScoreError(RuntimeError):
    """Match scoring failed after the AI call or while saving the result."""
