"""Custom exception types for Mafia catalogs, sessions and voting."""


class ConfigurationError(ValueError):
    """Raised when catalog or settings data is malformed."""


class NotFoundError(LookupError):
    """Raised when a game, player, theme or role does not exist."""


class ValidationError(ValueError):
    """Raised when caller input is malformed or breaks a voting rule."""


class StateConflictError(RuntimeError):
    """Raised when an action is invalid for the current game phase."""


class ConsistencyError(RuntimeError):
    """Raised when a role distribution references a role missing from the catalog."""


class RoleMergeWarning(UserWarning):
    """Emitted for theme data that is skipped while merging role catalogs."""
