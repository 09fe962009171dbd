"""
Custom exceptions for the telos idea matrix.
"""
from typing import Optional


class TelosMatrixError(Exception):
    """Base exception for the telos idea matrix."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class TelosConfigError(TelosMatrixError):
    """Exception raised when the goals document cannot be used for scoring."""
    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class TelosNotFoundError(TelosConfigError):
    """Exception raised when the goals document does not exist."""
    pass


class TelosValidationError(TelosConfigError):
    """Exception raised when a parsed goals document breaks an invariant.

    ``invariant`` names the rule that failed so the user knows what to fix.
    """
    def __init__(self, invariant: str, message: str, path: Optional[str] = None):
        self.invariant = invariant
        super().__init__(f"invalid telos ({invariant}): {message}", path)


class SettingsError(TelosMatrixError):
    """Exception raised for unreadable or invalid engine settings files."""
    pass
