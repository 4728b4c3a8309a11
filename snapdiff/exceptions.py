"""Custom exceptions for SnapDiff."""


class SnapDiffError(Exception):
    """Base exception for SnapDiff errors."""
    pass


class ValidationError(SnapDiffError):
    """Raised when input validation fails."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class RegistryError(SnapDiffError):
    """Raised when an entity registry entry is invalid."""
    def __init__(self, key: str, message: str):
        super().__init__(f"Invalid registry entry '{key}': {message}")
        self.key = key
        self.message = message


class SnapshotLoadError(SnapDiffError):
    """Raised when a snapshot, report or config file cannot be read."""
    def __init__(self, path: str, message: str):
        super().__init__(f"Cannot load {path}: {message}")
        self.path = path
        self.message = message
