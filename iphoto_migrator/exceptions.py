"""
Custom exception hierarchy for the iPhoto migrator.

Only CatalogError is fatal to a run; the others are raised close to the
failing row or file and handled by the caller that owns the loop.
"""


class MigratorError(Exception):
    """Base exception for all migrator errors."""
    pass


class CatalogError(MigratorError):
    """Raised when the catalog databases cannot be opened or lack required tables."""
    pass


class UnresolvableReferenceError(MigratorError):
    """Raised when a photo row references a master/event/place that cannot be joined."""
    pass


class EditBlobError(MigratorError):
    """Raised when a serialized edit operation cannot be decoded."""
    pass


class FileOperationError(MigratorError):
    """Raised when hard-linking a file fails."""
    pass
