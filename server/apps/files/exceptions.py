"""Exceptions for files app."""


class FileUploadFailedError(Exception):
    """Raised when the storage backend fails to write a resolved upload."""

    def __init__(self, path: str) -> None:
        """Initialize FileUploadFailedError.

        Args:
            path: Storage path the upload was written to.
        """
        self.path = path
        super().__init__(f'Failed to upload file to storage: {path}')


class RelationshipConflictError(ValueError):
    """Raised when a file relation name is already taken."""

    def __init__(self, relation_name: str) -> None:
        """Initialize RelationshipConflictError.

        Args:
            relation_name: The conflicting relation name.
        """
        self.relation_name = relation_name
        super().__init__(
            f'Method or relationship already exists: {relation_name}',
        )


class ReadOnlyStorageError(PermissionError):
    """Raised when writing through a read-only disk."""

    def __init__(self, operation: str, path: str) -> None:
        """Initialize ReadOnlyStorageError.

        Args:
            operation: Name of the rejected operation.
            path: Storage path the operation targeted.
        """
        self.operation = operation
        self.path = path
        super().__init__(
            f'Cannot {operation} on a read-only disk: {path}',
        )
