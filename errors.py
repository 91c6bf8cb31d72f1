class StoreError(Exception):
    """Base class for workout store failures."""


class InvalidInputError(StoreError, ValueError):
    """Raised when input is rejected before any change is made."""


class NotFoundError(StoreError, LookupError):
    """Raised when an update or delete addresses an unknown row."""


class MigrationError(StoreError):
    """A schema migration failed and the store must not be used."""

    def __init__(self, version: int, name: str, cause: Exception) -> None:
        super().__init__(f"Migration {version} ({name}) failed: {cause}")
        self.version = version
        self.name = name
        self.cause = cause


class StoreBusyError(StoreError):
    """Another mutating operation is already running on this store."""


class BackupError(StoreError):
    """Base class for backup and restore failures."""


class BackupSourceMissingError(BackupError):
    pass


class BackupValidationError(BackupError):
    pass


class BackupCopyError(BackupError):
    def __init__(self, message: str, safety_copy: str | None = None) -> None:
        super().__init__(message)
        self.safety_copy = safety_copy


class ImportFetchError(StoreError):
    """Downloading an exercise set failed; nothing was written."""


class EmptyExportError(StoreError):
    pass
