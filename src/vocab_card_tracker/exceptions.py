"""Error types raised by the progress-tracking core."""


class VocabTrackerError(Exception):
    """Base class for all tracker errors."""


class StorageError(VocabTrackerError):
    """A read or write against the progress store failed.

    Fatal to the current operation; never retried automatically.
    """


class StoreNotOpenError(StorageError):
    """The store was used before open() or after close()."""


class ProfileNotFoundError(VocabTrackerError):
    def __init__(self, user_id: str):
        super().__init__(f"Profile not found: {user_id}")
        self.user_id = user_id


class ProfileValidationError(VocabTrackerError):
    """Profile input rejected before anything was written."""


class ManifestError(VocabTrackerError):
    """A level manifest could not be used."""

    def __init__(self, level: int, message: str):
        super().__init__(message)
        self.level = level


class ManifestNotFoundError(ManifestError):
    def __init__(self, level: int):
        super().__init__(level, f"No manifest for level {level}")


class ManifestLoadError(ManifestError):
    """The manifest exists but is not valid JSON or has the wrong shape."""

    def __init__(self, level: int, reason: str):
        super().__init__(level, f"Invalid manifest for level {level}: {reason}")
