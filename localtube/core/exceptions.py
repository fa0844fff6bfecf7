"""Custom exceptions for the ingestion pipeline."""


class ArchiveError(Exception):
    """Base exception for archive pipeline errors."""

    pass


class ConfigurationError(ArchiveError):
    """Settings or the media root are unusable."""

    pass


class ExternalToolFailure(ArchiveError):
    """The extraction tool exited nonzero or could not be run."""

    def __init__(self, message: str, returncode: int | None = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr

    def __str__(self) -> str:
        base = super().__str__()
        if self.stderr:
            return f"{base}\nStderr: {self.stderr}"
        return base


class UnparseableVideoURL(ExternalToolFailure):
    """A listed video URL did not yield a video ID."""

    pass


class IntegrityViolation(ArchiveError):
    """Staged or committed files do not have the expected shape."""

    pass


class ReferentialInconsistency(ArchiveError):
    """Permanent storage holds media without metadata or vice versa."""

    pass


class NetworkFailure(ArchiveError):
    """An outbound fetch failed or returned something unusable."""

    pass


class CatalogWriteError(ArchiveError):
    """The catalog rejected an insert (duplicate or unknown reference)."""

    pass


class StateConsistencyError(ArchiveError):
    """The subscription state document violates its invariants."""

    pass


class StaleStagingError(ArchiveError):
    """Leftover staging directories indicate an unclean shutdown."""

    pass


class StorageFailure(ArchiveError):
    """A filesystem operation on the media root or state file failed."""

    pass
