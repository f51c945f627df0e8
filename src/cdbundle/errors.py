"""
Error types raised while importing a drive into a bundle.

Hierarchy:
    BundleImportError (base)
    ├── ConfigurationError - bad cdbundle.toml values
    ├── SourceReadError - cue sheet unreadable or undecodable
    ├── CueParseError - cue sheet names no source files
    ├── CollisionError - two sources flatten to the same bundle file
    ├── BundleExistsError - destination bundle already present
    ├── TransferFailed - transfer engine reported an error
    └── CueWriteError - tracks.cue could not be written

OperationCancelled is not a failure; BundleImport turns it into a
"cancelled" outcome.
"""

from __future__ import annotations

from pathlib import Path


class BundleImportError(Exception):
    """Base exception for all bundle import errors."""

    def __init__(self, message: str, *, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = Path(path) if path is not None else None

    def __str__(self) -> str:
        return self.message


class ConfigurationError(BundleImportError):
    """Invalid configuration value."""

    def __init__(self, message: str, *, config_file: Path | str | None = None,
                 field: str | None = None) -> None:
        super().__init__(message, path=config_file)
        self.field = field


class SourceReadError(BundleImportError):
    """The cue sheet could not be read or its encoding could not be determined."""


class CueParseError(BundleImportError):
    """The cue sheet was read but no source files could be identified."""

    suggestion = "This image may be in a format that is not supported."

    def __init__(self, title: str, path: Path | str | None = None) -> None:
        description = (
            f"The image “{title}” could not be imported because its source "
            f"files could not be determined."
        )
        super().__init__(description, path=path)
        self.title = title
        self.description = description

    def __str__(self) -> str:
        return f"{self.description} {self.suggestion}"


class CollisionError(BundleImportError):
    """Two different source files would be flattened onto the same bundle file."""

    def __init__(self, dst: Path, sources: list[Path]) -> None:
        names = ", ".join(str(s) for s in sources)
        super().__init__(f"Multiple source files map to {dst.name}: {names}", path=dst)
        self.sources = sources


class BundleExistsError(BundleImportError):
    """The destination bundle already exists."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Destination bundle already exists: {path}", path=path)


class TransferFailed(BundleImportError):
    """The transfer engine failed on one or more files."""

    def __init__(self, cause: BaseException, path: Path | str | None = None) -> None:
        super().__init__(str(cause) or cause.__class__.__name__, path=path)
        self.cause = cause


class CueWriteError(BundleImportError):
    """The rewritten cue sheet could not be persisted into the bundle."""

    def __init__(self, cause: OSError, path: Path | str | None = None) -> None:
        super().__init__(f"Could not write cue sheet {path}: {cause}", path=path)
        self.cause = cause


class OperationCancelled(Exception):
    """Raised internally when a cancellation checkpoint sees the flag set."""

    def __init__(self, checkpoint: str = "") -> None:
        super().__init__(f"Cancelled at {checkpoint}" if checkpoint else "Cancelled")
        self.checkpoint = checkpoint
