"""Naming of imported drive bundles."""

from pathlib import Path

from ..core.model import ImportRequest, SourceDrive

BUNDLE_EXTENSION = "cdmedia"
CUE_FILENAME = "tracks.cue"


def bundle_name(drive: SourceDrive) -> str:
    """
    Derive the bundle folder name for a drive.

    The cue file's stem, prefixed with the drive letter when the drive has
    one, with the .cdmedia extension:

        >>> bundle_name(SourceDrive(Path("/games/Doom.cue"), letter="D"))
        'D Doom.cdmedia'
    """
    name = drive.path.stem
    if drive.letter:
        name = f"{drive.letter} {name}"
    return f"{name}.{BUNDLE_EXTENSION}"


def imported_path(request: ImportRequest) -> Path | None:
    """Full destination path of the bundle, or None if the request is incomplete."""
    if request.drive is None or request.destination_folder is None:
        return None
    return Path(request.destination_folder) / bundle_name(request.drive)
