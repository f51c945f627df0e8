"""Decide whether a drive can be imported as a cue/bin bundle."""

from ..adapters.cue_parser import CueSheetParser
from ..adapters.filetypes import CUESHEET_TYPE, ExtensionTypeIdentifier
from ..core.model import SourceDrive
from ..core.ports import CueParser, FileTypeIdentifier

CUE_TYPES = frozenset({CUESHEET_TYPE})


def is_suitable(
    drive: SourceDrive,
    identifier: FileTypeIdentifier | None = None,
    parser: CueParser | None = None,
) -> bool:
    """
    Check whether a drive is a cue sheet this importer can handle.

    A drive qualifies if its path is identified as a cue sheet by type, or
    if it parses as one regardless of extension (catches renamed images).
    """
    identifier = identifier or ExtensionTypeIdentifier()
    if identifier.matches_type(drive.path, CUE_TYPES):
        return True

    parser = parser or CueSheetParser()
    return parser.is_cue_sheet(drive.path)
