from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Literal


@dataclass(frozen=True)
class SourceDrive:
    path: Path  # absolute path to the cue sheet
    letter: str | None = None  # single drive letter, e.g. "D"
    title: str = ""  # display title used in error messages

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path))
        if self.letter is not None:
            if len(self.letter) != 1 or not self.letter.isalpha():
                raise ValueError(f"Drive letter must be a single letter: {self.letter!r}")
            object.__setattr__(self, "letter", self.letter.upper())
        if not self.title:
            object.__setattr__(self, "title", self.path.name)


@dataclass(frozen=True)
class ImportRequest:
    drive: SourceDrive | None
    destination_folder: Path | None
    copy_files: bool = True


@dataclass(frozen=True)
class CueReference:
    text: str  # verbatim path text from the FILE line
    start: int  # char offsets of text within the cue sheet
    end: int
    file_type: str = ""  # BINARY | WAVE | MOTOROLA | AIFF | MP3 ...


@dataclass(frozen=True)
class Transfer:
    src: Path
    dst: Path


@dataclass
class ManifestEntry:
    """Single file action performed by an import, recorded for rollback."""

    action: Literal["create", "move", "copy"]
    src: str | None = None  # Source path (for move/copy)
    dst: str = ""  # Destination path
