from pathlib import Path
from typing import Iterable, Protocol, Sequence

from .model import CueReference


class FileTypeIdentifier(Protocol):
    """
    Answers whether a file on disk belongs to one of a set of type identifiers.
    """

    def matches_type(self, path: Path, type_ids: Iterable[str]) -> bool:
        pass


class CueParser(Protocol):
    """
    Extract FILE references from cue sheet text. Never raises for malformed
    input; an unparsable sheet simply yields no references.
    """

    def is_cue_sheet(self, path: Path) -> bool:
        pass

    def references(self, text: str) -> list[CueReference]:
        pass

    def referenced_paths(self, text: str) -> list[str]:
        pass


class TransferEngine(Protocol):
    """
    Copies or moves registered files, polling cancellation between files.
    undo() removes whatever the engine has written so far.
    """

    has_written_files: bool

    def register_transfer(self, src: Path, dst: Path) -> None:
        pass

    def run(self) -> None:
        pass

    def undo(self) -> bool:
        pass

    @property
    def transfers(self) -> Sequence[tuple[Path, Path]]:
        pass
