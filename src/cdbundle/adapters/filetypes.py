from pathlib import Path
from typing import Iterable

from ..core.ports import FileTypeIdentifier

CUESHEET_TYPE = "com.goldenhawk.cdrwin-cuesheet"

# type identifier -> file extensions (lowercase, no dot)
_TYPE_EXTENSIONS: dict[str, tuple[str, ...]] = {
    CUESHEET_TYPE: ("cue",),
    "com.apple.disk-image-cdr": ("cdr",),
    "public.iso-image": ("iso",),
    "com.alcohol-soft.mdfimage": ("mdf",),
    "com.cdrwin.bin-image": ("bin",),
}


def _extension_of(path: Path) -> str:
    return path.suffix[1:].lower() if path.suffix else ""


class ExtensionTypeIdentifier(FileTypeIdentifier):
    """Identify files by their extension against a table of known type identifiers."""

    def __init__(self, extra: dict[str, Iterable[str]] | None = None):
        self.table = {k: tuple(v) for k, v in _TYPE_EXTENSIONS.items()}
        for type_id, exts in (extra or {}).items():
            self.table[type_id] = tuple(e.lower().lstrip(".") for e in exts)

    def type_of(self, path: Path) -> str | None:
        ext = _extension_of(path)
        if not ext:
            return None
        for type_id, exts in self.table.items():
            if ext in exts:
                return type_id
        return None

    def matches_type(self, path: Path, type_ids: Iterable[str]) -> bool:
        type_id = self.type_of(path)
        return type_id is not None and type_id in set(type_ids)
