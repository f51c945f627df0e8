import re
from pathlib import Path

from ..core.model import CueReference
from ..core.ports import CueParser
from ..core.utils import read_text_guess_encoding
from ..errors import SourceReadError

FILE_TYPES = ("BINARY", "MOTOROLA", "AIFF", "WAVE", "MP3", "FLAC", "OGG")

# FILE "path with spaces.bin" BINARY
# FILE path.bin BINARY
# FILE unquoted path with spaces.bin BINARY
# A quoted path ends at its quote, so any type token (and trailing text)
# is accepted after it. FILE_TYPES only decides where a bare path ends.
FILE_RE = re.compile(
    r'^[ \t]*FILE[ \t]+'
    r'(?:'
    r'"(?P<quoted>[^"\r\n]+)"(?:[ \t]+(?P<qtype>[^ \t\r\n]+))?[^\r\n]*'
    r'|'
    r'(?P<bare>[^"\r\n]+?)(?:[ \t]+(?P<type>' + "|".join(FILE_TYPES) + r'))?[ \t]*'
    r')\r?$',
    re.IGNORECASE | re.MULTILINE,
)

DEFAULT_SNIFF_BYTES = 64 * 1024


class CueSheetParser(CueParser):
    def __init__(self, sniff_bytes: int = DEFAULT_SNIFF_BYTES):
        self.sniff_bytes = sniff_bytes

    def references(self, text: str) -> list[CueReference]:
        refs: list[CueReference] = []
        for m in FILE_RE.finditer(text):
            group = "quoted" if m.group("quoted") is not None else "bare"
            start, end = m.span(group)
            refs.append(CueReference(
                text=m.group(group),
                start=start,
                end=end,
                file_type=(m.group("qtype") or m.group("type") or "").upper(),
            ))
        return refs

    def referenced_paths(self, text: str) -> list[str]:
        return [ref.text for ref in self.references(text)]

    def is_cue_sheet(self, path: Path) -> bool:
        if not path.is_file():
            return False
        try:
            text = read_text_guess_encoding(path, limit=self.sniff_bytes)
        except SourceReadError:
            return False
        return bool(self.references(text))
