"""Utility functions for cdbundle."""

import codecs
from pathlib import Path

from ..errors import SourceReadError

# Checked in order; UTF-32 LE must come before UTF-16 LE since its BOM
# starts with the UTF-16 LE one.
_BOMS = [
    (codecs.BOM_UTF8, "utf-8-sig"),
    (codecs.BOM_UTF32_LE, "utf-32"),
    (codecs.BOM_UTF32_BE, "utf-32"),
    (codecs.BOM_UTF16_LE, "utf-16"),
    (codecs.BOM_UTF16_BE, "utf-16"),
]

# Fallbacks for BOM-less text. cp1252 leaves five bytes undefined, so it
# still rejects most binary data instead of decoding everything like latin-1.
FALLBACK_ENCODINGS = ("utf-8", "cp1252")


def detect_encoding(data: bytes) -> str | None:
    """
    Guess the text encoding of raw bytes.

    Returns the codec name, or None if the data does not look like text
    in any supported encoding.
    """
    for bom, encoding in _BOMS:
        if data.startswith(bom):
            try:
                data.decode(encoding)
            except UnicodeDecodeError:
                return None
            return encoding

    # NUL never appears in a BOM-less cue sheet
    if b"\x00" in data:
        return None

    for encoding in FALLBACK_ENCODINGS:
        try:
            data.decode(encoding)
        except UnicodeDecodeError:
            continue
        return encoding
    return None


def _decode(data: bytes, path: Path | None) -> tuple[str, str]:
    encoding = detect_encoding(data)
    if encoding is None:
        raise SourceReadError(
            f"Could not determine the text encoding of {path or 'cue sheet'}",
            path=path,
        )
    return data.decode(encoding), encoding


def decode_text(data: bytes, path: Path | None = None) -> str:
    """Decode bytes with the detected encoding, raising SourceReadError if none fits."""
    return _decode(data, path)[0]


def read_text_guess_encoding(path: Path, limit: int | None = None) -> str:
    """Read a text file with best-guess encoding detection."""
    return read_text_with_encoding(path, limit)[0]


def read_text_with_encoding(path: Path, limit: int | None = None) -> tuple[str, str]:
    """
    Read a text file and report the encoding it was decoded with.

    Args:
        path: File to read
        limit: Optional maximum number of bytes to read (for sniffing)

    Returns:
        Decoded text and the codec name, so the file can be written back as it was

    Raises:
        SourceReadError: If the file cannot be read or decoded
    """
    try:
        with path.open("rb") as f:
            data = f.read() if limit is None else f.read(limit)
    except OSError as e:
        raise SourceReadError(f"Could not read {path}: {e}", path=path) from e
    return _decode(data, path)
