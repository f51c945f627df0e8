"""Shared fixtures: small cue/bin disc images on disk."""

from pathlib import Path

import pytest

CUE_TEXT = (
    'FILE "TRACK01.BIN" BINARY\n'
    '  TRACK 01 MODE1/2352\n'
    '    INDEX 01 00:00:00\n'
    'FILE "subdir\\TRACK02.BIN" BINARY\n'
    '  TRACK 02 AUDIO\n'
    '    INDEX 00 00:00:00\n'
    '    INDEX 01 00:02:00\n'
)


def write_disc(root: Path, cue_text: str, files: dict[str, bytes], cue_name: str = "game.cue") -> Path:
    """Write a cue sheet and its track files under root; returns the cue path."""
    root.mkdir(parents=True, exist_ok=True)
    for rel, data in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    cue_path = root / cue_name
    cue_path.write_text(cue_text, encoding="utf-8", newline="\n")
    return cue_path


@pytest.fixture
def disc(tmp_path):
    """Cue sheet referencing TRACK01.BIN and subdir\\TRACK02.BIN."""
    return write_disc(
        tmp_path / "source",
        CUE_TEXT,
        {
            "TRACK01.BIN": b"\x00" * 2352,
            "subdir/TRACK02.BIN": b"\x01" * 4704,
        },
    )


@pytest.fixture
def dest(tmp_path):
    path = tmp_path / "drives"
    path.mkdir()
    return path
