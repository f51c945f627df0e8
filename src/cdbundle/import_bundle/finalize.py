"""Finalize phase: rewrite the cue sheet for the flat bundle and write it out."""

import logging
from pathlib import Path
from typing import Literal, Mapping, Sequence

from ..core.model import CueReference
from ..errors import CueWriteError
from .models import ManifestEntry, TransferPlan
from .naming import CUE_FILENAME

log = logging.getLogger(__name__)

RewriteMode = Literal["range", "literal"]


def rewrite_literal(cue_text: str, path_rewrites: Mapping[str, str]) -> str:
    """
    Replace every literal occurrence of each old path with its new name.

    Longer keys go first so a key that is a substring of another cannot
    clobber it. Text elsewhere in the sheet that happens to equal an old
    path is replaced too.
    """
    revised = cue_text
    for old in sorted(path_rewrites, key=len, reverse=True):
        revised = revised.replace(old, path_rewrites[old])
    return revised


def rewrite_ranges(
    cue_text: str,
    path_rewrites: Mapping[str, str],
    references: Sequence[CueReference],
) -> str:
    """Replace only the parsed reference spans, leaving all other text alone."""
    revised = cue_text
    # Back to front so earlier offsets stay valid
    for ref in sorted(references, key=lambda r: r.start, reverse=True):
        new = path_rewrites.get(ref.text)
        if new is None:
            continue
        if revised[ref.start:ref.end] != ref.text:
            raise ValueError(f"Reference {ref.text!r} not found at {ref.start}:{ref.end}")
        revised = revised[:ref.start] + new + revised[ref.end:]
    return revised


def rewrite_cue(
    cue_text: str,
    path_rewrites: Mapping[str, str],
    references: Sequence[CueReference] | None = None,
    mode: RewriteMode = "range",
) -> str:
    """Rewrite cue text so its FILE references point at the flattened names."""
    if mode == "range" and references:
        return rewrite_ranges(cue_text, path_rewrites, references)
    return rewrite_literal(cue_text, path_rewrites)


def write_cue(text: str, cue_path: Path) -> None:
    """Write cue text as UTF-8, atomically via a temp file."""
    tmp_path = cue_path.with_name(f".{cue_path.name}.tmp")
    try:
        tmp_path.write_text(text, encoding='utf-8')
        tmp_path.replace(cue_path)
    except OSError as e:
        try:
            tmp_path.unlink()
        except OSError:
            pass
        raise CueWriteError(e, path=cue_path) from e


def finalize(
    cue_text: str,
    plan: TransferPlan,
    copy_files: bool,
    original_cue_path: Path,
    mode: RewriteMode = "range",
) -> ManifestEntry:
    """
    Write the rewritten cue sheet into the bundle.

    In move mode the original cue sheet is deleted once the new one is on
    disk. Failing to delete it is logged but does not fail the import.

    Returns:
        Manifest entry for the created tracks.cue

    Raises:
        CueWriteError: If tracks.cue could not be written
    """
    revised = rewrite_cue(cue_text, plan.path_rewrites, plan.references, mode)
    final_cue_path = Path(plan.bundle_path) / CUE_FILENAME
    write_cue(revised, final_cue_path)
    log.info("Wrote %s", final_cue_path)

    if not copy_files:
        try:
            original_cue_path.unlink()
        except OSError as e:
            log.warning("Could not remove original cue sheet %s: %s", original_cue_path, e)

    return ManifestEntry(action="create", dst=str(final_cue_path))
