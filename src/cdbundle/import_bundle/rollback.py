"""Rollback of failed imports, and undo of completed ones from a saved manifest."""

import json
import logging
import shutil
from pathlib import Path

from ..core.ports import TransferEngine
from .models import ImportManifest, ManifestEntry
from .naming import CUE_FILENAME

log = logging.getLogger(__name__)


def rollback(
    bundle_path: Path | None,
    copy_files: bool,
    any_files_written: bool,
    engine: TransferEngine | None = None,
) -> bool:
    """
    Clean up after a failed or cancelled import.

    The engine is asked to undo whatever it recorded: copies are removed
    and moved files are moved back. In copy mode, once anything was
    written, the whole bundle folder is then deleted. In move mode the
    bundle folder is only removed if it is empty, so source data that
    could not be moved back is never destroyed.

    Errors are logged, never raised, so the original failure stays the
    one reported.

    Returns:
        True if cleanup completed
    """
    undid = True
    if engine is not None:
        try:
            undid = engine.undo()
        except Exception as e:
            log.warning("Transfer undo failed: %s", e)
            undid = False

    if bundle_path is None or not any_files_written:
        return undid

    if copy_files:
        if not bundle_path.exists():
            return True
        try:
            shutil.rmtree(bundle_path)
            log.info("Removed partial bundle %s", bundle_path)
            return True
        except OSError as e:
            log.warning("Could not remove partial bundle %s: %s", bundle_path, e)
            return False

    # Move mode: tracks.cue and temp files are ours, anything else may be source data
    for name in (CUE_FILENAME, f".{CUE_FILENAME}.tmp"):
        leftover = bundle_path / name
        if leftover.is_file() and not _is_moved_file(leftover, engine):
            try:
                leftover.unlink()
            except OSError as e:
                log.warning("Could not remove %s: %s", leftover, e)
    try:
        bundle_path.rmdir()
    except FileNotFoundError:
        pass
    except OSError as e:
        log.warning("Bundle %s left in place after failed move: %s", bundle_path, e)
        return False
    return undid


def _is_moved_file(path: Path, engine: TransferEngine | None) -> bool:
    if engine is None:
        return False
    return any(Path(dst) == path for _src, dst in engine.transfers)


def save_manifest(manifest: ImportManifest, output_path: Path) -> None:
    """Save manifest to JSON file."""
    data = {
        "version": manifest.version,
        "timestamp": manifest.timestamp,
        "cue_path": manifest.cue_path,
        "bundle_path": manifest.bundle_path,
        "operation": manifest.operation,
        "cue_text": manifest.cue_text,
        "cue_encoding": manifest.cue_encoding,
        "entries": [
            {
                "action": entry.action,
                "src": entry.src,
                "dst": entry.dst,
            }
            for entry in manifest.entries
        ],
    }

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open('w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def load_manifest(input_path: Path) -> ImportManifest:
    """Load manifest from JSON file."""
    with input_path.open('r', encoding='utf-8') as f:
        data = json.load(f)

    manifest = ImportManifest(
        version=data.get("version", 1),
        timestamp=data.get("timestamp", ""),
        cue_path=data.get("cue_path", ""),
        bundle_path=data.get("bundle_path", ""),
        operation=data.get("operation", "copy"),
        cue_text=data.get("cue_text", ""),
        cue_encoding=data.get("cue_encoding", "utf-8"),
    )

    for entry_data in data.get("entries", []):
        manifest.entries.append(ManifestEntry(
            action=entry_data["action"],
            src=entry_data.get("src"),
            dst=entry_data["dst"],
        ))

    return manifest


def rollback_import(manifest: ImportManifest, dry_run: bool = False) -> list[str]:
    """
    Undo a completed import recorded in a manifest.

    Args:
        manifest: Import manifest to roll back
        dry_run: If True, only report what would be done

    Returns:
        Human-readable description of each action, in order
    """
    actions: list[str] = []
    prefix = "[DRY RUN] Would " if dry_run else ""

    # Process entries in reverse order
    for entry in reversed(manifest.entries):
        dst_path = Path(entry.dst)

        if entry.action == "move" and entry.src:
            src_path = Path(entry.src)
            if dry_run or dst_path.exists():
                if not dry_run:
                    src_path.parent.mkdir(parents=True, exist_ok=True)
                    shutil.move(str(dst_path), str(src_path))
                actions.append(f"{prefix}move back: {dst_path} -> {src_path}")
        else:
            if dry_run or dst_path.exists():
                if not dry_run:
                    dst_path.unlink()
                actions.append(f"{prefix}remove: {dst_path}")

    # A move deleted the original cue sheet; put it back
    if manifest.operation == "move" and manifest.cue_text and manifest.cue_path:
        cue_path = Path(manifest.cue_path)
        if dry_run or not cue_path.exists():
            if not dry_run:
                cue_path.parent.mkdir(parents=True, exist_ok=True)
                # Same codec and line endings as the file that was imported
                cue_path.write_bytes(manifest.cue_text.encode(manifest.cue_encoding))
            actions.append(f"{prefix}restore cue sheet: {cue_path}")

    bundle_path = Path(manifest.bundle_path) if manifest.bundle_path else None
    if bundle_path is not None and (dry_run or bundle_path.is_dir()):
        if dry_run:
            actions.append(f"{prefix}remove bundle folder: {bundle_path}")
        else:
            try:
                bundle_path.rmdir()
                actions.append(f"remove bundle folder: {bundle_path}")
            except OSError as e:
                log.warning("Bundle folder %s not removed: %s", bundle_path, e)

    return actions


def rollback_from_file(manifest_path: Path, dry_run: bool = False) -> list[str]:
    """
    Load manifest from file and roll back.

    Args:
        manifest_path: Path to manifest JSON file
        dry_run: If True, only report what would be done
    """
    manifest = load_manifest(manifest_path)
    return rollback_import(manifest, dry_run=dry_run)
