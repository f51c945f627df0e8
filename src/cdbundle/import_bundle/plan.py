"""Plan phase: work out which files go where and how the cue sheet must change."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Literal

import yaml

from ..adapters.cue_parser import CueSheetParser
from ..core.model import CueReference, Transfer
from ..core.ports import CueParser
from ..errors import CollisionError, CueParseError
from .models import TransferPlan

log = logging.getLogger(__name__)


def canonical_source_path(reference: str, cue_dir: Path) -> Path:
    """
    Resolve a raw cue reference against the cue sheet's folder.

    Backslashes are treated as separators, `.` and `..` are collapsed and
    symlinks in the containing folders are resolved. The final component
    is kept as written so the flattened name matches the reference.
    """
    normalized = reference.replace("\\", "/")
    joined = Path(os.path.normpath(Path(cue_dir) / normalized))
    return joined.parent.resolve() / joined.name


def build_plan(
    cue_text: str,
    cue_dir: Path,
    bundle_path: Path,
    parser: CueParser | None = None,
    on_collision: Literal["fail", "overwrite"] = "fail",
    title: str = "",
    cue_path: Path | None = None,
) -> TransferPlan:
    """
    Build the transfer plan for a cue sheet.

    Every file the cue sheet references is flattened into the bundle
    folder. References whose text differs from the flattened name are
    recorded in path_rewrites so the cue can be rewritten afterwards.

    Args:
        cue_text: Contents of the cue sheet
        cue_dir: Folder the cue sheet lives in; references are relative to it
        bundle_path: Destination bundle folder
        parser: Cue parser (defaults to CueSheetParser)
        on_collision: "fail" raises CollisionError when two different
            sources flatten to the same name; "overwrite" lets the last win
        title: Drive title used in the parse error message
        cue_path: Cue sheet path, stored on the plan for reference

    Returns:
        TransferPlan with one transfer per reference, in reference order

    Raises:
        CueParseError: If the cue sheet references no files
        CollisionError: On a name collision with on_collision="fail"
    """
    parser = parser or CueSheetParser()
    references = parser.references(cue_text)
    if not references:
        raise CueParseError(title or (cue_path.name if cue_path else cue_dir.name), path=cue_path)

    transfers: list[Transfer] = []
    rewrites: dict[str, str] = {}
    sources_by_dst: dict[Path, Path] = {}

    for ref in references:
        src = canonical_source_path(ref.text, cue_dir)
        name = src.name
        dst = Path(bundle_path) / name

        previous = sources_by_dst.get(dst)
        if previous is not None and previous != src:
            if on_collision == "fail":
                raise CollisionError(dst, [previous, src])
            log.warning("%s and %s both flatten to %s; the last one wins", previous, src, name)
        sources_by_dst[dst] = src

        transfers.append(Transfer(src=src, dst=dst))

        # Subfolder or Windows-style references won't exist in the flat bundle
        if ref.text != name:
            rewrites[ref.text] = name

    log.debug("Planned %d transfers, %d rewrites", len(transfers), len(rewrites))
    return TransferPlan(
        transfers=tuple(transfers),
        path_rewrites=rewrites,
        references=tuple(references),
        cue_path=str(cue_path) if cue_path else "",
        bundle_path=str(bundle_path),
    )


def plan_to_dict(plan: TransferPlan) -> dict[str, Any]:
    return {
        "version": plan.version,
        "generated_at": plan.generated_at,
        "cue_path": plan.cue_path,
        "bundle_path": plan.bundle_path,
        "transfers": [
            {"src": str(t.src), "dst": str(t.dst)}
            for t in plan.transfers
        ],
        "path_rewrites": dict(plan.path_rewrites),
        "references": [
            {
                "text": ref.text,
                "start": ref.start,
                "end": ref.end,
                "file_type": ref.file_type,
            }
            for ref in plan.references
        ],
    }


def plan_from_dict(data: dict[str, Any]) -> TransferPlan:
    return TransferPlan(
        version=data.get("version", 1),
        generated_at=data.get("generated_at", ""),
        cue_path=data.get("cue_path", ""),
        bundle_path=data.get("bundle_path", ""),
        transfers=tuple(
            Transfer(src=Path(t["src"]), dst=Path(t["dst"]))
            for t in data.get("transfers", [])
        ),
        path_rewrites=data.get("path_rewrites", {}),
        references=tuple(
            CueReference(
                text=r["text"],
                start=r["start"],
                end=r["end"],
                file_type=r.get("file_type", ""),
            )
            for r in data.get("references", [])
        ),
    )


def _is_yaml(path: Path) -> bool:
    return path.suffix.lower() in (".yaml", ".yml")


def save_plan(plan: TransferPlan, output_path: Path) -> None:
    """Save plan to a JSON file, or YAML if the path ends in .yaml/.yml."""
    data = plan_to_dict(plan)
    with output_path.open('w', encoding='utf-8') as f:
        if _is_yaml(output_path):
            yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)
        else:
            json.dump(data, f, indent=2, ensure_ascii=False)


def load_plan(input_path: Path) -> TransferPlan:
    """Load plan saved by save_plan."""
    with input_path.open('r', encoding='utf-8') as f:
        data = yaml.safe_load(f) if _is_yaml(input_path) else json.load(f)
    return plan_from_dict(data)
