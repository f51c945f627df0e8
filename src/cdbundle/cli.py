"""CLI for cdbundle - import cue/bin disc images as .cdmedia bundles."""

import argparse
import json
import platform
import sys
from pathlib import Path
from typing import Any

from . import __version__
from .core.model import ImportRequest, SourceDrive
from .errors import BundleImportError, CueParseError
from .import_bundle.naming import CUE_FILENAME, bundle_name, imported_path
from .import_bundle.suitability import CUE_TYPES, is_suitable
from .logging_setup import init_logging
from .runtime import build_runtime


def _drive_from_args(args: argparse.Namespace) -> SourceDrive:
    return SourceDrive(
        path=Path(args.cue).resolve(),
        letter=getattr(args, "letter", None),
        title=getattr(args, "title", None) or "",
    )


def cmd_check(args: argparse.Namespace, rt: Any) -> int:
    """Report whether a file can be imported as a bundle."""
    drive = _drive_from_args(args)
    by_type = rt.identifier.matches_type(drive.path, CUE_TYPES)
    suitable = is_suitable(drive, identifier=rt.identifier, parser=rt.parser)

    if args.json:
        print(json.dumps({
            "path": str(drive.path),
            "type": rt.identifier.type_of(drive.path),
            "by_type": by_type,
            "suitable": suitable,
        }, indent=2))
    elif not args.quiet:
        if suitable:
            how = "file type" if by_type else "contents"
            print(f"✓ {drive.path} can be imported (matched by {how})")
        else:
            print(f"✗ {drive.path} is not a cue sheet")

    return 0 if suitable else 1


def cmd_name(args: argparse.Namespace, rt: Any) -> int:
    """Print the bundle name a drive would be imported as."""
    print(bundle_name(_drive_from_args(args)))
    return 0


def _plan_for(drive: SourceDrive, bundle_path: Path, rt: Any):
    from .core.utils import read_text_guess_encoding
    from .import_bundle.plan import build_plan

    cue_text = read_text_guess_encoding(drive.path)
    return build_plan(
        cue_text,
        drive.path.parent,
        bundle_path,
        parser=rt.parser,
        on_collision=rt.config.transfer.on_collision,
        title=drive.title,
        cue_path=drive.path,
    )


def cmd_plan(args: argparse.Namespace, rt: Any) -> int:
    """Build the transfer plan for a cue sheet without touching any files."""
    from .import_bundle.plan import plan_to_dict, save_plan

    drive = _drive_from_args(args)
    if not drive.path.is_file():
        print(f"Cue sheet does not exist: {drive.path}", file=sys.stderr)
        return 1

    request = ImportRequest(drive=drive, destination_folder=Path(args.dest).resolve())
    bundle_path = imported_path(request)
    assert bundle_path is not None

    try:
        plan = _plan_for(drive, bundle_path, rt)
    except BundleImportError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.out:
        out_path = Path(args.out)
        save_plan(plan, out_path)
        if not args.quiet:
            print(f"Saved plan to: {out_path}")

    if args.json:
        print(json.dumps(plan_to_dict(plan), indent=2, ensure_ascii=False))
    elif not args.quiet:
        print(f"Bundle: {bundle_path}")
        print(f"\nTransfers ({len(plan.transfers)}):")
        for t in plan.transfers:
            missing = "" if t.src.is_file() else "  [missing]"
            print(f"  {t.src} -> {t.dst.name}{missing}")
        if plan.path_rewrites:
            print(f"\nCue rewrites ({len(plan.path_rewrites)}):")
            for old, new in plan.path_rewrites.items():
                print(f"  {old} -> {new}")

    return 0


def wait_for_import(operation: Any, poll: float = 0.2) -> Any:
    """
    Run an import on its worker thread and wait for it.

    Ctrl-C cancels the import instead of abandoning it, so the engine stops
    between files and the partial bundle is rolled back before returning.
    """
    thread = operation.start()
    try:
        while thread.is_alive():
            thread.join(poll)
    except KeyboardInterrupt:
        print("Import interrupted, rolling back...", file=sys.stderr)
        operation.cancel()
        operation.join()
    return operation.outcome


def cmd_import(args: argparse.Namespace, rt: Any) -> int:
    """Import a cue sheet and its files into a bundle."""
    from .import_bundle.rollback import save_manifest

    drive = _drive_from_args(args)
    if not drive.path.is_file():
        print(f"Cue sheet does not exist: {drive.path}", file=sys.stderr)
        return 1

    dest = Path(args.dest).resolve() if args.dest else rt.config.import_.destination.resolve()
    copy_files = rt.config.import_.copy_files and not args.move

    if args.dry_run:
        bundle_path = imported_path(ImportRequest(drive=drive, destination_folder=dest))
        assert bundle_path is not None
        try:
            plan = _plan_for(drive, bundle_path, rt)
        except BundleImportError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        verb = "copy" if copy_files else "move"
        print(f"[DRY RUN] Would create {bundle_path}")
        for t in plan.transfers:
            print(f"[DRY RUN] Would {verb} {t.src} -> {t.dst}")
        print(f"[DRY RUN] Would write {bundle_path / CUE_FILENAME}")
        if not copy_files:
            print(f"[DRY RUN] Would delete {drive.path}")
        return 0

    # Moving deletes the originals
    if not copy_files and not args.confirm:
        print("Error: --confirm required to move files", file=sys.stderr)
        return 1

    request = ImportRequest(drive=drive, destination_folder=dest, copy_files=copy_files)

    def on_progress(index: int, total: int, src: Path, dst: Path) -> None:
        if not args.quiet and not args.json:
            print(f"[{index}/{total}] {src.name}")

    operation = rt.new_import(request, on_progress=on_progress)
    outcome = wait_for_import(operation)
    if outcome is None:
        print("Error during import: the import stopped unexpectedly", file=sys.stderr)
        return 1

    if outcome.succeeded and args.manifest and outcome.manifest is not None:
        manifest_path = Path(args.manifest)
        save_manifest(outcome.manifest, manifest_path)
        if not args.quiet and not args.json:
            print(f"Manifest saved to: {manifest_path}")

    if args.json:
        print(json.dumps({
            "status": outcome.status,
            "bundle": str(outcome.bundle_path) if outcome.bundle_path else None,
            "error": str(outcome.error) if outcome.error else None,
            "files": len(outcome.plan.transfers) if outcome.plan else 0,
            "rolled_back": outcome.rolled_back,
        }, indent=2, ensure_ascii=False))
    elif outcome.succeeded:
        if not args.quiet:
            print(f"\nImported {len(outcome.plan.transfers)} files into: {outcome.bundle_path}")
    elif outcome.cancelled:
        print("Import cancelled", file=sys.stderr)
    else:
        # CueParseError text is already phrased for the user
        prefix = "" if isinstance(outcome.error, CueParseError) else "Error during import: "
        print(f"{prefix}{outcome.error}", file=sys.stderr)

    return 0 if outcome.succeeded else 1


def cmd_rollback(args: argparse.Namespace, rt: Any) -> int:
    """Undo a completed import from its manifest."""
    from .import_bundle.rollback import rollback_from_file

    manifest_path = Path(args.manifest)
    if not manifest_path.exists():
        print(f"Manifest not found: {manifest_path}", file=sys.stderr)
        return 1

    # Check for confirmation if not dry-run
    if not args.dry_run and not args.confirm:
        print("Error: --confirm required to execute rollback", file=sys.stderr)
        return 1

    try:
        actions = rollback_from_file(manifest_path, dry_run=args.dry_run)
    except (OSError, ValueError, KeyError) as e:
        print(f"Error during rollback: {e}", file=sys.stderr)
        return 1

    if not args.quiet:
        for action in actions:
            print(action)
        if not args.dry_run:
            print("Rollback completed.")
    return 0


def version_string() -> str:
    return (
        f"cdbundle {__version__} "
        f"(python {platform.python_version()}, platform {platform.system().lower()})"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cdbundle", description="Import cue/bin disc images as .cdmedia bundles"
    )
    parser.add_argument(
        "--version", action="version", version=version_string()
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config file (default: search cwd/cdbundle.toml, dest/cdbundle.toml)",
    )
    parser.add_argument(
        "--log-level", default=None,
        help="Log level (default: from config, WARNING)"
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Minimize output"
    )
    parser.add_argument(
        "--json", action="store_true", help="Machine-readable output"
    )

    subparsers = parser.add_subparsers(dest="cmd", required=True)

    # check command
    parser_check = subparsers.add_parser("check", help="Check whether a file can be imported")
    parser_check.add_argument("cue", help="Cue sheet (or renamed image) to check")

    # name command
    parser_name = subparsers.add_parser("name", help="Print the bundle name for a cue sheet")
    parser_name.add_argument("cue", help="Cue sheet path")
    parser_name.add_argument("--letter", help="Drive letter to prefix")

    # plan command
    parser_plan = subparsers.add_parser("plan", help="Show what an import would do")
    parser_plan.add_argument("cue", help="Cue sheet path")
    parser_plan.add_argument("dest", help="Folder the bundle would be created in")
    parser_plan.add_argument("--letter", help="Drive letter to prefix")
    parser_plan.add_argument(
        "--out", help="Save plan to file (.json, .yaml or .yml)"
    )

    # import command
    parser_import = subparsers.add_parser("import", help="Import a cue sheet into a bundle")
    parser_import.add_argument("cue", help="Cue sheet path")
    parser_import.add_argument(
        "dest", nargs="?", default=None,
        help="Folder to create the bundle in (default: from config)"
    )
    parser_import.add_argument("--letter", help="Drive letter to prefix")
    parser_import.add_argument("--title", help="Display title used in messages")
    parser_import.add_argument(
        "--move", action="store_true",
        help="Move files instead of copy"
    )
    parser_import.add_argument(
        "--confirm", action="store_true",
        help="Required with --move"
    )
    parser_import.add_argument(
        "--dry-run", action="store_true",
        help="Print what would be done without writing"
    )
    parser_import.add_argument(
        "--manifest", help="Save a manifest for later rollback"
    )

    # rollback command
    parser_rollback = subparsers.add_parser("rollback", help="Undo an import from its manifest")
    parser_rollback.add_argument(
        "--manifest", required=True,
        help="Path to manifest file"
    )
    parser_rollback.add_argument(
        "--dry-run", action="store_true",
        help="Print changes without writing"
    )
    parser_rollback.add_argument(
        "--confirm", action="store_true",
        help="Required to proceed (unless dry-run)"
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        dest = Path(args.dest) if getattr(args, "dest", None) else None
        rt = build_runtime(config_path=args.config, destination=dest)
    except BundleImportError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    init_logging(args.log_level or rt.config.log.level, rt.config.log.file)

    handlers = {
        "check": cmd_check,
        "name": cmd_name,
        "plan": cmd_plan,
        "import": cmd_import,
        "rollback": cmd_rollback,
    }

    handler = handlers.get(args.cmd)
    if handler:
        try:
            exit_code = handler(args, rt)
            sys.exit(exit_code)
        except (BundleImportError, ValueError, OSError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    else:
        print(f"Unknown command: {args.cmd}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
