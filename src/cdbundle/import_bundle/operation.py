"""The bundle import operation: read, plan, transfer, finalize, roll back on failure."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable

from ..adapters.cue_parser import CueSheetParser
from ..adapters.fs_transfer import FileTransferEngine, ProgressCallback
from ..core.model import ImportRequest
from ..core.ports import CueParser, TransferEngine
from ..core.utils import read_text_with_encoding
from ..errors import BundleExistsError, BundleImportError, OperationCancelled
from .finalize import RewriteMode, finalize
from .models import ImportManifest, ImportOutcome, TransferPlan
from .naming import imported_path
from .plan import build_plan
from .rollback import rollback
from .supervisor import Checkpoint, CheckpointHook, check_cancelled, execute

log = logging.getLogger(__name__)

EngineFactory = Callable[[bool, threading.Event, ProgressCallback | None], TransferEngine]


def default_engine_factory(
    copy_files: bool,
    cancel: threading.Event,
    on_progress: ProgressCallback | None = None,
) -> TransferEngine:
    return FileTransferEngine(copy_files=copy_files, cancel=cancel, on_progress=on_progress)


# Bundle paths with an import in flight; one import per destination at a time
_active_bundles: set[Path] = set()
_active_lock = threading.Lock()


class BundleImport:
    """
    Import a cue sheet and the files it references into a flat .cdmedia bundle.

    run() never raises for import failures: the terminal state is stored
    on `outcome` (and `error`) after cleanup has already happened.
    cancel() may be called from any thread; it is honoured at each
    Checkpoint and by the transfer engine between files.
    """

    def __init__(
        self,
        request: ImportRequest,
        engine_factory: EngineFactory = default_engine_factory,
        parser: CueParser | None = None,
        rewrite_mode: RewriteMode = "range",
        on_collision: str = "fail",
        on_checkpoint: CheckpointHook | None = None,
        on_progress: ProgressCallback | None = None,
    ):
        self.request = request
        self.engine_factory = engine_factory
        self.parser = parser or CueSheetParser()
        self.rewrite_mode = rewrite_mode
        self.on_collision = on_collision
        self.on_checkpoint = on_checkpoint
        self.on_progress = on_progress

        self.outcome: ImportOutcome | None = None
        self.plan: TransferPlan | None = None
        self.engine: TransferEngine | None = None
        self._cancel = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def imported_path(self) -> Path | None:
        return imported_path(self.request)

    @property
    def error(self) -> BundleImportError | None:
        return self.outcome.error if self.outcome else None

    @property
    def is_cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        self._cancel.set()

    def should_perform(self) -> bool:
        return (
            not self.is_cancelled
            and self.request.drive is not None
            and self.request.destination_folder is not None
        )

    def start(self) -> threading.Thread:
        """Run the import on a dedicated worker thread."""
        if self._thread is not None:
            raise RuntimeError("Import already started")
        self._thread = threading.Thread(target=self.run, name="cdbundle-import", daemon=True)
        self._thread.start()
        return self._thread

    def join(self, timeout: float | None = None) -> ImportOutcome | None:
        if self._thread is not None:
            self._thread.join(timeout)
        return self.outcome

    def run(self) -> ImportOutcome:
        if not self.should_perform():
            if self.is_cancelled:
                self.outcome = ImportOutcome(status="cancelled", bundle_path=self.imported_path)
            else:
                self.outcome = ImportOutcome(
                    status="failed",
                    error=BundleImportError("Import needs a source drive and a destination folder"),
                )
            return self.outcome

        bundle_path = self.imported_path
        assert bundle_path is not None

        with _active_lock:
            if bundle_path in _active_bundles:
                self.outcome = ImportOutcome(
                    status="failed",
                    bundle_path=bundle_path,
                    error=BundleExistsError(bundle_path),
                )
                return self.outcome
            _active_bundles.add(bundle_path)

        try:
            self.outcome = self._perform(bundle_path)
        finally:
            with _active_lock:
                _active_bundles.discard(bundle_path)
        return self.outcome

    def _perform(self, bundle_path: Path) -> ImportOutcome:
        drive = self.request.drive
        assert drive is not None
        copy_files = self.request.copy_files

        self.engine = engine = self.engine_factory(copy_files, self._cancel, self.on_progress)
        log.info("Importing %s into %s (%s)", drive.path, bundle_path, "copy" if copy_files else "move")

        try:
            if bundle_path.exists():
                raise BundleExistsError(bundle_path)

            cue_text, cue_encoding = read_text_with_encoding(drive.path)

            check_cancelled(self._cancel, Checkpoint.BEFORE_PLAN, self.on_checkpoint)
            self.plan = build_plan(
                cue_text,
                drive.path.parent,
                bundle_path,
                parser=self.parser,
                on_collision=self.on_collision,  # type: ignore[arg-type]
                title=drive.title,
                cue_path=drive.path,
            )

            execute(self.plan, engine, self._cancel, self.on_checkpoint)

            cue_entry = finalize(
                cue_text,
                self.plan,
                copy_files,
                drive.path,
                mode=self.rewrite_mode,
            )
        except OperationCancelled:
            rolled_back = self._rollback(bundle_path, engine)
            return ImportOutcome(
                status="cancelled",
                bundle_path=bundle_path,
                plan=self.plan,
                rolled_back=rolled_back,
            )
        except BundleImportError as e:
            log.error("Import of %s failed: %s", drive.path, e)
            rolled_back = self._rollback(bundle_path, engine)
            return ImportOutcome(
                status="failed",
                bundle_path=bundle_path,
                error=e,
                plan=self.plan,
                rolled_back=rolled_back,
            )
        except BaseException:
            # Includes KeyboardInterrupt raised from inside a transfer
            self._rollback(bundle_path, engine)
            raise

        manifest = ImportManifest(
            cue_path=str(drive.path),
            bundle_path=str(bundle_path),
            operation="copy" if copy_files else "move",
            cue_text=cue_text,
            cue_encoding=cue_encoding,
            entries=[*getattr(engine, "entries", []), cue_entry],
        )
        log.info("Imported %s: %d files", bundle_path, len(self.plan.transfers))
        return ImportOutcome(
            status="succeeded",
            bundle_path=bundle_path,
            plan=self.plan,
            manifest=manifest,
        )

    def _rollback(self, bundle_path: Path, engine: TransferEngine) -> bool:
        return rollback(
            bundle_path,
            self.request.copy_files,
            engine.has_written_files,
            engine,
        )
