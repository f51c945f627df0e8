import logging
import shutil
import threading
from pathlib import Path
from typing import Callable, Sequence

from ..core.model import ManifestEntry
from ..core.ports import TransferEngine
from ..errors import OperationCancelled

log = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, Path, Path], None]


class FileTransferEngine(TransferEngine):
    """
    Sequential copy/move engine.

    Checks the cancel flag before each file; a file already in flight is
    always finished. Every completed action is recorded so undo() can
    reverse it.
    """

    def __init__(
        self,
        copy_files: bool = True,
        cancel: threading.Event | None = None,
        on_progress: ProgressCallback | None = None,
    ):
        self.copy_files = copy_files
        self.cancel = cancel or threading.Event()
        self.on_progress = on_progress
        self.has_written_files = False
        self.entries: list[ManifestEntry] = []
        self._transfers: list[tuple[Path, Path]] = []
        self._created_dirs: list[Path] = []

    @property
    def transfers(self) -> Sequence[tuple[Path, Path]]:
        return tuple(self._transfers)

    def register_transfer(self, src: Path, dst: Path) -> None:
        self._transfers.append((Path(src), Path(dst)))

    def _make_parent(self, dst: Path) -> None:
        missing = []
        parent = dst.parent
        while not parent.exists():
            missing.append(parent)
            parent = parent.parent
        for d in reversed(missing):
            d.mkdir()
            self._created_dirs.append(d)

    def run(self) -> None:
        total = len(self._transfers)
        done: set[tuple[Path, Path]] = set()

        for index, (src, dst) in enumerate(self._transfers):
            if self.cancel.is_set():
                raise OperationCancelled("between_files")

            # Same file referenced more than once
            if (src, dst) in done:
                continue

            if not src.is_file():
                raise FileNotFoundError(f"Source file not found: {src}")

            self.has_written_files = True
            self._make_parent(dst)

            if self.copy_files:
                log.debug("Copying %s -> %s", src, dst)
                shutil.copy2(src, dst)
                self.entries.append(ManifestEntry(action="copy", src=str(src), dst=str(dst)))
            else:
                log.debug("Moving %s -> %s", src, dst)
                shutil.move(str(src), str(dst))
                self.entries.append(ManifestEntry(action="move", src=str(src), dst=str(dst)))

            done.add((src, dst))
            if self.on_progress:
                self.on_progress(index + 1, total, src, dst)

    def undo(self) -> bool:
        """Reverse recorded actions, newest first. Returns False if anything could not be undone."""
        ok = True
        for entry in reversed(self.entries):
            dst_path = Path(entry.dst)
            try:
                if entry.action == "move" and entry.src:
                    if dst_path.exists():
                        src_path = Path(entry.src)
                        src_path.parent.mkdir(parents=True, exist_ok=True)
                        shutil.move(str(dst_path), str(src_path))
                        log.debug("Moved back: %s -> %s", dst_path, src_path)
                elif dst_path.exists():
                    dst_path.unlink()
                    log.debug("Removed: %s", dst_path)
            except OSError as e:
                log.warning("Could not undo %s of %s: %s", entry.action, dst_path, e)
                ok = False
        self.entries.clear()

        for d in reversed(self._created_dirs):
            try:
                d.rmdir()
            except OSError:
                # Not empty or already gone
                pass
        self._created_dirs.clear()
        return ok
