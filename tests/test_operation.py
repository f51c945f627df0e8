"""End-to-end tests for the bundle import operation."""

import importlib
import threading

import pytest

from cdbundle.adapters.cue_parser import CueSheetParser
from cdbundle.adapters.fs_transfer import FileTransferEngine
from cdbundle.core.model import ImportRequest, SourceDrive
from cdbundle.errors import (
    BundleExistsError,
    CollisionError,
    CueParseError,
    CueWriteError,
    SourceReadError,
    TransferFailed,
)
from cdbundle.import_bundle.operation import BundleImport
from cdbundle.import_bundle.supervisor import Checkpoint

from conftest import write_disc


class FailingEngine(FileTransferEngine):
    """Real engine that fails while transferring the n-th file."""

    def __init__(self, copy_files, cancel, on_progress=None, fail_at=2):
        super().__init__(copy_files, cancel, on_progress)
        self.fail_at = fail_at
        self.calls = 0

    def _make_parent(self, dst):
        self.calls += 1
        if self.calls == self.fail_at:
            raise OSError(28, "No space left on device")
        super()._make_parent(dst)


def three_track_disc(root):
    return write_disc(
        root,
        'FILE "T1.BIN" BINARY\n  TRACK 01 MODE1/2352\n'
        'FILE "audio\\T2.WAV" WAVE\n  TRACK 02 AUDIO\n'
        'FILE "audio\\T3.WAV" WAVE\n  TRACK 03 AUDIO\n',
        {"T1.BIN": b"1", "audio/T2.WAV": b"2", "audio/T3.WAV": b"3"},
    )


def test_copy_import_scenario(disc, dest):
    """Test importing TRACK01.BIN + subdir\\TRACK02.BIN by copying."""
    op = BundleImport(ImportRequest(SourceDrive(disc, letter="D"), dest, copy_files=True))

    outcome = op.run()

    assert outcome.succeeded, outcome.error
    bundle = dest / "D game.cdmedia"
    assert outcome.bundle_path == bundle
    assert sorted(p.name for p in bundle.iterdir()) == ["TRACK01.BIN", "TRACK02.BIN", "tracks.cue"]
    cue = (bundle / "tracks.cue").read_text(encoding="utf-8")
    assert 'FILE "TRACK02.BIN" BINARY' in cue
    assert 'FILE "TRACK01.BIN" BINARY' in cue
    assert "subdir" not in cue
    # Originals untouched
    assert disc.exists()
    assert (disc.parent / "subdir" / "TRACK02.BIN").exists()
    assert op.error is None


def test_move_import_scenario(disc, dest):
    """Test that move mode removes the original cue and files on success."""
    op = BundleImport(ImportRequest(SourceDrive(disc), dest, copy_files=False))

    outcome = op.run()

    assert outcome.succeeded
    bundle = dest / "game.cdmedia"
    assert not disc.exists()
    assert not (disc.parent / "TRACK01.BIN").exists()
    cue = (bundle / "tracks.cue").read_text(encoding="utf-8")
    for name in outcome.plan.destination_names:
        assert name in cue
    for old in outcome.plan.path_rewrites:
        assert old not in cue
    assert [e.action for e in outcome.manifest.entries] == ["move", "move", "create"]


def test_tracks_cue_reparses_to_bundle_files(dest, tmp_path):
    """Test that the written cue references exactly the files in the bundle."""
    cue = three_track_disc(tmp_path / "src")

    outcome = BundleImport(ImportRequest(SourceDrive(cue), dest)).run()

    assert outcome.succeeded
    text = (outcome.bundle_path / "tracks.cue").read_text(encoding="utf-8")
    refs = CueSheetParser().referenced_paths(text)
    assert refs == ["T1.BIN", "T2.WAV", "T3.WAV"]
    assert all((outcome.bundle_path / r).is_file() for r in refs)


def test_windows_1252_cue_written_as_utf8(dest, tmp_path):
    """Test that a legacy-encoded cue is re-encoded as UTF-8."""
    root = tmp_path / "src"
    root.mkdir()
    (root / "Café").mkdir()
    (root / "Café" / "piste.bin").write_bytes(b"x")
    cue = root / "café.cue"
    cue.write_bytes('FILE "Café\\piste.bin" BINARY\n'.encode("cp1252"))

    outcome = BundleImport(ImportRequest(SourceDrive(cue), dest)).run()

    assert outcome.succeeded, outcome.error
    assert (outcome.bundle_path / "tracks.cue").read_bytes() == b'FILE "piste.bin" BINARY\n'


def test_parse_error_scenario(dest, tmp_path):
    """Test a cue with no references: CueParseError and no bundle."""
    cue = write_disc(tmp_path / "src", "REM nothing here\n", {}, cue_name="empty.cue")
    drive = SourceDrive(cue, title="Empty Disc")

    outcome = BundleImport(ImportRequest(drive, dest)).run()

    assert outcome.status == "failed"
    assert isinstance(outcome.error, CueParseError)
    assert "Empty Disc" in str(outcome.error)
    assert not (dest / "empty.cdmedia").exists()


def test_unreadable_cue(dest, tmp_path):
    """Test a missing cue sheet gives SourceReadError."""
    outcome = BundleImport(ImportRequest(SourceDrive(tmp_path / "missing.cue"), dest)).run()

    assert isinstance(outcome.error, SourceReadError)
    assert list(dest.iterdir()) == []


def test_transfer_failure_scenario(dest, tmp_path):
    """Test failure on the second of three files removes the bundle in copy mode."""
    cue = three_track_disc(tmp_path / "src")

    def factory(copy_files, cancel, on_progress=None):
        return FailingEngine(copy_files, cancel, on_progress, fail_at=2)

    outcome = BundleImport(ImportRequest(SourceDrive(cue), dest), engine_factory=factory).run()

    assert outcome.status == "failed"
    assert isinstance(outcome.error, TransferFailed)
    assert "No space left" in str(outcome.error)
    assert not (dest / "game.cdmedia").exists()
    assert outcome.rolled_back


def test_transfer_failure_in_move_mode_restores_sources(dest, tmp_path):
    """Test that a failed move puts already-moved files back."""
    cue = three_track_disc(tmp_path / "src")

    def factory(copy_files, cancel, on_progress=None):
        return FailingEngine(copy_files, cancel, on_progress, fail_at=3)

    outcome = BundleImport(
        ImportRequest(SourceDrive(cue), dest, copy_files=False), engine_factory=factory
    ).run()

    assert isinstance(outcome.error, TransferFailed)
    assert cue.exists()
    for rel in ("T1.BIN", "audio/T2.WAV", "audio/T3.WAV"):
        assert (cue.parent / rel).exists()
    assert not (dest / "game.cdmedia").exists()


def test_missing_track_file(dest, tmp_path):
    """Test that a referenced file that does not exist fails the import."""
    cue = write_disc(tmp_path / "src", 'FILE "a.bin" BINARY\nFILE "b.bin" BINARY\n', {"a.bin": b"a"})

    outcome = BundleImport(ImportRequest(SourceDrive(cue), dest)).run()

    assert isinstance(outcome.error, TransferFailed)
    assert isinstance(outcome.error.cause, FileNotFoundError)
    assert not (dest / "game.cdmedia").exists()


def test_cancel_after_plan_scenario(disc, dest):
    """Test cancelling after the plan is built: nothing transferred, no bundle."""
    op = BundleImport(ImportRequest(SourceDrive(disc), dest))
    seen = []

    def hook(checkpoint):
        seen.append(checkpoint)
        if checkpoint is Checkpoint.BEFORE_EXECUTE:
            op.cancel()

    op.on_checkpoint = hook
    outcome = op.run()

    assert outcome.cancelled
    assert outcome.error is None
    assert seen == [Checkpoint.BEFORE_PLAN, Checkpoint.BEFORE_REGISTER, Checkpoint.BEFORE_EXECUTE]
    assert not (dest / "game.cdmedia").exists()
    assert not op.engine.has_written_files


def test_cancel_before_plan(disc, dest):
    """Test cancelling at the first checkpoint."""
    op = BundleImport(ImportRequest(SourceDrive(disc), dest))
    op.on_checkpoint = lambda checkpoint: op.cancel()

    outcome = op.run()

    assert outcome.cancelled
    assert outcome.plan is None


def test_cancel_during_transfer_rolls_back(dest, tmp_path):
    """Test cancelling between files removes what was already copied."""
    cue = three_track_disc(tmp_path / "src")
    holder = {}

    def on_progress(index, total, src, dst):
        holder["op"].cancel()

    op = BundleImport(ImportRequest(SourceDrive(cue), dest), on_progress=on_progress)
    holder["op"] = op

    outcome = op.run()

    assert outcome.cancelled
    assert op.engine.has_written_files
    assert not (dest / "game.cdmedia").exists()


def test_cancel_before_start(disc, dest):
    """Test that an operation cancelled before running does nothing."""
    op = BundleImport(ImportRequest(SourceDrive(disc), dest))
    op.cancel()

    outcome = op.run()

    assert outcome.cancelled
    assert list(dest.iterdir()) == []


def test_cue_write_error_rolls_back(disc, dest, monkeypatch):
    """Test that failing to write tracks.cue removes the copied files."""
    finalize_mod = importlib.import_module("cdbundle.import_bundle.finalize")

    def broken_write(text, cue_path):
        raise CueWriteError(PermissionError(13, "Permission denied"), path=cue_path)

    monkeypatch.setattr(finalize_mod, "write_cue", broken_write)

    outcome = BundleImport(ImportRequest(SourceDrive(disc), dest)).run()

    assert isinstance(outcome.error, CueWriteError)
    assert not (dest / "game.cdmedia").exists()
    assert disc.exists()


def test_collision_fails_before_writing(dest, tmp_path):
    """Test that flattening collisions stop the import before any transfer."""
    cue = write_disc(
        tmp_path / "src",
        'FILE "cd1\\t.bin" BINARY\nFILE "cd2\\t.bin" BINARY\n',
        {"cd1/t.bin": b"1", "cd2/t.bin": b"2"},
    )

    outcome = BundleImport(ImportRequest(SourceDrive(cue), dest)).run()

    assert isinstance(outcome.error, CollisionError)
    assert list(dest.iterdir()) == []


def test_existing_bundle_left_alone(disc, dest):
    """Test that an existing bundle is reported and never deleted."""
    existing = dest / "game.cdmedia"
    existing.mkdir()
    (existing / "tracks.cue").write_text("mine")

    outcome = BundleImport(ImportRequest(SourceDrive(disc), dest)).run()

    assert isinstance(outcome.error, BundleExistsError)
    assert (existing / "tracks.cue").read_text() == "mine"


def test_incomplete_request(dest):
    """Test that a request without a drive does not perform."""
    op = BundleImport(ImportRequest(drive=None, destination_folder=dest))

    assert not op.should_perform()
    outcome = op.run()

    assert outcome.status == "failed"
    assert op.imported_path is None


def test_run_on_worker_thread(disc, dest):
    """Test running the import on its own thread."""
    op = BundleImport(ImportRequest(SourceDrive(disc), dest))

    thread = op.start()
    outcome = op.join(timeout=30)

    assert isinstance(thread, threading.Thread)
    assert outcome is not None and outcome.succeeded
    assert (dest / "game.cdmedia" / "tracks.cue").exists()


def test_keyboard_interrupt_mid_copy_rolls_back(dest, tmp_path):
    """Test that Ctrl-C inside a copy still removes the partial bundle."""
    cue = three_track_disc(tmp_path / "src")

    def on_progress(index, total, src, dst):
        raise KeyboardInterrupt

    op = BundleImport(ImportRequest(SourceDrive(cue), dest), on_progress=on_progress)

    with pytest.raises(KeyboardInterrupt):
        op.run()

    assert not (dest / "game.cdmedia").exists()
    assert (cue.parent / "T1.BIN").exists()


def test_keyboard_interrupt_mid_move_restores_sources(dest, tmp_path):
    """Test that Ctrl-C inside a move puts the moved track back."""
    cue = three_track_disc(tmp_path / "src")

    def on_progress(index, total, src, dst):
        raise KeyboardInterrupt

    op = BundleImport(
        ImportRequest(SourceDrive(cue), dest, copy_files=False), on_progress=on_progress
    )

    with pytest.raises(KeyboardInterrupt):
        op.run()

    assert not (dest / "game.cdmedia").exists()
    assert cue.exists()
    for rel in ("T1.BIN", "audio/T2.WAV", "audio/T3.WAV"):
        assert (cue.parent / rel).exists()


def test_cue_write_error_in_move_mode_restores_sources(disc, dest, monkeypatch):
    """Test that failing to write tracks.cue moves the tracks back and keeps the cue."""
    finalize_mod = importlib.import_module("cdbundle.import_bundle.finalize")
    original_text = disc.read_text()

    def broken_write(text, cue_path):
        raise CueWriteError(PermissionError(13, "Permission denied"), path=cue_path)

    monkeypatch.setattr(finalize_mod, "write_cue", broken_write)

    outcome = BundleImport(ImportRequest(SourceDrive(disc), dest, copy_files=False)).run()

    assert isinstance(outcome.error, CueWriteError)
    assert outcome.rolled_back
    assert disc.read_text() == original_text
    assert (disc.parent / "TRACK01.BIN").exists()
    assert (disc.parent / "subdir" / "TRACK02.BIN").exists()
    assert not (dest / "game.cdmedia").exists()
