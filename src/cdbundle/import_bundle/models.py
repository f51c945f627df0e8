"""Data models for bundle import operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Literal, Mapping

from ..core.model import CueReference, ManifestEntry, Transfer

if TYPE_CHECKING:
    from ..errors import BundleImportError


@dataclass(frozen=True)
class TransferPlan:
    """Files to transfer into a bundle and the cue text rewrites they need."""

    transfers: tuple[Transfer, ...]
    path_rewrites: Mapping[str, str]  # original reference text -> flattened name
    references: tuple[CueReference, ...] = ()
    cue_path: str = ""
    bundle_path: str = ""
    version: int = 1
    generated_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def __post_init__(self) -> None:
        object.__setattr__(self, "transfers", tuple(self.transfers))
        object.__setattr__(self, "references", tuple(self.references))
        object.__setattr__(self, "path_rewrites", MappingProxyType(dict(self.path_rewrites)))

    @property
    def destination_names(self) -> list[str]:
        return [t.dst.name for t in self.transfers]


@dataclass
class ImportManifest:
    """Manifest of everything an import wrote, enabling rollback."""

    version: int = 1
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    cue_path: str = ""
    bundle_path: str = ""
    operation: Literal["move", "copy"] = "copy"
    cue_text: str = ""  # Original cue text, restored on rollback of a move
    cue_encoding: str = "utf-8"  # Codec the original cue was read with
    entries: list[ManifestEntry] = field(default_factory=list)


@dataclass
class ImportOutcome:
    """Terminal result of a bundle import attempt."""

    status: Literal["succeeded", "failed", "cancelled"]
    bundle_path: Path | None = None
    error: BundleImportError | None = None
    plan: TransferPlan | None = None
    manifest: ImportManifest | None = None
    rolled_back: bool = False

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"

    @property
    def cancelled(self) -> bool:
        return self.status == "cancelled"
