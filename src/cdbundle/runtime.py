"""Runtime wiring helper for CLI applications."""

from dataclasses import dataclass
from pathlib import Path

from .adapters.cue_parser import CueSheetParser
from .adapters.filetypes import ExtensionTypeIdentifier
from .adapters.fs_transfer import ProgressCallback
from .config import BundleConfig, load_config
from .core.model import ImportRequest
from .import_bundle.operation import BundleImport


@dataclass
class Runtime:
    """Container for all wired components."""
    config: BundleConfig
    parser: CueSheetParser
    identifier: ExtensionTypeIdentifier

    def new_import(
        self,
        request: ImportRequest,
        on_progress: ProgressCallback | None = None,
    ) -> BundleImport:
        return BundleImport(
            request,
            parser=self.parser,
            rewrite_mode=self.config.cue.rewrite,  # type: ignore[arg-type]
            on_collision=self.config.transfer.on_collision,
            on_progress=on_progress,
        )


def build_runtime(
    config_path: Path | None = None,
    destination: Path | None = None,
) -> Runtime:
    """Build and wire all components."""
    config = load_config(config_path=config_path, destination=destination)

    return Runtime(
        config=config,
        parser=CueSheetParser(sniff_bytes=config.cue.sniff_bytes),
        identifier=ExtensionTypeIdentifier(),
    )
