"""Import cue sheet disc images into flat .cdmedia bundles."""

from .models import ImportManifest, ImportOutcome, ManifestEntry, TransferPlan
from .naming import bundle_name, imported_path
from .operation import BundleImport
from .plan import build_plan
from .suitability import is_suitable

__all__ = [
    "BundleImport",
    "ImportManifest",
    "ImportOutcome",
    "ManifestEntry",
    "TransferPlan",
    "build_plan",
    "bundle_name",
    "imported_path",
    "is_suitable",
]
