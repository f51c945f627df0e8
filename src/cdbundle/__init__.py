"""cdbundle - turn loose cue/bin disc images into self-contained bundles."""

__version__ = "0.3.0"
