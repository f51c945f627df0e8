"""Configuration loader for cdbundle.toml."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

from .adapters.cue_parser import DEFAULT_SNIFF_BYTES
from .errors import ConfigurationError

CONFIG_FILENAME = "cdbundle.toml"
LOG_LEVEL_ENV = "CDBUNDLE_LOG_LEVEL"


@dataclass
class ImportConfig:
    """Defaults for import commands."""
    copy_files: bool = True
    destination: Path = Path(".")


@dataclass
class CueConfig:
    """Cue sheet parsing and rewriting."""
    rewrite: str = "range"  # range | literal
    sniff_bytes: int = DEFAULT_SNIFF_BYTES


@dataclass
class TransferConfig:
    """Transfer planning options."""
    on_collision: str = "fail"  # fail | overwrite


@dataclass
class LogConfig:
    """Logging configuration."""
    level: str = "WARNING"
    file: Path | None = None


@dataclass
class BundleConfig:
    """Complete cdbundle configuration."""
    import_: ImportConfig
    cue: CueConfig
    transfer: TransferConfig
    log: LogConfig


def _choice(value: Any, allowed: tuple[str, ...], field: str, path: Path | None) -> str:
    if value not in allowed:
        raise ConfigurationError(
            f"Invalid value for {field}: {value!r} (expected one of {', '.join(allowed)})",
            config_file=path,
            field=field,
        )
    return value


def load_config(config_path: Path | None = None, destination: Path | None = None) -> BundleConfig:
    """
    Load configuration from cdbundle.toml.

    Search order:
    1. config_path (if provided)
    2. cwd/cdbundle.toml
    3. destination/cdbundle.toml

    The CDBUNDLE_LOG_LEVEL environment variable overrides [log] level.

    Args:
        config_path: Explicit path to config file
        destination: Destination folder for fallback search

    Returns:
        BundleConfig with resolved settings

    Raises:
        ConfigurationError: If the file is not valid TOML or a value is invalid
    """
    toml_data: dict[str, Any] = {}
    source: Path | None = None

    # Search for config file
    search_paths = []
    if config_path:
        search_paths.append(config_path)
    search_paths.append(Path.cwd() / CONFIG_FILENAME)
    if destination:
        search_paths.append(destination / CONFIG_FILENAME)

    for path in search_paths:
        if path.exists():
            try:
                with open(path, "rb") as f:
                    toml_data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigurationError(f"Invalid TOML in {path}: {e}", config_file=path) from e
            source = path
            break

    # Parse import config
    import_data = toml_data.get("import", {})
    import_config = ImportConfig(
        copy_files=bool(import_data.get("copy_files", True)),
        destination=Path(import_data.get("destination", destination or ".")).expanduser(),
    )

    # Parse cue config
    cue_data = toml_data.get("cue", {})
    cue_config = CueConfig(
        rewrite=_choice(cue_data.get("rewrite", "range"), ("range", "literal"), "cue.rewrite", source),
        sniff_bytes=int(cue_data.get("sniff_bytes", DEFAULT_SNIFF_BYTES)),
    )

    # Parse transfer config
    transfer_data = toml_data.get("transfer", {})
    transfer_config = TransferConfig(
        on_collision=_choice(
            transfer_data.get("on_collision", "fail"),
            ("fail", "overwrite"),
            "transfer.on_collision",
            source,
        ),
    )

    # Parse log config
    log_data = toml_data.get("log", {})
    log_file = log_data.get("file") or None
    log_config = LogConfig(
        level=str(os.environ.get(LOG_LEVEL_ENV) or log_data.get("level", "WARNING")).upper().strip(),
        file=Path(log_file) if log_file else None,
    )

    return BundleConfig(
        import_=import_config,
        cue=cue_config,
        transfer=transfer_config,
        log=log_config,
    )
