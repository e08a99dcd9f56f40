from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import tomlkit
from tomlkit.exceptions import TOMLKitError

from pixelpress.errors import InvalidInputError

CONFIG_ENV = "PIXELPRESS_CONFIG"
CONFIG_PATH = Path.home() / ".pixelpress.toml"
CONFIG_TABLE = "pixelpress"

DEFAULT_MAX_UPLOAD_BYTES = 25 * 1024 * 1024
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class AppSettings:
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    expose_error_detail: bool = False
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    presets_file: Optional[Path] = None

    @classmethod
    def from_mapping(cls, cfg: Mapping[str, Any], base_dir: Optional[Path] = None) -> "AppSettings":
        """Build settings from a ``[pixelpress]`` table; relative paths resolve against ``base_dir``."""
        max_upload = cfg.get("max_upload_bytes", DEFAULT_MAX_UPLOAD_BYTES)
        if isinstance(max_upload, bool) or not isinstance(max_upload, int) or max_upload <= 0:
            raise InvalidInputError(f"max_upload_bytes must be a positive integer, got {max_upload!r}")

        expose = cfg.get("expose_error_detail", False)
        if not isinstance(expose, bool):
            raise InvalidInputError(f"expose_error_detail must be a boolean, got {expose!r}")

        level = str(cfg.get("log_level", "INFO")).upper()
        if level not in LOG_LEVELS:
            raise InvalidInputError(f"log_level must be one of {LOG_LEVELS}, got {level!r}")

        return cls(
            max_upload_bytes=max_upload,
            expose_error_detail=expose,
            log_level=level,
            log_file=_optional_path(cfg.get("log_file"), base_dir),
            presets_file=_optional_path(cfg.get("presets_file"), base_dir),
        )


def _optional_path(value: Any, base_dir: Optional[Path]) -> Optional[Path]:
    if value in (None, ""):
        return None
    path = Path(str(value)).expanduser()
    if base_dir is not None and not path.is_absolute():
        path = base_dir / path
    return path


def load_settings(path: Optional[Path] = None) -> AppSettings:
    """
    Load settings from a TOML file.

    Lookup order: explicit ``path``, then ``$PIXELPRESS_CONFIG``, then
    ``~/.pixelpress.toml``. A missing default file yields the defaults; a
    missing explicit file is an error.
    """
    explicit = path is not None or bool(os.environ.get(CONFIG_ENV))
    cfg_path = Path(path) if path is not None else Path(os.environ.get(CONFIG_ENV) or CONFIG_PATH)

    if not cfg_path.exists():
        if explicit:
            raise InvalidInputError(f"Config file not found: {cfg_path}")
        return AppSettings()

    try:
        doc = tomlkit.parse(cfg_path.read_text(encoding="utf-8")).unwrap()
    except TOMLKitError as e:
        raise InvalidInputError(f"Invalid config file {cfg_path}: {e}") from e

    table = doc.get(CONFIG_TABLE, {})
    if not isinstance(table, dict):
        raise InvalidInputError(f"[{CONFIG_TABLE}] in {cfg_path} must be a table")
    return AppSettings.from_mapping(table, base_dir=cfg_path.parent)
