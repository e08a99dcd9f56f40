# pixelpress/imaging/presets.py
# Purpose: Read-only preset catalog and preset/override resolution.

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

import tomlkit
from tomlkit.exceptions import TOMLKitError

from pixelpress.errors import InvalidInputError
from pixelpress.models.options import Preset, ProcessOptions

log = logging.getLogger("pixelpress.presets")

PRESETS_FILE = Path(__file__).with_name("presets.toml")


class PresetRegistry:
    """Ordered, immutable collection of presets. Safe to share across threads."""

    def __init__(self, presets: Iterable[Preset]):
        self._presets: Tuple[Preset, ...] = tuple(presets)
        by_id: Dict[str, Preset] = {}
        for preset in self._presets:
            if preset.id in by_id:
                raise InvalidInputError(f"Duplicate preset id: {preset.id}")
            by_id[preset.id] = preset
        self._by_id: Mapping[str, Preset] = MappingProxyType(by_id)

    def all(self) -> List[Preset]:
        return list(self._presets)

    def get(self, preset_id: Optional[str]) -> Optional[Preset]:
        if not preset_id:
            return None
        return self._by_id.get(preset_id)

    def __iter__(self) -> Iterator[Preset]:
        return iter(self._presets)

    def __len__(self) -> int:
        return len(self._presets)

    def __contains__(self, preset_id: object) -> bool:
        return preset_id in self._by_id


def _preset_from_entry(entry: Mapping[str, Any], source: Path) -> Preset:
    try:
        pid, name, description = entry["id"], entry["name"], entry["description"]
    except KeyError as e:
        raise InvalidInputError(f"Preset entry in {source} is missing {e.args[0]!r}") from None
    options = ProcessOptions.from_dict(entry.get("options", {}))
    # presets never name another preset
    if options.preset_id is not None:
        raise InvalidInputError(f"Preset {pid!r} in {source} must not set presetId")
    return Preset(id=str(pid), name=str(name), description=str(description), options=options)


def load_presets(path: Optional[Path] = None) -> PresetRegistry:
    """Parse a presets TOML file (``[[presets]]`` array of tables) into a registry."""
    source = Path(path) if path is not None else PRESETS_FILE
    try:
        doc = tomlkit.parse(source.read_text(encoding="utf-8")).unwrap()
    except OSError as e:
        raise InvalidInputError(f"Cannot read presets file {source}: {e}") from e
    except TOMLKitError as e:
        raise InvalidInputError(f"Invalid presets file {source}: {e}") from e

    entries = doc.get("presets", [])
    if not isinstance(entries, list):
        raise InvalidInputError(f"'presets' in {source} must be an array of tables")

    registry = PresetRegistry(_preset_from_entry(entry, source) for entry in entries)
    log.debug("Loaded %d presets from %s", len(registry), source)
    return registry


@lru_cache(maxsize=None)
def default_registry(path: Optional[Path] = None) -> PresetRegistry:
    """Process-wide registry, loaded once per source file."""
    return load_presets(path)


def list_presets(registry: Optional[PresetRegistry] = None) -> List[Dict[str, Any]]:
    reg = registry if registry is not None else default_registry()
    return [p.to_dict() for p in reg]


def resolve_options(
    preset_id: Optional[str],
    overrides: ProcessOptions,
    registry: Optional[PresetRegistry] = None,
) -> ProcessOptions:
    """
    Layer ``overrides`` on top of a preset's defaults.

    Unknown or empty preset ids return ``overrides`` unchanged. Fields absent
    from ``overrides`` keep the preset's value; the result carries
    ``preset_id`` as supplied.
    """
    reg = registry if registry is not None else default_registry()
    preset = reg.get(preset_id)
    if preset is None:
        if preset_id:
            log.debug("Unknown preset %r; using options as given", preset_id)
        return overrides

    merged = preset.options.merged_with(overrides)
    if merged.preset_id != preset_id:
        merged = merged.merged_with(ProcessOptions(preset_id=preset_id))
    return merged
