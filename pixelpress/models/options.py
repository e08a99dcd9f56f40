from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional

from pixelpress.errors import InvalidInputError
from .enums import FitMode, OutputFormat

# attribute name -> key used in JSON payloads
JSON_KEYS: Dict[str, str] = {
    "format": "format",
    "quality": "quality",
    "target_size_kb": "targetSizeKB",
    "width": "width",
    "height": "height",
    "keep_aspect_ratio": "keepAspectRatio",
    "strip_metadata": "stripMetadata",
    "preset_id": "presetId",
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_int(name: str, value: Any) -> int:
    if _is_number(value) and float(value).is_integer():
        return int(value)
    raise InvalidInputError(f"{name} must be an integer, got {value!r}")


def _as_positive_int(name: str, value: Any) -> int:
    number = _as_int(name, value)
    if number <= 0:
        raise InvalidInputError(f"{name} must be positive, got {number}")
    return number


@dataclass(frozen=True)
class ProcessOptions:
    """Caller constraints for one transcode.

    ``None`` means the field is absent: a preset (or the built-in default)
    decides. Any other value is an explicit choice that overrides presets.
    """

    format: Optional[OutputFormat] = None
    quality: Optional[int] = None
    target_size_kb: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None
    keep_aspect_ratio: Optional[bool] = None
    strip_metadata: Optional[bool] = None
    preset_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.format is not None and not isinstance(self.format, OutputFormat):
            try:
                object.__setattr__(self, "format", OutputFormat(str(self.format).lower()))
            except ValueError:
                allowed = ", ".join(f.value for f in OutputFormat)
                raise InvalidInputError(f"format must be one of {allowed}, got {self.format!r}") from None

        if self.quality is not None:
            object.__setattr__(self, "quality", _as_int("quality", self.quality))

        if self.target_size_kb is not None:
            if not _is_number(self.target_size_kb) or self.target_size_kb <= 0:
                raise InvalidInputError(f"targetSizeKB must be a positive number, got {self.target_size_kb!r}")

        for name in ("width", "height"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, _as_positive_int(name, value))

        for name in ("keep_aspect_ratio", "strip_metadata"):
            value = getattr(self, name)
            if value is not None and not isinstance(value, bool):
                raise InvalidInputError(f"{JSON_KEYS[name]} must be a boolean, got {value!r}")

        if self.preset_id is not None and not isinstance(self.preset_id, str):
            raise InvalidInputError(f"presetId must be a string, got {self.preset_id!r}")

    # ---------------------------- derived ----------------------------
    @property
    def fit_mode(self) -> FitMode:
        return FitMode.FILL if self.keep_aspect_ratio is False else FitMode.FIT

    @property
    def wants_resize(self) -> bool:
        return self.width is not None or self.height is not None

    @property
    def keeps_metadata(self) -> bool:
        return self.strip_metadata is False

    def present_fields(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    def merged_with(self, overrides: "ProcessOptions") -> "ProcessOptions":
        """Return these options with every field present in ``overrides`` replaced."""
        return replace(self, **overrides.present_fields())

    # ---------------------------- JSON shape ----------------------------
    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ProcessOptions":
        if not isinstance(payload, Mapping):
            raise InvalidInputError("Options payload must be a JSON object")
        kwargs = {attr: payload[key] for attr, key in JSON_KEYS.items() if payload.get(key) is not None}
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for attr, value in self.present_fields().items():
            out[JSON_KEYS[attr]] = value.value if isinstance(value, OutputFormat) else value
        return out


@dataclass(frozen=True)
class Preset:
    id: str
    name: str
    description: str
    options: ProcessOptions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "options": self.options.to_dict(),
        }
