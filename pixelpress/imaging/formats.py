# pixelpress/imaging/formats.py
# Purpose: Output format resolution and the per-format encoder dispatch table.

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from pixelpress.models.enums import OutputFormat

DEFAULT_FORMAT = OutputFormat.JPEG

# Formats whose encoded size meaningfully depends on quality.
QUALITY_DRIVEN: FrozenSet[OutputFormat] = frozenset(
    {OutputFormat.JPEG, OutputFormat.PNG, OutputFormat.WEBP, OutputFormat.AVIF, OutputFormat.TIFF}
)

NATIVE_FORMAT_ALIASES: Dict[str, OutputFormat] = {
    "jpg": OutputFormat.JPEG,
    "jpeg": OutputFormat.JPEG,
    "mpo": OutputFormat.JPEG,
    "png": OutputFormat.PNG,
    "webp": OutputFormat.WEBP,
    "gif": OutputFormat.GIF,
    "avif": OutputFormat.AVIF,
    "tif": OutputFormat.TIFF,
    "tiff": OutputFormat.TIFF,
    "svg": OutputFormat.SVG,
}


def normalize_format(native: Optional[str]) -> OutputFormat:
    """Map a detected container name onto the output enum; unknown -> jpeg."""
    if not native:
        return DEFAULT_FORMAT
    return NATIVE_FORMAT_ALIASES.get(native.strip().lower(), DEFAULT_FORMAT)


def resolve_format(explicit: Optional[OutputFormat], native: Optional[str] = None) -> OutputFormat:
    if explicit is not None:
        return explicit
    return normalize_format(native)


def is_quality_driven(fmt: OutputFormat) -> bool:
    return fmt in QUALITY_DRIVEN


# ---------------------------- encoder table ----------------------------
@dataclass(frozen=True)
class EncoderSpec:
    pillow_format: Optional[str]            # None -> pass-through, no re-encode
    takes_quality: bool = False
    params: Mapping[str, Any] = field(default_factory=dict)
    metadata_keys: Tuple[str, ...] = ()     # info keys the encoder can write back
    animated: bool = False


ENCODERS: Mapping[OutputFormat, EncoderSpec] = MappingProxyType({
    OutputFormat.JPEG: EncoderSpec(
        "JPEG", takes_quality=True,
        params={"progressive": True, "optimize": True},
        metadata_keys=("exif", "icc_profile"),
    ),
    # Pillow's PNG writer has no quality knob; size is governed by zlib level
    OutputFormat.PNG: EncoderSpec(
        "PNG",
        params={"compress_level": 9},
        metadata_keys=("exif", "icc_profile"),
        animated=True,
    ),
    OutputFormat.WEBP: EncoderSpec(
        "WEBP", takes_quality=True,
        params={"method": 6},
        metadata_keys=("exif", "icc_profile", "xmp"),
        animated=True,
    ),
    OutputFormat.AVIF: EncoderSpec(
        "AVIF", takes_quality=True,
        params={"speed": 2},
        metadata_keys=("exif", "icc_profile", "xmp"),
        animated=True,
    ),
    # Pillow only accepts quality for jpeg-compressed TIFF; LZW is lossless
    OutputFormat.TIFF: EncoderSpec(
        "TIFF",
        params={"compression": "tiff_lzw"},
        metadata_keys=("exif", "icc_profile"),
    ),
    OutputFormat.GIF: EncoderSpec("GIF", params={"optimize": True}, animated=True),
    OutputFormat.SVG: EncoderSpec(None),
})


@dataclass(frozen=True)
class EncodeSettings:
    format: OutputFormat
    quality: int
    spec: EncoderSpec

    @property
    def passthrough(self) -> bool:
        return self.spec.pillow_format is None

    def save_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = dict(self.spec.params)
        if self.spec.takes_quality:
            kwargs["quality"] = self.quality
        return kwargs


def encode_settings(fmt: OutputFormat, quality: int) -> EncodeSettings:
    return EncodeSettings(format=fmt, quality=quality, spec=ENCODERS[fmt])
