# pixelpress/imaging/codec.py
# Purpose: Codec engine interface and the Pillow-backed implementation.
# The core never touches pixels itself; everything goes through a CodecEngine.

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Protocol

from PIL import Image, ImageSequence

from pixelpress.errors import CodecError
from pixelpress.imaging.formats import EncodeSettings
from pixelpress.models.enums import OutputFormat

log = logging.getLogger("pixelpress.codec")

RESAMPLE_LANCZOS = Image.Resampling.LANCZOS

EXIF_HEADER = b"Exif\x00\x00"

# info keys treated as embedded metadata; everything else (transparency,
# loop, duration, background) is needed to render the image correctly
METADATA_INFO_KEYS = ("exif", "icc_profile", "xmp", "XML:com.adobe.xmp", "comment", "photoshop")

# resource exhaustion (huge target sizes, out of memory) counts as a codec failure too
PIL_ERRORS = (
    OSError, ValueError, SyntaxError, KeyError, EOFError,
    OverflowError, MemoryError, Image.DecompressionBombError,
)


# ---------------------------- data types ----------------------------
@dataclass(frozen=True)
class ImageMetadata:
    format: Optional[str]
    width: Optional[int] = None
    height: Optional[int] = None
    frames: int = 1


@dataclass
class DecodedImage:
    """Decoded pixels. Frames belong to this object and may be modified by the codec."""

    frames: List[Any]
    width: int
    height: int
    format: Optional[str] = None
    durations: List[int] = field(default_factory=list)
    info: Dict[str, Any] = field(default_factory=dict)

    @property
    def animated(self) -> bool:
        return len(self.frames) > 1


@dataclass(frozen=True)
class EncodedImage:
    data: bytes
    format: str
    width: Optional[int] = None
    height: Optional[int] = None


class CodecEngine(Protocol):
    def decode_metadata(self, data: bytes) -> ImageMetadata: ...

    def decode(self, data: bytes) -> DecodedImage: ...

    def resize(self, image: DecodedImage, width: int, height: int) -> DecodedImage: ...

    def encode(self, image: DecodedImage, settings: EncodeSettings, keep_metadata: bool) -> EncodedImage: ...


# ---------------------------- helpers ----------------------------
def looks_like_svg(data: bytes) -> bool:
    head = data[:2048].lstrip(b"\xef\xbb\xbf \t\r\n").lower()
    if head.startswith(b"<svg"):
        return True
    return (head.startswith(b"<?xml") or head.startswith(b"<!doctype")) and b"<svg" in head


def _has_alpha(frame: Image.Image) -> bool:
    return frame.mode in ("RGBA", "LA", "PA", "RGBa", "La") or "transparency" in frame.info


def _resample_ready(frame: Image.Image) -> Image.Image:
    # palette and bilevel images only support nearest-neighbour resampling
    if frame.mode == "1":
        return frame.convert("L")
    if frame.mode in ("P", "PA"):
        return frame.convert("RGBA" if _has_alpha(frame) else "RGB")
    return frame


def _prepare_frame(frame: Image.Image, fmt: OutputFormat) -> Image.Image:
    if fmt is OutputFormat.JPEG and frame.mode not in ("RGB", "L", "CMYK"):
        return frame.convert("RGB")
    if fmt in (OutputFormat.WEBP, OutputFormat.AVIF) and frame.mode not in ("RGB", "RGBA"):
        return frame.convert("RGBA" if _has_alpha(frame) else "RGB")
    if fmt is OutputFormat.PNG and frame.mode == "CMYK":
        return frame.convert("RGB")
    return frame


def _strip_metadata(frame: Image.Image) -> Image.Image:
    # some encoders fall back to im.info when a key is not passed explicitly
    for key in METADATA_INFO_KEYS:
        frame.info.pop(key, None)
    return frame


def _metadata_kwargs(info: Dict[str, Any], keys) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {}
    for key in keys:
        value = info.get(key)
        if key == "xmp" and not value:
            value = info.get("XML:com.adobe.xmp")
        if not value:
            continue
        if key == "exif" and isinstance(value, bytes) and not value.startswith(EXIF_HEADER):
            value = EXIF_HEADER + value
        if key == "xmp" and isinstance(value, str):
            value = value.encode("utf-8")
        kwargs[key] = value
    return kwargs


# ---------------------------- Pillow engine ----------------------------
class PillowCodec:
    """CodecEngine backed by Pillow. Stateless; one instance may serve all requests."""

    def decode_metadata(self, data: bytes) -> ImageMetadata:
        if looks_like_svg(data):
            return ImageMetadata(format="svg")
        try:
            with Image.open(io.BytesIO(data)) as im:
                return ImageMetadata(
                    format=(im.format or "").lower() or None,
                    width=im.width,
                    height=im.height,
                    frames=getattr(im, "n_frames", 1),
                )
        except PIL_ERRORS as e:
            raise CodecError(f"Cannot read image header: {e}") from e

    def decode(self, data: bytes) -> DecodedImage:
        if looks_like_svg(data):
            raise CodecError("SVG input cannot be rasterized by the Pillow codec")
        try:
            with Image.open(io.BytesIO(data)) as im:
                native = (im.format or "").lower() or None
                frames: List[Image.Image] = []
                durations: List[int] = []
                # every frame, so animated sources stay animated
                for frame in ImageSequence.Iterator(im):
                    durations.append(int(frame.info.get("duration", 0) or 0))
                    frames.append(frame.copy())
        except PIL_ERRORS as e:
            raise CodecError(f"Cannot decode image: {e}") from e

        first = frames[0]
        log.debug("Decoded %s %dx%d, %d frame(s)", native, first.width, first.height, len(frames))
        return DecodedImage(
            frames=frames,
            width=first.width,
            height=first.height,
            format=native,
            durations=durations,
            info=dict(first.info),
        )

    def resize(self, image: DecodedImage, width: int, height: int) -> DecodedImage:
        try:
            frames = [
                _resample_ready(f).resize((width, height), resample=RESAMPLE_LANCZOS)
                for f in image.frames
            ]
        except PIL_ERRORS as e:
            raise CodecError(f"Cannot resize image to {width}x{height}: {e}") from e
        return replace(image, frames=frames, width=width, height=height)

    def encode(self, image: DecodedImage, settings: EncodeSettings, keep_metadata: bool) -> EncodedImage:
        spec = settings.spec
        if spec.pillow_format is None:
            raise CodecError(f"{settings.format.value} output cannot be produced by the Pillow codec")

        frames = [_prepare_frame(f, settings.format) for f in image.frames]
        if not spec.animated:
            frames = frames[:1]
        if not keep_metadata:
            frames = [_strip_metadata(f) for f in frames]

        kwargs = settings.save_kwargs()
        if keep_metadata:
            kwargs.update(_metadata_kwargs(image.info, spec.metadata_keys))
        if len(frames) > 1:
            kwargs.update(
                save_all=True,
                append_images=frames[1:],
                duration=image.durations[: len(frames)],
                loop=image.info.get("loop", 0),
            )

        buf = io.BytesIO()
        try:
            frames[0].save(buf, format=spec.pillow_format, **kwargs)
            data = buf.getvalue()
            with Image.open(io.BytesIO(data)) as out:
                width, height = out.size
        except PIL_ERRORS as e:
            raise CodecError(f"Cannot encode {settings.format.value}: {e}") from e

        return EncodedImage(data=data, format=settings.format.value, width=width, height=height)


_DEFAULT_CODEC = PillowCodec()


def default_codec() -> PillowCodec:
    return _DEFAULT_CODEC
