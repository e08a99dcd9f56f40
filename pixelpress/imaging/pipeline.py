# pixelpress/imaging/pipeline.py
# Purpose: Turn resolved options into a concrete transform plan
# (decode -> optional resize -> metadata policy -> encode) and run it
# through a codec engine.

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from pixelpress.errors import InvalidInputError
from pixelpress.imaging.codec import CodecEngine, default_codec
from pixelpress.imaging.formats import EncodeSettings, encode_settings
from pixelpress.models.enums import FitMode, OutputFormat
from pixelpress.models.options import ProcessOptions
from pixelpress.models.result import ImageInfo, ProcessResult

log = logging.getLogger("pixelpress.pipeline")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ---------------------------- resize geometry ----------------------------
@dataclass(frozen=True)
class ResizeStep:
    width: Optional[int]
    height: Optional[int]
    fit: FitMode

    def target_size(self, src_w: int, src_h: int) -> Tuple[int, int]:
        """Output dimensions for a ``src_w`` x ``src_h`` source."""
        if self.fit is FitMode.FILL:
            # both dimensions are guaranteed by check_options()
            return int(self.width), int(self.height)

        scales = []
        if self.width is not None:
            scales.append(self.width / src_w)
        if self.height is not None:
            scales.append(self.height / src_h)
        scale = min(scales)
        if scale >= 1.0:
            return src_w, src_h
        return max(1, round_half_up(src_w * scale)), max(1, round_half_up(src_h * scale))


@dataclass(frozen=True)
class EncodePlan:
    source: bytes
    resize: Optional[ResizeStep]
    keep_metadata: bool
    encode: EncodeSettings

    @property
    def passthrough(self) -> bool:
        return self.encode.passthrough


def check_options(options: ProcessOptions) -> None:
    """Reject option combinations the pipeline cannot honour."""
    if options.fit_mode is FitMode.FILL and options.wants_resize:
        if options.width is None or options.height is None:
            raise InvalidInputError("keepAspectRatio=false requires both width and height")


def build_plan(data: bytes, options: ProcessOptions, quality: int, fmt: OutputFormat) -> EncodePlan:
    check_options(options)
    resize = None
    if options.wants_resize:
        resize = ResizeStep(width=options.width, height=options.height, fit=options.fit_mode)
    return EncodePlan(
        source=data,
        resize=resize,
        keep_metadata=options.keeps_metadata,
        encode=encode_settings(fmt, quality),
    )


# ---------------------------- execution ----------------------------
def run_plan(plan: EncodePlan, codec: Optional[CodecEngine] = None) -> ProcessResult:
    codec = codec if codec is not None else default_codec()

    if plan.passthrough:
        # no re-encode: hand the input back untouched
        meta = codec.decode_metadata(plan.source)
        return ProcessResult(
            data=bytes(plan.source),
            info=ImageInfo(
                format=meta.format or plan.encode.format.value,
                size=len(plan.source),
                width=meta.width,
                height=meta.height,
            ),
        )

    image = codec.decode(plan.source)
    if plan.resize is not None:
        tw, th = plan.resize.target_size(image.width, image.height)
        if (tw, th) != (image.width, image.height):
            log.debug("Resize %dx%d -> %dx%d (%s)", image.width, image.height, tw, th, plan.resize.fit.value)
            image = codec.resize(image, tw, th)

    encoded = codec.encode(image, plan.encode, plan.keep_metadata)
    return ProcessResult(
        data=encoded.data,
        info=ImageInfo(
            format=encoded.format,
            size=len(encoded.data),
            width=encoded.width,
            height=encoded.height,
        ),
    )


def render(
    data: bytes,
    options: ProcessOptions,
    quality: int,
    fmt: OutputFormat,
    codec: Optional[CodecEngine] = None,
) -> ProcessResult:
    return run_plan(build_plan(data, options, quality, fmt), codec)
