# pixelpress/imaging/search.py
# Purpose: Entry point of the core. Resolves format and quality, then either
# renders once or runs a bounded binary search over quality to land as close
# as possible to a requested byte size.

from __future__ import annotations

import logging
from typing import Optional

from pixelpress.imaging.codec import CodecEngine, default_codec
from pixelpress.imaging.formats import is_quality_driven, resolve_format
from pixelpress.imaging.pipeline import check_options, render, round_half_up
from pixelpress.models.options import ProcessOptions
from pixelpress.models.result import ProcessResult

log = logging.getLogger("pixelpress.search")

DEFAULT_QUALITY = 85
MIN_QUALITY = 10
MAX_QUALITY = 100
SEARCH_ITERATIONS = 6


def clamp_quality(value: Optional[int]) -> int:
    q = DEFAULT_QUALITY if value is None else int(value)
    return max(MIN_QUALITY, min(MAX_QUALITY, q))


def process_image(
    data: bytes,
    options: ProcessOptions,
    codec: Optional[CodecEngine] = None,
) -> ProcessResult:
    """
    Re-encode ``data`` according to already preset-resolved ``options``.

    With a size target on a quality-driven format, every probe is one full
    render; the search assumes size grows with quality and does not check it.
    Any codec failure aborts the whole request.
    """
    codec = codec if codec is not None else default_codec()
    check_options(options)

    native = None
    if options.format is None:
        native = codec.decode_metadata(data).format
    fmt = resolve_format(options.format, native)
    quality_cap = clamp_quality(options.quality)

    if not is_quality_driven(fmt) or not options.target_size_kb:
        log.debug("Single pass: format=%s quality=%d", fmt.value, quality_cap)
        return render(data, options, quality_cap, fmt, codec)

    target_bytes = options.target_size_kb * 1024
    low, high = MIN_QUALITY, MAX_QUALITY
    best_quality = quality_cap
    best = render(data, options, best_quality, fmt, codec)
    log.debug("Initial: quality=%d size=%d target=%d", best_quality, best.size, target_bytes)

    for i in range(SEARCH_ITERATIONS):
        mid = max(MIN_QUALITY, min(MAX_QUALITY, round_half_up((low + high) / 2)))
        candidate = render(data, options, mid, fmt, codec)
        log.debug("Probe %d: quality=%d size=%d", i + 1, mid, candidate.size)

        # ties keep the earlier candidate
        if abs(candidate.size - target_bytes) < abs(best.size - target_bytes):
            best, best_quality = candidate, mid

        if candidate.size > target_bytes:
            high = mid - 1
        else:
            low = mid + 1

    # best already holds the render at best_quality; no second encode needed
    log.info(
        "Quality search: format=%s target=%d best_quality=%d size=%d",
        fmt.value, target_bytes, best_quality, best.size,
    )
    return best
