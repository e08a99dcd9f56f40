from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from pixelpress.errors import CodecError, InvalidInputError, PixelPressError, ProcessingFailedError
from pixelpress.imaging.codec import CodecEngine
from pixelpress.imaging.presets import PresetRegistry, default_registry, list_presets, resolve_options
from pixelpress.imaging.search import process_image
from pixelpress.models.options import ProcessOptions
from pixelpress.models.result import ImageInfo, ProcessResult
from pixelpress.models.settings import AppSettings

ProgressCallback = Callable[[str, int], None]
OutputNamer = Callable[[Path, Path, ProcessOptions, str], Path]

CONTENT_TYPES = {"svg": "image/svg+xml"}


def content_type_for(ext: str) -> str:
    return CONTENT_TYPES.get(ext, f"image/{ext}")


def download_filename(ext: str) -> str:
    return f"processed-{uuid.uuid4()}.{ext}"


def default_output_namer(src: Path, output_dir: Path, options: ProcessOptions, ext: str) -> Path:
    base = src.stem
    tag = options.preset_id or "custom"
    out = output_dir / f"{base}__{tag}.{ext}"
    i = 1
    while out.exists():
        out = output_dir / f"{base}__{tag}_{i}.{ext}"
        i += 1
    return out


@dataclass(frozen=True)
class ProcessResponse:
    body: bytes
    content_type: str
    filename: str
    info: ImageInfo

    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": self.content_type,
            "Content-Disposition": f"attachment; filename={self.filename}",
        }


@dataclass
class BatchItem:
    source: Path
    output: Optional[Path] = None
    info: Optional[ImageInfo] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.output is not None


class JobController:
    """Request boundary around the core: option parsing, upload checks, batch runs."""

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        registry: Optional[PresetRegistry] = None,
        codec: Optional[CodecEngine] = None,
        logger: Optional[logging.Logger] = None,
        output_namer: OutputNamer = default_output_namer,
    ):
        self.settings = settings or AppSettings()
        self.registry = registry if registry is not None else default_registry(self.settings.presets_file)
        self.codec = codec
        self.logger = logger or logging.getLogger("pixelpress.jobs")
        self.output_namer = output_namer
        self._cancel = False

    # ---------------------------- single request ----------------------------
    def presets(self) -> List[Dict[str, Any]]:
        return list_presets(self.registry)

    def parse_options(self, options_json: Union[str, bytes, None]) -> ProcessOptions:
        if not options_json:
            return ProcessOptions()
        try:
            payload = json.loads(options_json)
        except ValueError:
            self.logger.warning("Failed to parse options payload")
            raise InvalidInputError("Invalid options format") from None
        return ProcessOptions.from_dict(payload)

    def process(self, data: bytes, options: ProcessOptions) -> ProcessResult:
        merged = resolve_options(options.preset_id, options, self.registry)
        return process_image(data, merged, self.codec)

    def process_upload(self, data: Optional[bytes], options_json: Union[str, bytes, None] = None) -> ProcessResponse:
        """
        Handle one uploaded image.

        Raises InvalidInputError for client mistakes (nothing is decoded in
        that case) and ProcessingFailedError when the codec gives up.
        """
        if not data:
            raise InvalidInputError("No file uploaded")
        limit = self.settings.max_upload_bytes
        if len(data) > limit:
            raise InvalidInputError(f"File size exceeds limit of {limit / 1024 / 1024:g}MB")

        options = self.parse_options(options_json)
        try:
            result = self.process(data, options)
        except CodecError as e:
            self.logger.error("Processing error: %s", e)
            detail = str(e) if self.settings.expose_error_detail else None
            raise ProcessingFailedError(detail=detail) from e

        ext = result.info.format or "jpg"
        return ProcessResponse(
            body=result.data,
            content_type=content_type_for(ext),
            filename=download_filename(ext),
            info=result.info,
        )

    # ---------------------------- batch ----------------------------
    def cancel(self) -> None:
        self._cancel = True

    def run_batch(
        self,
        files: Iterable[Path],
        output_dir: Path,
        options: ProcessOptions,
        progress_cb: Optional[ProgressCallback] = None,
        stop_on_first_error: bool = False,
    ) -> List[BatchItem]:
        files = [Path(f) for f in files]
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        self._cancel = False

        items: List[BatchItem] = []
        total = len(files)
        for idx, f in enumerate(files, 1):
            if self._cancel:
                self.logger.info("Batch cancelled after %d of %d file(s)", idx - 1, total)
                break
            item = BatchItem(source=f)
            items.append(item)
            try:
                self.logger.info("Processing %s", f.name)
                result = self.process(f.read_bytes(), options)
                ext = result.info.format or "jpg"
                out_path = self.output_namer(f, output_dir, options, ext)
                out_path.write_bytes(result.data)
                item.output, item.info = out_path, result.info
                self.logger.info(
                    "Saved %s (%s, %d bytes, %sx%s)",
                    out_path.name, ext, result.info.size, result.info.width, result.info.height,
                )
            except (PixelPressError, OSError) as e:
                item.error = str(e)
                self.logger.error("%s: %s", f.name, e)
                if stop_on_first_error:
                    break
            finally:
                if progress_cb is not None:
                    progress_cb(str(f), int(idx * 100 / total))
        return items
