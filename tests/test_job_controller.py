import io
import json
import re
from pathlib import Path

import pytest
from PIL import Image

from pixelpress.controllers.job_controller import JobController, default_output_namer
from pixelpress.errors import InvalidInputError, ProcessingFailedError
from pixelpress.models.options import ProcessOptions
from pixelpress.models.settings import AppSettings


def test_presets_listing():
    ids = [p["id"] for p in JobController().presets()]
    assert ids[0] == "size-first" and ids[-1] == "format-converter"


def test_upload_without_file_rejected():
    with pytest.raises(InvalidInputError, match="No file uploaded"):
        JobController().process_upload(None, "{}")


def test_upload_over_limit_rejected(fake_codec):
    codec = fake_codec()
    controller = JobController(AppSettings(max_upload_bytes=10), codec=codec)
    with pytest.raises(InvalidInputError, match="exceeds limit"):
        controller.process_upload(b"x" * 11)
    assert codec.encodes == []


def test_malformed_options_json_rejected(fake_codec):
    codec = fake_codec()
    with pytest.raises(InvalidInputError, match="Invalid options format"):
        JobController(codec=codec).process_upload(b"img", "{not json")
    assert codec.metadata_calls == 0


def test_upload_response_headers(fake_codec):
    codec = fake_codec(native="png")
    resp = JobController(codec=codec).process_upload(b"img", json.dumps({"presetId": "balanced"}))
    assert resp.content_type == "image/png"
    assert re.fullmatch(r"processed-[0-9a-f-]{36}\.png", resp.filename)
    assert resp.headers()["Content-Disposition"] == f"attachment; filename={resp.filename}"
    assert codec.qualities == [85]


def test_filenames_are_unique(fake_codec):
    controller = JobController(codec=fake_codec())
    a = controller.process_upload(b"img")
    b = controller.process_upload(b"img")
    assert a.filename != b.filename


def test_preset_applied_with_overrides(fake_codec):
    codec = fake_codec(width=1000, height=1000)
    resp = JobController(codec=codec).process_upload(b"img", '{"presetId": "thumbnail", "width": 500}')
    assert codec.resizes == [(320, 320)]
    assert codec.qualities == [70]
    assert codec.encodes[0][2] is False  # metadata stripped
    assert resp.info.width == 320


def test_web_optimized_preset_runs_search(fake_codec):
    codec = fake_codec(native="jpeg")
    resp = JobController(codec=codec).process_upload(b"img", '{"presetId": "web-optimized"}')
    assert resp.content_type == "image/webp"
    assert len(codec.encodes) == 7
    assert codec.qualities[0] == 75


def test_codec_failure_hides_detail_by_default(fake_codec):
    controller = JobController(codec=fake_codec(fail_on_encode=1))
    with pytest.raises(ProcessingFailedError) as exc:
        controller.process_upload(b"img")
    assert exc.value.message == "Failed to process image"
    assert exc.value.detail is None


def test_codec_failure_detail_when_exposed(fake_codec):
    controller = JobController(AppSettings(expose_error_detail=True), codec=fake_codec(fail_on_encode=1))
    with pytest.raises(ProcessingFailedError) as exc:
        controller.process_upload(b"img")
    assert exc.value.detail == "encoder exploded"


def test_svg_response_content_type(svg_bytes):
    resp = JobController().process_upload(svg_bytes, '{"format": "svg"}')
    assert resp.body == svg_bytes
    assert resp.content_type == "image/svg+xml"
    assert resp.filename.endswith(".svg")


# ---------------------------- batch ----------------------------
def _write_png(path: Path, size=(120, 80)):
    Image.new("RGB", size, (10, 200, 30)).save(path)
    return path


def test_default_output_namer_avoids_collisions(tmp_path: Path):
    opts = ProcessOptions(preset_id="thumbnail")
    first = default_output_namer(tmp_path / "cat.png", tmp_path, opts, "webp")
    assert first.name == "cat__thumbnail.webp"
    first.write_bytes(b"")
    second = default_output_namer(tmp_path / "cat.png", tmp_path, opts, "webp")
    assert second.name == "cat__thumbnail_1.webp"
    assert default_output_namer(tmp_path / "cat.png", tmp_path, ProcessOptions(), "png").name == "cat__custom.png"


def test_run_batch_writes_outputs(tmp_path: Path):
    src = _write_png(tmp_path / "a.png")
    out_dir = tmp_path / "out"
    progress = []
    items = JobController().run_batch(
        [src], out_dir, ProcessOptions(preset_id="thumbnail", format="jpeg", width=60),
        progress_cb=lambda f, p: progress.append(p),
    )
    assert len(items) == 1 and items[0].ok
    assert items[0].output == out_dir / "a__thumbnail.jpeg"
    with Image.open(items[0].output) as im:
        assert im.format == "JPEG"
        assert im.size == (60, 40)
    assert progress == [100]


def test_run_batch_records_failures_and_continues(tmp_path: Path):
    bad = tmp_path / "bad.png"
    bad.write_bytes(b"garbage")
    good = _write_png(tmp_path / "good.png")
    items = JobController().run_batch([bad, good], tmp_path / "out", ProcessOptions())
    assert [i.ok for i in items] == [False, True]
    assert items[0].error


def test_run_batch_stop_on_first_error(tmp_path: Path):
    bad = tmp_path / "bad.png"
    bad.write_bytes(b"garbage")
    good = _write_png(tmp_path / "good.png")
    items = JobController().run_batch([bad, good], tmp_path / "out", ProcessOptions(), stop_on_first_error=True)
    assert len(items) == 1


def test_run_batch_cancel(tmp_path: Path):
    files = [_write_png(tmp_path / f"{i}.png") for i in range(3)]
    controller = JobController()

    def _progress(fname, pct):
        controller.cancel()

    items = controller.run_batch(files, tmp_path / "out", ProcessOptions(), progress_cb=_progress)
    assert len(items) == 1


def test_resource_exhaustion_surfaces_as_processing_failure():
    buf = io.BytesIO()
    Image.new("RGB", (20, 20), (1, 2, 3)).save(buf, format="PNG")
    huge = 2 ** 40
    options = json.dumps({"width": huge, "height": huge, "keepAspectRatio": False})
    with pytest.raises(ProcessingFailedError) as exc:
        JobController().process_upload(buf.getvalue(), options)
    assert exc.value.detail is None
