import pytest

from pixelpress.imaging.formats import (
    ENCODERS,
    encode_settings,
    is_quality_driven,
    normalize_format,
    resolve_format,
)
from pixelpress.models.enums import OutputFormat


def test_explicit_format_wins():
    assert resolve_format(OutputFormat.GIF, "png") is OutputFormat.GIF


@pytest.mark.parametrize(
    "native, expected",
    [
        ("jpg", OutputFormat.JPEG),
        ("JPEG", OutputFormat.JPEG),
        ("mpo", OutputFormat.JPEG),
        ("png", OutputFormat.PNG),
        ("webp", OutputFormat.WEBP),
        ("gif", OutputFormat.GIF),
        ("avif", OutputFormat.AVIF),
        ("tif", OutputFormat.TIFF),
        ("svg", OutputFormat.SVG),
        ("bmp", OutputFormat.JPEG),
        (None, OutputFormat.JPEG),
        ("", OutputFormat.JPEG),
    ],
)
def test_native_format_normalization(native, expected):
    assert normalize_format(native) is expected
    assert resolve_format(None, native) is expected


def test_quality_driven_formats():
    driven = {f for f in OutputFormat if is_quality_driven(f)}
    assert driven == {OutputFormat.JPEG, OutputFormat.PNG, OutputFormat.WEBP, OutputFormat.AVIF, OutputFormat.TIFF}


def test_every_format_has_an_encoder():
    assert set(ENCODERS) == set(OutputFormat)


def test_jpeg_settings():
    kwargs = encode_settings(OutputFormat.JPEG, 60).save_kwargs()
    assert kwargs == {"quality": 60, "progressive": True, "optimize": True}


def test_fixed_settings_per_format():
    assert encode_settings(OutputFormat.PNG, 60).save_kwargs() == {"compress_level": 9}
    assert encode_settings(OutputFormat.WEBP, 60).save_kwargs() == {"quality": 60, "method": 6}
    assert encode_settings(OutputFormat.TIFF, 60).save_kwargs() == {"compression": "tiff_lzw"}
    assert "quality" not in encode_settings(OutputFormat.GIF, 60).save_kwargs()


def test_svg_is_passthrough():
    assert encode_settings(OutputFormat.SVG, 85).passthrough
    assert not encode_settings(OutputFormat.PNG, 85).passthrough
