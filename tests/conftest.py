import io
from dataclasses import replace

import pytest
from PIL import Image

from pixelpress.errors import CodecError
from pixelpress.imaging.codec import DecodedImage, EncodedImage, ImageMetadata


class FakeCodec:
    """Deterministic codec: encoded size is a function of quality only."""

    def __init__(self, native="jpeg", width=400, height=300, size_for=None, fail_on_encode=None):
        self.native = native
        self.width = width
        self.height = height
        self.size_for = size_for or (lambda q: q * 5000)
        self.fail_on_encode = fail_on_encode
        self.metadata_calls = 0
        self.decode_calls = 0
        self.resizes = []
        self.encodes = []  # (format, quality, keep_metadata)

    @property
    def qualities(self):
        return [q for _, q, _ in self.encodes]

    def decode_metadata(self, data):
        self.metadata_calls += 1
        return ImageMetadata(format=self.native, width=self.width, height=self.height)

    def decode(self, data):
        self.decode_calls += 1
        return DecodedImage(frames=[], width=self.width, height=self.height, format=self.native)

    def resize(self, image, width, height):
        self.resizes.append((width, height))
        return replace(image, width=width, height=height)

    def encode(self, image, settings, keep_metadata):
        self.encodes.append((settings.format.value, settings.quality, keep_metadata))
        if self.fail_on_encode == len(self.encodes):
            raise CodecError("encoder exploded")
        size = self.size_for(settings.quality)
        return EncodedImage(data=b"\0" * size, format=settings.format.value, width=image.width, height=image.height)


@pytest.fixture
def fake_codec():
    def _make(**kwargs):
        return FakeCodec(**kwargs)
    return _make


@pytest.fixture
def make_image():
    """Encode a synthetic image with Pillow and return the bytes."""

    def _make(fmt="PNG", size=(400, 300), mode="RGB", noise=False, **save_kwargs):
        if noise:
            im = Image.effect_noise(size, 64).convert(mode)
        else:
            im = Image.new(mode, size, (200, 120, 40) if mode == "RGB" else 128)
        buf = io.BytesIO()
        im.save(buf, format=fmt, **save_kwargs)
        return buf.getvalue()

    return _make


@pytest.fixture
def animated_gif():
    colors = [(255, 0, 0), (0, 255, 0), (0, 0, 255)]
    frames = [Image.new("RGB", (64, 48), c) for c in colors]
    buf = io.BytesIO()
    frames[0].save(buf, format="GIF", save_all=True, append_images=frames[1:], duration=[100, 150, 200], loop=0)
    return buf.getvalue()


SVG_BYTES = (
    b'<?xml version="1.0" encoding="UTF-8"?>\n'
    b'<svg xmlns="http://www.w3.org/2000/svg" width="10" height="10">'
    b'<rect width="10" height="10" fill="red"/></svg>\n'
)


@pytest.fixture
def svg_bytes():
    return SVG_BYTES
