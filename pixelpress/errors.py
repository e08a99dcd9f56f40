# pixelpress/errors.py
# Purpose: Exception types shared by the core pipeline and its callers.

from __future__ import annotations

from typing import Optional


class PixelPressError(Exception):
    """Base class for all PixelPress errors."""


class InvalidInputError(PixelPressError, ValueError):
    """Missing image data or a malformed options payload.

    Always raised before any codec work starts.
    """


class CodecError(PixelPressError, RuntimeError):
    """The codec engine could not decode, resize or encode an image."""


class ProcessingFailedError(PixelPressError):
    """Generic failure surfaced to callers of the job controller.

    ``detail`` holds the underlying diagnostic text when the deployment
    allows exposing it, otherwise ``None``.
    """

    def __init__(self, message: str = "Failed to process image", detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail
