from enum import Enum

class OutputFormat(Enum):
    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"
    GIF = "gif"
    AVIF = "avif"
    TIFF = "tiff"
    SVG = "svg"

class FitMode(Enum):
    FIT = "inside"   # keep aspect ratio, fit within box, never enlarge
    FILL = "fill"    # exact box, aspect ratio ignored
