from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ImageInfo:
    format: str
    size: int
    width: Optional[int] = None
    height: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"format": self.format, "size": self.size}
        if self.width is not None:
            out["width"] = self.width
        if self.height is not None:
            out["height"] = self.height
        return out


@dataclass(frozen=True)
class ProcessResult:
    """Encoded output of one request. Owned by the caller."""

    data: bytes
    info: ImageInfo

    @property
    def size(self) -> int:
        return self.info.size
