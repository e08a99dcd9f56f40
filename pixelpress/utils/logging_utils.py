from __future__ import annotations
import logging, sys, time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"
BANNER = "=" * 75

def build_logger(
    name: str = "pixelpress",
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Configure ``name`` with a stdout handler and, if given, a rotating file handler."""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()

    fmt = logging.Formatter(LOG_FORMAT)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(exist_ok=True, parents=True)
        fh = RotatingFileHandler(log_file, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    sh = logging.StreamHandler(sys.stdout)
    sh.setFormatter(fmt)
    logger.addHandler(sh)
    return logger

class log_section:
    """Log a banner on entry and the section outcome with elapsed seconds on exit."""

    def __init__(self, title: str, logger: logging.Logger):
        self.title = title
        self.logger = logger
        self._started = 0.0

    def __enter__(self):
        self._started = time.perf_counter()
        self.logger.info("\n%s\n%s\n%s", BANNER, self.title, BANNER)
        return self

    def __exit__(self, exc_type, exc, tb):
        elapsed = time.perf_counter() - self._started
        if exc_type is None:
            self.logger.info("%s finished in %.2fs", self.title, elapsed)
        else:
            self.logger.error("%s failed after %.2fs: %s", self.title, elapsed, exc)
        return False
