# pixelpress/cli.py
# Command line entry point: list presets, or transcode files into a folder.

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from pixelpress.controllers.job_controller import JobController
from pixelpress.errors import InvalidInputError
from pixelpress.models.enums import OutputFormat
from pixelpress.models.options import ProcessOptions
from pixelpress.models.settings import load_settings
from pixelpress.utils.logging_utils import build_logger, log_section


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="pixelpress", description="Compress, resize and convert images.")
    ap.add_argument("--config", type=Path, help="Path to a pixelpress TOML config file")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log every search probe")
    sub = ap.add_subparsers(dest="command", required=True)

    ps = sub.add_parser("presets", help="List available presets")
    ps.add_argument("--json", action="store_true", help="Print presets as JSON")

    pp = sub.add_parser("process", help="Transcode one or more images")
    pp.add_argument("inputs", nargs="+", type=Path, help="Source images")
    pp.add_argument("-o", "--outdir", required=True, type=Path, help="Output directory")
    pp.add_argument("--preset", dest="preset_id", help="Preset id (see 'pixelpress presets')")
    pp.add_argument("--format", choices=[f.value for f in OutputFormat])
    pp.add_argument("--quality", type=int, help="Quality 10..100 (default 85)")
    pp.add_argument("--target-kb", dest="target_size_kb", type=float, help="Aim for this output size in KB")
    pp.add_argument("--width", type=int)
    pp.add_argument("--height", type=int)
    pp.add_argument("--stretch", action="store_true",
                    help="Resize to exactly width x height, ignoring aspect ratio")
    mg = pp.add_mutually_exclusive_group()
    mg.add_argument("--keep-metadata", dest="strip_metadata", action="store_const", const=False)
    mg.add_argument("--strip-metadata", dest="strip_metadata", action="store_const", const=True)
    pp.add_argument("--stop-on-error", action="store_true", help="Stop at the first failing file")
    return ap


def options_from_args(args: argparse.Namespace) -> ProcessOptions:
    return ProcessOptions(
        format=args.format,
        quality=args.quality,
        target_size_kb=args.target_size_kb,
        width=args.width,
        height=args.height,
        keep_aspect_ratio=False if args.stretch else None,
        strip_metadata=args.strip_metadata,
        preset_id=args.preset_id,
    )


def _cmd_presets(args: argparse.Namespace, controller: JobController) -> int:
    presets = controller.presets()
    if args.json:
        print(json.dumps(presets, indent=2))
        return 0
    width = max(len(p["id"]) for p in presets) if presets else 0
    for p in presets:
        print(f"{p['id']:<{width}}  {p['name']}: {p['description']}")
    return 0


def _cmd_process(args: argparse.Namespace, controller: JobController) -> int:
    options = options_from_args(args)
    logger = controller.logger

    def _progress(fname: str, pct: int) -> None:
        logger.info("[%3d%%] %s", pct, Path(fname).name)

    with log_section(f"PROCESSING {len(args.inputs)} FILE(S)", logger):
        items = controller.run_batch(
            args.inputs,
            args.outdir,
            options,
            progress_cb=_progress,
            stop_on_first_error=args.stop_on_error,
        )

    failed = [i for i in items if not i.ok]
    logger.info("Done: %d ok, %d failed", len(items) - len(failed), len(failed))
    return 1 if failed or len(items) < len(args.inputs) else 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
        logger = build_logger(level="DEBUG" if args.verbose else settings.log_level, log_file=settings.log_file)
        controller = JobController(settings, logger=logger)
        if args.command == "presets":
            return _cmd_presets(args, controller)
        return _cmd_process(args, controller)
    except InvalidInputError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
