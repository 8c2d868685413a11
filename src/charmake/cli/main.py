#!/usr/bin/env python3
"""
charmake: reverse numbered character animation frames and assemble them into GIFs.

Each top-level subdirectory of the input directory is one character. It must
contain a design overlay (design.under.png or design.over.png) and a frame
sequence such as char_00.png .. char_23.png. The frames are reversed in place
and then composed with the design into <output>/<character>.gif by ffmpeg.
"""

from __future__ import annotations

import argparse
import concurrent.futures as futures
import multiprocessing
import sys
import time
from collections.abc import Sequence
from pathlib import Path

from ..config import (
    MAX_WORKER_CAP,
    AppConfig,
    RunConfig,
    create_config_from_env,
    parse_crop,
    resolve_output_size,
)
from ..core.errors import CharmakeError, EmptySequenceError, RenameFailureError
from ..core.types import CharacterSequence
from ..output.logger import SimpleLogger
from ..processing.character import build_character_sequence
from ..processing.gif import build_encode_config, encode_gif_task
from ..processing.reverse import recover_staged
from ..tools.check import check_tools, resolve_tools
from ..utils.image import image_dimensions
from ..utils.path import list_character_dirs

LOG_FILE_NAME = "charmake.log"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    p = argparse.ArgumentParser(
        prog="charmake",
        description="Reverse numbered frame sequences in place and assemble them into animated GIFs.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("-i", "--input-dir", type=Path, required=True, help="Directory containing one subdirectory per character")
    p.add_argument("-o", "--output-dir", type=Path, default=None, help="Directory for the GIFs. Defaults to --input-dir")
    p.add_argument(
        "-W", "--width", type=int, default=None,
        help="Output width in pixels. Defaults to the size of the design image. Note: -w is --max-workers here, not width",
    )
    p.add_argument("-H", "--height", type=int, default=None, help="Output height in pixels. Defaults to --width (square output)")
    p.add_argument(
        "-s", "--size", default=None,
        help="Output dimensions as <width>x<height> (e.g. 512x512). Takes precedence over --width and --height",
    )
    p.add_argument("--crop", default=None, help="Crop frames before scaling, as <w>x<h>+<x>+<y>")
    p.add_argument("-w", "--max-workers", type=int, help=f"Max parallel GIF encodes (capped at {MAX_WORKER_CAP})")
    p.add_argument("--reverse-only", action="store_true", help="Reverse the frame sequences but don't build GIFs")
    p.add_argument("--no-reverse", dest="reverse", action="store_false", default=True, help="Build GIFs without reversing")
    p.add_argument("--rollback", action="store_true", default=None, help="Undo completed renames when a reversal fails")
    p.add_argument("--recover", action="store_true", help="Repair directories left mid-reversal (.bak files) and exit")
    p.add_argument("--verbose", action="store_true", help="Print progress to stdout")
    p.add_argument("--check-tools", action="store_true", help="Verify external tools and exit")
    return p.parse_args(argv)


def pick_worker_count(requested: int | None, cap: int = MAX_WORKER_CAP) -> int:
    """Determine worker count within the cap."""
    cores = max(1, multiprocessing.cpu_count())
    if requested is None:
        return min(cores, cap)
    return max(1, min(requested, cap))


def build_config(args: argparse.Namespace, app: AppConfig) -> RunConfig:
    """Create a RunConfig from parsed args and environment defaults."""
    input_dir = args.input_dir
    output_dir = args.output_dir or input_dir
    rollback = app.sequence.rollback_on_failure if args.rollback is None else args.rollback
    return RunConfig(
        input_dir=input_dir,
        output_dir=output_dir,
        size=args.size,
        width=args.width,
        height=args.height,
        crop_rect=parse_crop(args.crop) if args.crop else None,
        workers=pick_worker_count(args.max_workers, app.worker.max_worker_cap),
        verbose=args.verbose,
        reverse=args.reverse,
        encode=not args.reverse_only,
        rollback=rollback,
        staging_suffix=app.sequence.staging_suffix,
    )


def print_run_header(logger: SimpleLogger, config: RunConfig) -> None:
    """Print the run configuration."""
    logger.section("Run Configuration")
    rows = [
        ["Input:", str(config.input_dir)],
        ["Output:", str(config.output_dir)],
        ["Reverse:", "yes" if config.reverse else "no"],
        ["Rollback:", "yes" if config.rollback else "no"],
        ["Encode:", "gif" if config.encode else "skip"],
        ["Size:", config.size or (f"{config.width}x{config.height or config.width}" if config.width else "design")],
        ["Workers:", str(config.workers)],
    ]
    for label, value in rows:
        logger.info(f"{label:<12} {value}")


def recover_directories(directories: list[Path], config: RunConfig, logger: SimpleLogger) -> int:
    """Run staging recovery on every character directory. Returns failure count."""
    failures = 0
    for d in directories:
        try:
            result = recover_staged(d, config.staging_suffix)
        except CharmakeError as ex:
            logger.error(f"{d.name}: {ex}")
            failures += 1
            continue
        if result.mode == "clean":
            logger.info(f"{d.name}: nothing staged")
        else:
            logger.success(f"{d.name}: {result.mode} ({len(result.renamed)} files renamed)")
    return failures


def prepare_characters(
    directories: list[Path],
    config: RunConfig,
    app: AppConfig,
    logger: SimpleLogger,
) -> tuple[list[CharacterSequence], int, int]:
    """Validate and reverse each character directory.

    A failure in one directory is logged and never stops the others.
    Returns (characters, skipped, failures).
    """
    chars: list[CharacterSequence] = []
    skipped = failures = 0

    for i, d in enumerate(directories, 1):
        tag = f"[{i:02d}/{len(directories)}] {d.name}"
        try:
            char = build_character_sequence(
                d,
                reverse=config.reverse,
                rollback=config.rollback,
                suffix=config.staging_suffix,
                design_names=app.sequence.design_names,
            )
        except EmptySequenceError as ex:
            logger.warning(f"{tag}: {ex} (skipped)")
            skipped += 1
            continue
        except RenameFailureError as ex:
            logger.error(f"{tag}: {ex}")
            if ex.rolled_back:
                logger.error(f"{tag}: completed renames were rolled back")
            else:
                logger.error(f"{tag}: staged '{config.staging_suffix}' files may remain; run with --recover")
            failures += 1
            continue
        except CharmakeError as ex:
            logger.error(f"{tag}: {ex}")
            failures += 1
            continue
        except OSError as ex:
            logger.error(f"{tag}: {type(ex).__name__}: {ex}")
            failures += 1
            continue

        seq = char.sequence
        action = "reversed" if config.reverse else "validated"
        logger.info(
            f"{tag}: {action} {len(seq)} frames {seq.filename_for(seq.min_index)}..{seq.filename_for(seq.max_index)}"
            f" (design {char.design_mode})"
        )
        chars.append(char)

    return chars, skipped, failures


def encode_characters(
    chars: list[CharacterSequence],
    config: RunConfig,
    app: AppConfig,
    logger: SimpleLogger,
) -> tuple[int, int]:
    """Build one GIF per character in a thread pool. Returns (successes, failures)."""
    successes = failures = 0
    jobs = {}

    for char in chars:
        try:
            design_size = None if (config.size or config.width) else image_dimensions(char.design_file)
            size = resolve_output_size(config.size, config.width, config.height, design_size)
        except (CharmakeError, OSError) as ex:
            logger.error(f"{char.name}: cannot determine output size: {ex}")
            failures += 1
            continue
        out_path = config.output_dir / f"{char.name}.gif"
        logger.info(f"Creating {out_path} ({size[0]}x{size[1]})")
        jobs[char.name] = build_encode_config(
            char, out_path, size, config.crop_rect, app.gif, app.worker.default_timeout_sec
        )

    with futures.ThreadPoolExecutor(max_workers=config.workers) as pool:
        fut_map = {pool.submit(encode_gif_task, job): name for name, job in jobs.items()}
        for fut in futures.as_completed(fut_map):
            name = fut_map[fut]
            ok, msg, _size = fut.result()
            if ok:
                logger.success(f"{name}: {msg}")
                successes += 1
            else:
                logger.error(f"{name}: {msg}")
                failures += 1

    return successes, failures


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point."""
    args = parse_args(argv)

    if args.check_tools:
        ok, probs = check_tools()
        if ok:
            for name, path in resolve_tools().items():
                print(f"Tools OK: {name} ({path})")
            return 0
        for p in probs:
            print(f"Tool check failed: {p}", file=sys.stderr)
        return 1

    app = create_config_from_env()
    try:
        config = build_config(args, app)
    except (CharmakeError, ValueError) as ex:
        print(f"Invalid arguments: {ex}", file=sys.stderr)
        return 2

    if not config.input_dir.is_dir():
        print(f"Input directory not found: {config.input_dir}", file=sys.stderr)
        return 1

    config.output_dir.mkdir(parents=True, exist_ok=True)
    logger = SimpleLogger(config.output_dir / LOG_FILE_NAME, verbose=config.verbose)

    directories = list_character_dirs(config.input_dir)
    if not directories:
        logger.warning(f"No character directories found in {config.input_dir}. Nothing to do.")
        return 0

    if args.recover:
        return 0 if recover_directories(directories, config, logger) == 0 else 1

    if config.encode:
        tools_ok, probs = check_tools()
        if not tools_ok:
            for p in probs:
                logger.error(f"Tool check failed: {p}")
            return 1

    print_run_header(logger, config)
    t0 = time.time()

    chars, skipped, failures = prepare_characters(directories, config, app, logger)

    encoded = 0
    if config.encode and chars:
        logger.info("Finishing generation of GIF files...")
        encoded, encode_failures = encode_characters(chars, config, app, logger)
        failures += encode_failures

    logger.section("Summary")
    logger.table(
        ["Characters", "Prepared", "Skipped", "Failed", "GIFs", "Time"],
        [[str(len(directories)), str(len(chars)), str(skipped), str(failures), str(encoded), f"{time.time() - t0:.1f}s"]],
    )
    if failures:
        logger.error(f"{failures} character(s) failed, see {config.output_dir / LOG_FILE_NAME}")

    return 0 if failures == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
