"""
multisampler/cli.py
Command-line interface for Multisampler

Usage:
    python -m multisampler inspect Drums.adv
    python -m multisampler validate Drums.adv
    python -m multisampler --log validate Drums.adv
"""

import argparse
from pathlib import Path
from typing import Optional

from .config import APP_VERSION, note_name
from .model.errors import MappingError
from .presets.preset_manager import PresetError, PresetManager
from .presets.validator import validate_mapping
from .utils.app_paths import get_log_path
from .utils.logger import LogLevel, logger, set_log_level


def _load(path: str):
    path = Path(path)
    if not path.is_file():
        raise PresetError(f"Preset file not found: {path}")
    return PresetManager(presets_dir=path.parent).load(path)


def cmd_inspect(args: argparse.Namespace) -> int:
    """Print keys, layers and slots of a preset."""
    try:
        decoded = _load(args.preset)
    except (PresetError, MappingError) as e:
        print(f"ERROR: {e}")
        return 1

    model = decoded.model
    settings = decoded.settings
    print(f"Preset:  {settings.name}")
    print(f"Creator: {settings.creator}")
    print(f"Parts:   {model.sample_count} on {len(model.mapped_keys())} key(s)")
    print()

    for key_id in model.mapped_keys():
        print(f"{note_name(key_id):>4} ({key_id})")
        for layer in model.layers_for_key(key_id):
            vr = layer.velocity_range
            print(f"    layer {layer.layer_id}: velocity {vr.min}-{vr.max}"
                  f" (xfade {vr.crossfade_min}-{vr.crossfade_max})")
            for index, part in model.parts_for_layer(layer.layer_id):
                pitch = (f"pitched {part.key_range_min}-{part.key_range_max} root {part.root_key}"
                         if part.is_pitched else "fixed")
                line = f"        rr {index}: {part.name} [{pitch}]"
                if args.verbose:
                    line += f" {decoded.plan.relative_path(part.part_id)}"
                    line += f" {part.segment_start}-{part.segment_end}"
                print(line)
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Decode a preset and re-run export validation on it."""
    try:
        decoded = _load(args.preset)
    except (PresetError, MappingError) as e:
        print(f"ERROR: {e}")
        return 1

    is_valid, issues = validate_mapping(decoded.model, plan=decoded.plan)
    if is_valid:
        print(f"OK: {decoded.model.sample_count} parts")
        return 0

    print(f"FAILED: {len(issues)} issue(s)")
    for issue in issues:
        where = ", ".join(f"{name}={value}" for name, value in (
            ("key", issue.key_id), ("layer", issue.layer_id), ("part", issue.part_id))
            if value is not None)
        print(f"  [{issue.code}] {issue.message}" + (f" ({where})" if where else ""))
    return 1


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="multisampler",
        description="Inspect and validate Sampler multisample presets",
    )
    parser.add_argument(
        "--version", action="version",
        version=f"%(prog)s {APP_VERSION}"
    )
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    parser.add_argument("--log", action="store_true",
                        help="Also log to multisampler.log in the app data dir")
    parser.add_argument("--log-file", type=str, metavar="PATH", help="Also log to this file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # inspect command
    inspect_parser = subparsers.add_parser("inspect", help="Show the mapping of a preset")
    inspect_parser.add_argument("preset", type=str, help="Preset (.adv) path")
    inspect_parser.add_argument("--verbose", "-v", action="store_true", help="Show paths and segments")
    inspect_parser.set_defaults(func=cmd_inspect)

    # validate command
    validate_parser = subparsers.add_parser("validate", help="Validate a preset")
    validate_parser.add_argument("preset", type=str, help="Preset (.adv) path")
    validate_parser.set_defaults(func=cmd_validate)

    args = parser.parse_args(argv)
    if args.debug:
        set_log_level(LogLevel.DEBUG)
    if not (args.log or args.log_file):
        return args.func(args)

    log_path = Path(args.log_file) if args.log_file else get_log_path()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logger.enable_file_logging(str(log_path))
    try:
        return args.func(args)
    finally:
        logger.disable_file_logging()
