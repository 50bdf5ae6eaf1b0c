"""Main module for the GlobeTrotter imaging CLI."""

import argparse
import json
import sys
from pathlib import Path
from typing import Callable, List, Optional

from . import __version__
from .core import (
    ProcessOptions,
    ValidationPolicy,
    WatermarkOptions,
    WebOptimizeOptions,
    add_watermark,
    convert_format,
    create_thumbnail,
    extract_image_metadata,
    generate_multiple_sizes,
    get_logger,
    optimize_for_web,
    process_image,
    validate_image,
)
from .core.config import ImagingSettings
from .core.config_store import RATE_LIMIT_KEY, ConfigStore
from .core.exceptions import ImagingError
from .core.factories import UploadServiceFactory
from .core.logging_config import set_debug_logging
from .core.models import WATERMARK_POSITIONS
from .core.processing import SUPPORTED_FORMATS
from .core.storage import FILE_EXTENSIONS

DEFAULT_ENV_FILE = "config.env"
DEFAULT_EXAMPLE_FILE = "config.env.example"

logger = get_logger("cli")


def _read(path: str) -> bytes:
    return Path(path).read_bytes()


def _write(path: str, data: bytes) -> None:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(data)


def _store(args: argparse.Namespace) -> ConfigStore:
    return ConfigStore(args.env_file, example_path=args.example_file)


def cmd_validate(args: argparse.Namespace) -> int:
    defaults = ValidationPolicy()
    policy = ValidationPolicy(
        max_size=args.max_size or defaults.max_size,
        max_width=args.max_width or defaults.max_width,
        max_height=args.max_height or defaults.max_height,
        allowed_formats=(
            args.allowed_formats.split(",") if args.allowed_formats else defaults.allowed_formats
        ),
    )
    result = validate_image(_read(args.file), policy)
    print(result.model_dump_json(indent=2, exclude_none=True))
    return 0 if result.valid else 2


def cmd_metadata(args: argparse.Namespace) -> int:
    metadata = extract_image_metadata(_read(args.file))
    print(metadata.model_dump_json(indent=2, exclude_none=True))
    return 0


def cmd_variants(args: argparse.Namespace) -> int:
    variants = generate_multiple_sizes(_read(args.file), format=args.format)
    stem = Path(args.file).stem
    for name, variant in sorted(variants.items()):
        extension = FILE_EXTENSIONS.get(variant.format, variant.format)
        out_path = Path(args.out_dir) / f"{stem}_{name}.{extension}"
        _write(str(out_path), variant.data)
        print(f"{name}: {out_path} ({variant.width}x{variant.height}, {variant.size} bytes)")
    return 0


def cmd_thumbnail(args: argparse.Namespace) -> int:
    _write(args.output, create_thumbnail(_read(args.file), size=args.size))
    return 0


def cmd_optimize(args: argparse.Namespace) -> int:
    options = WebOptimizeOptions(
        max_width=args.max_width,
        max_height=args.max_height,
        quality=args.quality,
        format=args.format,
    )
    _write(args.output, optimize_for_web(_read(args.file), options))
    return 0


def cmd_convert(args: argparse.Namespace) -> int:
    options = {"quality": args.quality} if args.quality else None
    _write(args.output, convert_format(_read(args.file), args.format, options))
    return 0


def cmd_resize(args: argparse.Namespace) -> int:
    options = ProcessOptions(
        width=args.width,
        height=args.height,
        quality=args.quality,
        format=args.format,
        fit=args.fit,
        position=args.position,
    )
    _write(args.output, process_image(_read(args.file), options))
    return 0


def cmd_watermark(args: argparse.Namespace) -> int:
    watermark = args.text if args.text is not None else _read(args.image)
    options = WatermarkOptions(
        position=args.position, opacity=args.opacity, margin=args.margin
    )
    _write(args.output, add_watermark(_read(args.file), watermark, options))
    return 0


def cmd_upload(args: argparse.Namespace) -> int:
    settings = ImagingSettings.from_store(_store(args))
    if args.bucket:
        settings.storage_bucket = args.bucket
    if args.prefix is not None:
        settings.storage_prefix = args.prefix

    service = UploadServiceFactory.create_service(settings=settings)
    results = service.process_batch({path: _read(path) for path in args.files})

    report = {
        path: result.model_dump(mode="json", exclude={"metadata"}) for path, result in results.items()
    }
    print(json.dumps(report, indent=2))
    return 0 if all(result.success for result in results.values()) else 1


def cmd_config(args: argparse.Namespace) -> int:
    store = _store(args)
    if args.config_command == "get":
        value = store.get(args.key)
        if value is None:
            print(f"{args.key} is not set")
            return 1
        print(value)
    elif args.config_command == "set":
        store.set(args.key, args.value)
        store.persist()
        print(f"{args.key}={args.value}")
    elif args.config_command == "unset":
        store.unset(args.key)
        store.persist()
    else:
        for key, value in sorted(store.as_dict().items()):
            print(f"{key}={value}")
    return 0


def cmd_rate_limit(args: argparse.Namespace) -> int:
    store = _store(args)
    if args.action == "reset":
        print("Rate limit counters are held in server memory and reset when the server restarts.")
        print("Restart the server to reset them now.")
        return 0
    if args.action == "enable":
        store.set_rate_limit(True)
    elif args.action == "disable":
        store.set_rate_limit(False)
    else:
        for key, value in store.rate_limit_status().items():
            print(f"{key}: {value}")
    state = "ENABLED" if store.rate_limit_enabled() else "DISABLED"
    print(f"Rate limiting: {state}")
    if not store.rate_limit_enabled() and not store.rate_limit_bypass_active():
        print(f"Note: the server ignores {RATE_LIMIT_KEY} unless NODE_ENV=development.")
    if args.action != "status":
        print("Restart the server for the change to take effect.")
    return 0


def cmd_version(args: argparse.Namespace) -> int:
    print("GlobeTrotter Imaging CLI")
    print(f"Version {__version__}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="globetrotter-imaging",
        description="GlobeTrotter imaging - validate, inspect and render uploaded images",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check an upload against the default limits
  globetrotter-imaging validate photo.jpg

  # Render thumbnail, medium and large variants
  globetrotter-imaging variants photo.jpg --out-dir renders/

  # Disable rate limiting for local load testing
  globetrotter-imaging rate-limit disable
        """,
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--env-file", default=DEFAULT_ENV_FILE, help="Configuration file (default: config.env)"
    )
    parser.add_argument(
        "--example-file",
        default=DEFAULT_EXAMPLE_FILE,
        help="Template used when the configuration file does not exist",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    validate_parser = subparsers.add_parser("validate", help="Validate an image upload")
    validate_parser.add_argument("file")
    validate_parser.add_argument("--max-size", type=int, help="Maximum size in bytes")
    validate_parser.add_argument("--max-width", type=int, help="Maximum width in pixels")
    validate_parser.add_argument("--max-height", type=int, help="Maximum height in pixels")
    validate_parser.add_argument(
        "--allowed-formats", help="Comma-separated formats (default: jpeg,png,webp,gif)"
    )
    validate_parser.set_defaults(handler=cmd_validate)

    metadata_parser = subparsers.add_parser("metadata", help="Print image metadata as JSON")
    metadata_parser.add_argument("file")
    metadata_parser.set_defaults(handler=cmd_metadata)

    variants_parser = subparsers.add_parser("variants", help="Render size variants")
    variants_parser.add_argument("file")
    variants_parser.add_argument("--out-dir", required=True)
    variants_parser.add_argument("--format", default="jpeg", choices=SUPPORTED_FORMATS)
    variants_parser.set_defaults(handler=cmd_variants)

    thumbnail_parser = subparsers.add_parser("thumbnail", help="Create a square thumbnail")
    thumbnail_parser.add_argument("file")
    thumbnail_parser.add_argument("output")
    thumbnail_parser.add_argument("--size", type=int, default=300)
    thumbnail_parser.set_defaults(handler=cmd_thumbnail)

    resize_parser = subparsers.add_parser("resize", help="Resize and re-encode an image")
    resize_parser.add_argument("file")
    resize_parser.add_argument("output")
    resize_parser.add_argument("--width", type=int)
    resize_parser.add_argument("--height", type=int)
    resize_parser.add_argument("--quality", type=int, default=80)
    resize_parser.add_argument("--format", default="jpeg")
    resize_parser.add_argument(
        "--fit", default="cover", choices=["cover", "contain", "inside", "fill"]
    )
    resize_parser.add_argument("--position", default="center")
    resize_parser.set_defaults(handler=cmd_resize)

    optimize_parser = subparsers.add_parser("optimize", help="Optimize an image for the web")
    optimize_parser.add_argument("file")
    optimize_parser.add_argument("output")
    optimize_parser.add_argument("--max-width", type=int, default=1920)
    optimize_parser.add_argument("--max-height", type=int, default=1080)
    optimize_parser.add_argument("--quality", type=int, default=85)
    optimize_parser.add_argument("--format", default="webp")
    optimize_parser.set_defaults(handler=cmd_optimize)

    convert_parser = subparsers.add_parser("convert", help="Convert to another format")
    convert_parser.add_argument("file")
    convert_parser.add_argument("output")
    convert_parser.add_argument("--format", required=True)
    convert_parser.add_argument("--quality", type=int)
    convert_parser.set_defaults(handler=cmd_convert)

    watermark_parser = subparsers.add_parser("watermark", help="Add a text or image watermark")
    watermark_parser.add_argument("file")
    watermark_parser.add_argument("output")
    source = watermark_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--text")
    source.add_argument("--image")
    watermark_parser.add_argument(
        "--position", default="bottomRight", choices=WATERMARK_POSITIONS
    )
    watermark_parser.add_argument("--opacity", type=float, default=0.7)
    watermark_parser.add_argument("--margin", type=int, default=20)
    watermark_parser.set_defaults(handler=cmd_watermark)

    upload_parser = subparsers.add_parser("upload", help="Process uploads and store variants")
    upload_parser.add_argument("files", nargs="+")
    upload_parser.add_argument("--bucket", help="Overrides STORAGE_BUCKET")
    upload_parser.add_argument("--prefix", help="Overrides STORAGE_PREFIX")
    upload_parser.set_defaults(handler=cmd_upload)

    config_parser = subparsers.add_parser("config", help="Read or change configuration")
    config_sub = config_parser.add_subparsers(dest="config_command")
    config_get = config_sub.add_parser("get")
    config_get.add_argument("key")
    config_set = config_sub.add_parser("set")
    config_set.add_argument("key")
    config_set.add_argument("value")
    config_unset = config_sub.add_parser("unset")
    config_unset.add_argument("key")
    config_sub.add_parser("list")
    config_parser.set_defaults(handler=cmd_config)

    rate_limit_parser = subparsers.add_parser("rate-limit", help="Inspect or toggle API rate limiting")
    rate_limit_parser.add_argument("action", choices=["status", "enable", "disable", "reset"])
    rate_limit_parser.set_defaults(handler=cmd_rate_limit)

    version_parser = subparsers.add_parser("version", help="Show version information")
    version_parser.set_defaults(handler=cmd_version)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the ``globetrotter-imaging`` command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if args.debug:
        set_debug_logging()

    handler: Callable[[argparse.Namespace], int] = args.handler
    try:
        exit_code = handler(args)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user.")
        exit_code = 130
    except (ImagingError, OSError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
