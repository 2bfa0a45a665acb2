import argparse
import logging
import os
import re
import sys
from pathlib import Path

from . import config
from .core import MigratorApp
from .exceptions import CatalogError
from .models import MigrationOptions, RotationPolicy


def setup_logging(dest_root: Path, verbose: bool):
    """Sets up logging to both console and a file in the destination."""
    log_level = logging.DEBUG if verbose else logging.INFO

    dest_root.mkdir(parents=True, exist_ok=True)
    log_file = dest_root / config.RUN_LOG

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[
            logging.FileHandler(log_file, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )

    # Silence chatty libraries
    logging.getLogger("exifread").setLevel(logging.ERROR)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() not in ("", "0", "false", "no")


def _env_int(name: str) -> int:
    value = os.environ.get(name, "").strip()
    try:
        return int(value) if value else 0
    except ValueError:
        return 0


def _regex(value: str):
    try:
        return re.compile(value)
    except re.error as e:
        raise argparse.ArgumentTypeError(f"invalid caption pattern {value!r}: {e}")


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Export an iPhoto library into a plain folder tree with XMP sidecars")

    p.add_argument("library", type=Path, help="iPhoto library root (contains Database/, Masters/, Previews/)")
    p.add_argument("dest", type=Path, help="Destination root")

    p.add_argument("-v", "--verbose", action="store_true", default=_env_flag(config.ENV_VERBOSE),
                   help=f"Enable debug logging (env {config.ENV_VERBOSE})")
    p.add_argument("--from-id", type=int, default=_env_int(config.ENV_FROM_ID),
                   help=f"Only process versions with id >= N (env {config.ENV_FROM_ID})")
    p.add_argument("--caption", type=_regex, default=os.environ.get(config.ENV_CAPTION) or None,
                   help=f"Only process versions whose caption matches REGEX (env {config.ENV_CAPTION})")
    p.add_argument("--rotation-policy", type=RotationPolicy,
                   choices=list(RotationPolicy), default=RotationPolicy.CATALOG,
                   help="Rotation source for face regions (default: catalog)")
    p.add_argument("--use-crop-edits", action="store_true",
                   help="Recompute edited face regions through decoded crop edits")
    p.add_argument("--report-csv", type=Path, default=None, help="Write a per-file CSV report")

    return p.parse_args(argv)


def build_options(args) -> MigrationOptions:
    caption = args.caption
    if isinstance(caption, str):
        caption = _regex(caption)
    return MigrationOptions(
        from_id=args.from_id,
        caption_pattern=caption,
        rotation_policy=args.rotation_policy,
        use_crop_edits=args.use_crop_edits,
        report_csv=args.report_csv,
    )


def main(argv=None):
    args = parse_args(argv)

    library_root = args.library.resolve()
    dest_root = args.dest.resolve()

    setup_logging(dest_root, args.verbose)

    logging.info("=== iPhoto Migrator Started ===")
    logging.info(f"Library: {library_root}")
    logging.info(f"Dest:    {dest_root}")

    app = MigratorApp(library_root)

    try:
        app.migrate(dest_root, build_options(args))
    except CatalogError as e:
        logging.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        sys.exit(1)
    except Exception:
        logging.exception("Fatal error during migration.")
        sys.exit(1)


if __name__ == "__main__":
    main()
