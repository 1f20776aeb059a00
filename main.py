from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import threading
import warnings

from urllib3.exceptions import InsecureRequestWarning

from config import DEFAULT_CONFIG_PATH, DEFAULT_ENV_FILE, NetBoxConfig, load_runtime_config
from exceptions import NetBoxExportError
from exporter import Exporter
from inventory import JSONInventoryCache
from mapping import MappingResolver
from models import ExportOptions, ExportResult, ValidationSummary
from netbox_client import NetBoxClient
from sync import Syncer

logger = logging.getLogger(__name__)

DEFAULT_CACHE_PATH = "cache/inventory.json"


def setup_logging(min_log_level=logging.INFO, logs_dir="logs"):
    """
    Sets up logging to separate files for each log level.
    Only logs from the specified `min_log_level` and above are saved in their respective files.
    Includes console logging for the same log levels.

    :param min_log_level: Minimum log level to log. Defaults to logging.INFO.
    :param logs_dir: Directory for the per-level log files.
    """
    if not os.path.exists(logs_dir):
        os.makedirs(logs_dir)

    if not os.access(logs_dir, os.W_OK):
        raise PermissionError(f"Cannot write to log directory: {logs_dir}")

    log_levels = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL
    }

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    log_format = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")

    for level_name, level_value in log_levels.items():
        if level_value >= min_log_level:
            log_file = os.path.join(logs_dir, f"{level_name.lower()}.log")
            handler = logging.FileHandler(log_file)
            handler.setLevel(level_value)
            handler.setFormatter(log_format)

            # Only records of exactly this level go to this file
            handler.addFilter(lambda record, lv=level_value: record.levelno == lv)
            root_logger.addHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(min_log_level)
    console_handler.setFormatter(log_format)
    root_logger.addHandler(console_handler)

    logging.info(f"Logging is set up. Minimum log level: {logging.getLevelName(min_log_level)}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wifi2netbox", description="Export wireless inventory to NetBox")
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose (debug) logging')
    parser.add_argument('--config', default=DEFAULT_CONFIG_PATH, help='YAML configuration file')
    parser.add_argument('--cache', default=DEFAULT_CACHE_PATH, help='Inventory cache written by the vendor adapters')
    parser.add_argument('--logs-dir', default="logs", help='Directory for log files')
    commands = parser.add_subparsers(dest="command", required=True)

    export = commands.add_parser("export", help="Export access points to NetBox")
    export.add_argument("scope", choices=["all", "site"], help="Export all sites or a single site")
    export.add_argument("site", nargs="?", default="", help="Site name when scope is 'site'")
    export.add_argument("--dry-run", action="store_true", help="Show what would change without writing")
    export.add_argument("--validate", action="store_true", help="Only check NetBox dependencies")
    export.add_argument("--force", action="store_true", help="Do not ask for confirmation")
    export.add_argument("--no-radios", action="store_true", help="Skip radio and WLAN interfaces")

    commands.add_parser("check", help="Test the NetBox connection")

    pull = commands.add_parser("pull", help="List access points known to NetBox")
    pull.add_argument("site", nargs="?", default="", help="Limit to one site")
    return parser


def print_export_result(result: ExportResult, dry_run: bool = False) -> None:
    stats = result.stats
    title = "Dry run" if dry_run else "Export"
    print(f"\n{title} summary ({stats.duration:.1f}s)")
    print(f"  Total:   {stats.total}")
    print(f"  Created: {stats.created}")
    print(f"  Updated: {stats.updated}")
    print(f"  Skipped: {stats.skipped}")
    print(f"  Errors:  {stats.errors}")
    if result.cancelled:
        print("  (cancelled before all devices were processed)")

    if dry_run:
        for outcome in result.created + result.updated:
            print(f"  {outcome.operation:<13} {outcome.name} ({outcome.mac})")

    if result.skipped:
        print("\nSkipped:")
        for skipped in result.skipped:
            print(f"  - {skipped.name} ({skipped.mac}): {skipped.reason}")

    if result.errors:
        print("\nErrors:")
        for error in result.errors:
            print(f"  - {error}")


def print_validation_summary(summary: ValidationSummary) -> None:
    print(f"\nValidated {summary.total} devices: {summary.valid} valid, {summary.invalid} invalid")
    sections = (
        ("Missing sites", summary.missing_sites),
        ("Missing device types", summary.missing_device_types),
        ("Missing device roles", summary.missing_roles),
    )
    for title, bucket in sections:
        if not bucket:
            continue
        print(f"\n{title}:")
        for key, devices in sorted(bucket.items()):
            print(f"  - {key} ({len(devices)} devices): {', '.join(devices)}")


def confirm(prompt: str) -> bool:
    try:
        answer = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}


def run_export(args, config: NetBoxConfig) -> int:
    if args.scope == "site" and not args.site:
        logger.error("A site name is required when scope is 'site'.")
        return 1

    options = ExportOptions(
        site_name=args.site if args.scope == "site" else "",
        dry_run=args.dry_run,
        force=args.force,
        include_radios=not args.no_radios,
    )
    inventory = JSONInventoryCache(args.cache)
    exporter = Exporter.from_config(config, inventory)

    if args.validate:
        summary = exporter.validate_only(options)
        print_validation_summary(summary)
        return 0 if summary.invalid == 0 else 1

    if not options.dry_run and not options.force:
        scope = f"site '{options.site_name}'" if options.site_name else "all sites"
        if not confirm(f"Export access points of {scope} to {config.url}?"):
            print("Aborted.")
            return 1

    stop_event = threading.Event()

    def _handle_sigint(signum, frame):
        logger.warning("Interrupt received, stopping after the current device")
        stop_event.set()

    previous_handler = signal.signal(signal.SIGINT, _handle_sigint)
    try:
        result = exporter.export(options, stop_event=stop_event)
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    print_export_result(result, dry_run=options.dry_run)
    return 0 if not result.errors and not result.cancelled else 1


def run_pull(args, config: NetBoxConfig) -> int:
    syncer = Syncer(NetBoxClient(config), MappingResolver(config.mappings))
    metadata = syncer.sync_from_netbox(args.site)
    for mac, device in sorted(metadata.items()):
        print(f"{mac}  {device.name:<30} {device.site_name:<20} {device.model}")
    print(f"\n{len(metadata)} access points")
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    setup_logging(log_level, logs_dir=args.logs_dir)
    if args.verbose:
        logger.debug("Verbose logging enabled")

    logger.debug("Loading runtime configuration (config file + env file + environment)")
    try:
        config = load_runtime_config(args.config, env_file=DEFAULT_ENV_FILE)
    except NetBoxExportError as e:
        logger.error(f"Failed to load runtime configuration: {e}")
        return 1
    logger.debug("Runtime configuration loaded successfully")

    if not config.verify_ssl:
        warnings.simplefilter("ignore", InsecureRequestWarning)

    try:
        if args.command == "check":
            version = NetBoxClient(config).test_connection()
            print(f"Connected to NetBox {version} at {config.url}")
            return 0
        if args.command == "pull":
            return run_pull(args, config)
        return run_export(args, config)
    except NetBoxExportError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
