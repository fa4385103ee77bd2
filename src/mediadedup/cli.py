#!/usr/bin/env python3
"""
mediadedup CLI: find and remove duplicate media files by decoded-content hash.
Dry-run is the default: nothing on disk changes unless --force is given.
"""
from __future__ import annotations  # Enable postponed evaluation of annotations (PEP 563)
import argparse
import logging
import os
import shutil
import sys
import time
from typing import List, Optional, NoReturn

logging.basicConfig(
    level=logging.ERROR,
    format="%(levelname)-8s | %(name)-25s | %(message)s"
)

# === EARLY DEPENDENCY VALIDATION ===
_MISSING_DEPS = []
try:
    from send2trash import send2trash
except ImportError:
    _MISSING_DEPS.append("send2trash")

try:
    import xxhash
except ImportError:
    _MISSING_DEPS.append("xxhash")

if _MISSING_DEPS:
    print("❌ Missing required dependencies:", file=sys.stderr)
    print(f"   pip install {' '.join(_MISSING_DEPS)}", file=sys.stderr)
    sys.exit(1)

# === NORMAL IMPORTS (after validation) ===
from mediadedup import __version__
from mediadedup.core.exceptions import UsageError
from mediadedup.core.models import (
    DeduplicationConfig, DeduplicationParams, ExecutionMode, KeepStrategy, RemovalStatus, RunReport,
)
from mediadedup.commands import DeduplicationCommand
from mediadedup.services.report_service import ReportService
from mediadedup.utils.convert_utils import ConvertUtils
from mediadedup.aliases import (
    KEEP_ALIASES, KEEP_CHOICES, KEEP_HELP_TEXT, EXTENSIONS_HELP_TEXT, EPILOG_TEXT
)

PACKAGE_LOGGER = "mediadedup"
CONSOLE_FORMAT = "%(levelname)-8s | %(name)-25s | %(message)s"
LOG_FILE_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def _parallel_value(text: str):
    """int for N; any other token is handed back to parse_args as a possible DIRECTORY."""
    try:
        return int(text)
    except ValueError:
        return text


class CLIApplication:
    """Main CLI application controller."""

    def __init__(self):
        self.start_time: float = time.time()
        self.verbose: bool = False
        self.quiet: bool = False
        self.parser: argparse.ArgumentParser = self.build_parser()
        self._log_handlers: List[logging.Handler] = []
        self._saved_logger_state = None

        # Fix encoding for Windows consoles to prevent UnicodeEncodeError
        for stream in (sys.stdout, sys.stderr):
            if hasattr(stream, "reconfigure"):
                stream.reconfigure(encoding='utf-8')

    @staticmethod
    def build_parser() -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="mediadedup",
            description="Find duplicate audio/video files by hashing their decoded content with ffmpeg",
            formatter_class=argparse.RawTextHelpFormatter,
            epilog=EPILOG_TEXT
        )

        parser.add_argument(
            "directory",
            nargs="?",
            default=None,
            type=str,
            help="Directory to scan for duplicate media files"
        )

        # Actions
        action = parser.add_mutually_exclusive_group()
        action.add_argument(
            "--dry-run",
            dest="force",
            action="store_false",
            help="Only report what would be removed (default)"
        )
        action.add_argument(
            "--force", "--delete",
            dest="force",
            action="store_true",
            help="Actually remove duplicates (delete, or move with --trash / --system-trash)"
        )
        parser.set_defaults(force=False)

        parser.add_argument(
            "--keep",
            choices=KEEP_CHOICES,
            default="first",
            type=str,
            metavar="{first,last,largest,smallest,best_quality}",
            help=KEEP_HELP_TEXT
        )

        # Filtering options
        parser.add_argument(
            "--extensions", "-x",
            default=None,
            type=str,
            metavar="LIST",
            help=EXTENSIONS_HELP_TEXT
        )
        parser.add_argument(
            "--no-recursive",
            dest="recursive",
            action="store_false",
            help="Only scan files directly inside DIRECTORY"
        )
        parser.add_argument(
            "--exclude", "-e",
            nargs="+",
            default=[],
            type=str,
            metavar="DIR",
            dest="excluded_dirs",
            help="Directories (space separated) to skip while scanning"
        )

        # Hashing options
        parser.add_argument(
            "--parallel",
            nargs="?",
            const=DeduplicationConfig.default_workers(),
            default=1,
            type=_parallel_value,
            metavar="N",
            help="Hash files on N threads (default when N is omitted: CPU count)"
        )
        parser.add_argument(
            "--cache",
            default=None,
            type=str,
            metavar="FILE",
            help="Keep computed hashes in FILE and reuse them for unchanged files"
        )
        parser.add_argument(
            "--timeout",
            default=DeduplicationConfig.HASH_TIMEOUT_SECONDS,
            type=float,
            metavar="SECONDS",
            help=f"Give up decoding a single file after this many seconds. "
                 f"Default: {DeduplicationConfig.HASH_TIMEOUT_SECONDS:g}"
        )
        parser.add_argument(
            "--no-raw-shortcut",
            dest="raw_shortcut",
            action="store_false",
            help="Decode every file, even byte-identical copies"
        )
        parser.add_argument("--ffmpeg", default="ffmpeg", metavar="PATH", help="ffmpeg executable")
        parser.add_argument("--ffprobe", default="ffprobe", metavar="PATH", help="ffprobe executable")

        # Removal destination
        destination = parser.add_mutually_exclusive_group()
        destination.add_argument(
            "--trash",
            default=None,
            type=str,
            metavar="DIR",
            help="Move duplicates into DIR instead of deleting them"
        )
        destination.add_argument(
            "--system-trash",
            action="store_true",
            help="Move duplicates to the system trash instead of deleting them"
        )

        # Output options
        parser.add_argument(
            "--log",
            default=None,
            type=str,
            metavar="FILE",
            help="Write a log of all operations to FILE"
        )
        parser.add_argument(
            "--stats",
            default=None,
            type=str,
            metavar="FILE",
            help="Write final statistics as JSON to FILE"
        )
        parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress non-essential output"
        )
        parser.add_argument(
            "--verbose", "-v",
            action="store_true",
            help="Show every processed file and detailed statistics"
        )
        parser.add_argument(
            "--version",
            action="version",
            version=f"%(prog)s {__version__}"
        )
        return parser

    def parse_args(self, args=None) -> argparse.Namespace:
        """Parse command-line arguments."""
        parsed = self.parser.parse_args(args)

        # "--parallel DIR": the optional N swallowed the directory
        if isinstance(parsed.parallel, str):
            if parsed.directory is not None:
                self.parser.error(f"argument --parallel: invalid int value: '{parsed.parallel}'")
            parsed.directory = parsed.parallel
            parsed.parallel = DeduplicationConfig.default_workers()

        if parsed.directory is None:
            self.parser.error("the following arguments are required: directory")
        return parsed

    def validate_args(self, args: argparse.Namespace) -> None:
        """Validate command-line arguments before execution."""
        if not os.path.exists(args.directory):
            self.error_exit(f"Directory not found: {args.directory}", show_usage=True)
        if not os.path.isdir(args.directory):
            self.error_exit(f"Path is not a directory: {args.directory}", show_usage=True)

        if args.parallel is not None and args.parallel < 1:
            self.error_exit("--parallel needs at least 1 thread", show_usage=True)

        if args.timeout <= 0:
            self.error_exit("--timeout must be positive", show_usage=True)

        if args.trash and os.path.exists(args.trash) and not os.path.isdir(args.trash):
            self.error_exit(f"Trash path is not a directory: {args.trash}", show_usage=True)

        for excl_dir in args.excluded_dirs:
            if not os.path.isdir(excl_dir):
                self.warning(f"Excluded directory not found: {excl_dir}")

        if shutil.which(args.ffmpeg) is None:
            self.error_exit(f"{args.ffmpeg} is not installed or not in PATH.")

        if KEEP_ALIASES.get(args.keep) == KeepStrategy.BEST_QUALITY and shutil.which(args.ffprobe) is None:
            self.error_exit(f"--keep best_quality needs {args.ffprobe}, which is not installed or not in PATH.")

    def create_params(self, args: argparse.Namespace) -> DeduplicationParams:
        """Create DeduplicationParams from CLI arguments."""
        if not args.force:
            mode = ExecutionMode.DRY_RUN
        elif args.trash:
            mode = ExecutionMode.MOVE_TO_TRASH
        elif args.system_trash:
            mode = ExecutionMode.SYSTEM_TRASH
        else:
            mode = ExecutionMode.DELETE

        try:
            return DeduplicationParams.from_cli_strings(
                root_dir=os.path.abspath(args.directory),
                extensions_str=args.extensions,
                keep=KEEP_ALIASES.get(args.keep, KeepStrategy.FIRST).value,
                recursive=args.recursive,
                excluded_dirs=[os.path.abspath(d) for d in args.excluded_dirs],
                mode=mode,
                trash_dir=os.path.abspath(args.trash) if args.trash else None,
                cache_path=args.cache,
                workers=args.parallel or 1,
                hash_timeout=args.timeout,
                raw_shortcut=args.raw_shortcut,
                ffmpeg_path=args.ffmpeg,
                ffprobe_path=args.ffprobe,
            )
        except ValueError as e:
            self.error_exit(f"Parameter error: {e}", show_usage=True)

    def configure_logging(self, args: argparse.Namespace) -> None:
        """Console handler honouring --verbose/--quiet, plus the optional --log file."""
        logger = logging.getLogger(PACKAGE_LOGGER)
        self._saved_logger_state = (logger.level, logger.propagate)

        if os.environ.get("DEBUG"):
            console_level = logging.DEBUG
        elif self.verbose:
            console_level = logging.INFO
        elif self.quiet:
            console_level = logging.ERROR
        else:
            console_level = logging.WARNING

        console = logging.StreamHandler(sys.stderr)
        console.setLevel(console_level)
        console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        self._log_handlers.append(console)

        logger_level = console_level
        if args.log:
            try:
                log_file = logging.FileHandler(args.log, encoding="utf-8")
            except OSError as e:
                self.error_exit(f"Cannot open log file {args.log}: {e}")
            log_file.setLevel(logging.INFO)
            log_file.setFormatter(logging.Formatter(LOG_FILE_FORMAT))
            self._log_handlers.append(log_file)
            logger_level = min(logger_level, logging.INFO)

        for handler in self._log_handlers:
            logger.addHandler(handler)
        logger.setLevel(logger_level)
        logger.propagate = False

    def restore_logging(self) -> None:
        logger = logging.getLogger(PACKAGE_LOGGER)
        for handler in self._log_handlers:
            logger.removeHandler(handler)
            handler.close()
        self._log_handlers = []
        if self._saved_logger_state is not None:
            logger.setLevel(self._saved_logger_state[0])
            logger.propagate = self._saved_logger_state[1]
            self._saved_logger_state = None

    def progress_callback(self, stage: str, current: int, total: Optional[int]) -> None:
        """CLI progress callback - shows progress in console."""
        if not self.verbose:
            return

        if total and total > 0:
            percent = (current / total) * 100
            sys.stderr.write(f"\r  [{stage}] {current}/{total} ({percent:.1f}%)")
        else:
            sys.stderr.write(f"\r  [{stage}] {current} files processed...")
        sys.stderr.flush()

    def run_deduplication(self, params: DeduplicationParams) -> RunReport:
        """Execute the deduplication workflow."""
        command = DeduplicationCommand()
        try:
            report = command.execute(
                params,
                progress_callback=self.progress_callback if self.verbose else None
            )
        except UsageError as e:
            self.error_exit(str(e), show_usage=True)

        if self.verbose:
            sys.stderr.write("\n")
        return report

    def output_results(self, report: RunReport, params: DeduplicationParams) -> None:
        """Print groups, the action taken for every duplicate and a summary."""
        stats = report.stats

        if stats.hash_failures:
            self.warning(f"{stats.hash_failures} file(s) could not be decoded and were skipped")

        if self.quiet:
            return

        print(f"Analyzed {stats.files_hashed} files in {params.root_dir}\n")
        if stats.files_hashed == 0:
            print("No media files found.")
            return

        if not report.groups:
            print("No duplicates found.")
            return

        print(f"Found {report.duplicates_found} duplicate(s) in {len(report.groups)} group(s)")

        for idx, result in enumerate(report.results, 1):
            resolution = result.resolution
            group = resolution.group
            print(f"\n📁 Group {idx} | Files: {group.duplicate_count} | Hash: {group.hash}")
            print(f"   [KEEP] {resolution.keeper.path} [{ConvertUtils.bytes_to_human(resolution.keeper.size)}]")
            for action in result.actions:
                size_str = ConvertUtils.bytes_to_human(action.record.size)
                if action.status == RemovalStatus.FAILED:
                    print(f"   [FAIL] {action.record.path} ({action.error})")
                elif action.destination:
                    print(f"   [MOVE] {action.record.path} -> {action.destination} [{size_str}]")
                else:
                    print(f"   [DEL]  {action.record.path} [{size_str}]")

        print("\n" + "=" * 60)
        if params.dry_run:
            saved = ConvertUtils.bytes_to_human(report.space_saved_bytes)
            print(f"Dry run: {report.duplicates_found} duplicate(s) found, {saved} would be freed.")
            print("Run with --force to remove them.")
        else:
            freed = ConvertUtils.bytes_to_human(stats.bytes_freed)
            verb = "Moved" if params.mode in (ExecutionMode.MOVE_TO_TRASH, ExecutionMode.SYSTEM_TRASH) else "Deleted"
            print(f"{verb} {stats.files_removed} duplicate file(s), freed {freed}")
            if stats.removal_failures:
                print(f"⚠️  Failed to remove {stats.removal_failures} file(s)")

    def warning(self, message: str) -> None:
        """Print a warning message to stderr."""
        if not self.quiet:
            print(f"⚠️  {message}", file=sys.stderr)

    def error_exit(self, message: str, code: int = 1, show_usage: bool = False) -> NoReturn:
        """Print error and exit."""
        if show_usage:
            self.parser.print_usage(sys.stderr)
        print(f"❌ Error: {message}", file=sys.stderr)
        sys.exit(code)

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Main entry point with conditional output behavior."""
        args = self.parse_args(argv)
        self.verbose = args.verbose
        self.quiet = args.quiet

        self.configure_logging(args)
        try:
            self.validate_args(args)
            params = self.create_params(args)

            if not self.quiet:
                print(f"Scanning directory: {params.root_dir}")

            report = self.run_deduplication(params)
            self.output_results(report, params)

            if args.stats:
                try:
                    ReportService.write_stats(args.stats, report, params)
                except OSError as e:
                    self.warning(f"Could not write statistics to {args.stats}: {e}")

            if self.verbose:
                print("\n" + report.stats.print_summary())
                elapsed = time.time() - self.start_time
                print(f"\n✅ Completed in {ConvertUtils.format_duration(elapsed)}")
        finally:
            self.restore_logging()
        return 0


def main() -> None:
    """Application entry point."""
    app = CLIApplication()
    try:
        sys.exit(app.run())
    except KeyboardInterrupt:
        print("\n⚠️  Operation cancelled by user (Ctrl+C)")
        sys.exit(130)
    except Exception as e:
        if os.environ.get("DEBUG"):
            raise
        print(f"❌ Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
