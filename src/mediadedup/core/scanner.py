"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/scanner.py
Implements media file discovery using os.walk and pathlib.
Features:
- Recursive or top-level-only traversal
- Case-insensitive extension allowlist
- Skips symbolic links, zero-byte files, excluded and system trash directories
- Returns FileRecords sorted by path, so repeated runs see the same order
"""

import os
import sys
from typing import List, Optional
from pathlib import Path
import time
import logging

logger = logging.getLogger(__name__)

# Local imports
from mediadedup.core.models import FileRecord
from mediadedup.core.exceptions import UsageError
from mediadedup.core.interfaces import FileScanner, ProgressCallback


class FileScannerImpl(FileScanner):
    """
    Scans a directory and filters files by extension.

    Attributes:
        root_dir: Root directory to scan
        recursive: Descend into subdirectories when True
        extensions: Allowed extensions (e.g., [".mp3", ".mkv"]); empty means all files
        excluded_dirs: Directories that are never entered (e.g. the trash directory)
    """

    def __init__(
        self,
        root_dir: str,
        recursive: bool = True,
        extensions: Optional[List[str]] = None,
        excluded_dirs: Optional[List[str]] = None
    ):
        self.root_dir = root_dir
        self.recursive = recursive
        self.extensions = [ext.lower() for ext in extensions] if extensions else []
        self.excluded_dirs = [str(Path(d).resolve()) for d in excluded_dirs] if excluded_dirs else []

    def scan(self, progress_callback: Optional[ProgressCallback] = None) -> List[FileRecord]:
        """
        Single-pass scanner with throttled progress updates and debug logging.
        Returns the filtered files sorted lexicographically by path.
        """
        logger.debug("Starting scan operation")
        logger.debug(f"Root directory: {self.root_dir}")
        logger.debug(f"Filters: recursive={self.recursive}, extensions={self.extensions}")

        root_path = Path(self.root_dir)
        if not root_path.exists():
            raise UsageError(f"Directory does not exist: {self.root_dir}")
        if not root_path.is_dir():
            raise UsageError(f"Not a directory: {self.root_dir}")

        found_files = []
        processed_files = 0
        progress_interval = 5000
        progress_counter = 0
        start_time = time.time()

        for root, dirs, files in os.walk(str(root_path), onerror=self._on_walk_error):
            if self.recursive:
                # Pre-filter subdirectories BEFORE os.walk enters them
                dirs[:] = [d for d in dirs if self._prefilter_dirs(Path(root) / d)]
            else:
                dirs[:] = []

            for filename in files:
                file_info = self._process_file(Path(root) / filename)
                if file_info:
                    found_files.append(file_info)
                processed_files += 1
                progress_counter += 1

                if progress_callback and progress_counter >= progress_interval:
                    progress_callback('Scanning', processed_files, None)
                    progress_counter = 0

        if progress_callback and progress_counter > 0:
            progress_callback('Scanning', processed_files, None)

        found_files.sort(key=lambda f: f.path)

        logger.debug(f"Total scan time: {time.time() - start_time:.2f} seconds")
        logger.debug(f"Scan completed. Found {len(found_files)} matching files.")
        return found_files

    @staticmethod
    def _on_walk_error(error: OSError) -> None:
        logger.warning(f"Cannot read directory during scan: {error}")

    @staticmethod
    def _is_system_trash(path: Path) -> bool:
        """
        Check if path belongs to OS trash/recycle bin (cross-platform).
        Returns False on any error (fail-safe: better to scan than skip valid data).
        """
        try:
            path_str = str(path.resolve(strict=False))

            if sys.platform == "win32":
                if "$Recycle.Bin" in path_str or "\\Recycler\\" in path_str:
                    return True
            elif sys.platform == "darwin":
                if "/.Trash/" in path_str or path_str.endswith("/.Trash"):
                    return True
            else:
                if ".local/share/Trash" in path_str or "/.trash/" in path_str or path_str.endswith("/.trash"):
                    return True

            return False
        except (OSError, ValueError):
            return False

    @staticmethod
    def _is_excluded_directory(path: Path, excluded_dirs: List[str]) -> bool:
        """Check if path is within an excluded directory."""
        try:
            path_str = str(path.resolve(strict=False))
            for excluded_dir in excluded_dirs:
                normalized_excluded = os.path.normpath(excluded_dir)
                if path_str.startswith(normalized_excluded + os.sep) or \
                        path_str == normalized_excluded:
                    return True
            return False
        except (OSError, ValueError):
            return False

    def _prefilter_dirs(self, path: Path) -> bool:
        """Pre-filter directories: skip symlinks, trash, excluded and inaccessible locations."""
        if path.is_symlink():
            logger.debug(f"Skipping symlinked directory: {path}")
            return False

        if FileScannerImpl._is_system_trash(path):
            logger.debug(f"Skipping system trash directory: {path}")
            return False

        if self.excluded_dirs and self._is_excluded_directory(path, self.excluded_dirs):
            logger.debug(f"Skipping excluded directory: {path}")
            return False

        try:
            return path.is_dir() and os.access(path, os.R_OK | os.X_OK)
        except OSError:
            logger.debug(f"Skipping inaccessible directory: {path}")
            return False

    def _process_file(self, path: Path) -> Optional[FileRecord]:
        """
        Process an individual file path and return a FileRecord if it passes all filters.
        """
        try:
            if path.is_symlink():
                logger.debug(f"Skipping symbolic link: {path}")
                return None
        except OSError as e:
            logger.debug(f"Could not check symlink status for {path}: {e}")
            return None

        if not self._extension_passes(path):
            logger.debug(f"Skipping {path} (extension not allowed)")
            return None

        try:
            stat_result = path.stat()
        except OSError as e:
            logger.debug(f"Could not stat {path}: {e}")
            return None

        if not path.is_file():
            return None

        # Nothing to decode in an empty file
        if stat_result.st_size == 0:
            logger.debug(f"Skipping zero-byte file: {path}")
            return None

        logger.debug(f"Accepted file: {path.name} ({stat_result.st_size} bytes)")
        return FileRecord(
            path=str(path),
            size=stat_result.st_size,
            modified_at=stat_result.st_mtime,
        )

    def _extension_passes(self, path: Path) -> bool:
        """
        Check if file matches any of the allowed extensions.
        Returns:
            True if no allowlist is configured or the suffix is on it
        """
        if not self.extensions:
            return True
        return path.suffix.lower() in self.extensions
