"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

interfaces.py

Defines core interfaces (Protocols) used throughout the deduplication system.
These protocols enforce structural typing using Python's `typing.Protocol` so that
the external tools (ffmpeg, ffprobe) and the cache can be swapped out in tests.

Key Components:
---------------
- Hasher: content hash of a media file's decoded streams.
- BitrateProbe: secondary metadata probe used by the best-quality strategy.
- HashStore: persistent (path, mtime, size) -> hash mapping.
- FileScanner: directory walk returning FileRecords in deterministic order.
- FileGrouper: hashes records and groups them by identical content.
- Resolver: picks one keeper per duplicate group.
- Executor: applies the removal policy to the non-keepers.
"""

from typing import Protocol, List, Dict, Tuple, Optional, Callable
from mediadedup.core.models import (
    FileRecord,
    HashValue,
    DuplicateGroup,
    Resolution,
    RunStatistics,
    KeepStrategy,
    ExecutionMode,
    ExecutionResult,
)

ProgressCallback = Callable[[str, int, Optional[int]], None]


# ===== Interfaces =====

class Hasher(Protocol):
    """Interface for computing the content hash of a media file."""
    def compute_hash(self, path: str) -> HashValue:
        """Return the decoder digest, or raise HashError."""
        ...


class BitrateProbe(Protocol):
    def probe_bitrate(self, path: str) -> Optional[int]:
        """Bits per second reported for the file, or None if unknown."""
        ...


class HashStore(Protocol):
    """
    Interface for the advisory hash cache.
    Never raises: a broken store behaves like an empty one.
    """
    def lookup(self, path: str, modified_at: float, size: int) -> Optional[HashValue]: ...
    def store(self, path: str, modified_at: float, size: int, hash_value: HashValue) -> None: ...


class FileScanner(Protocol):
    def scan(self, progress_callback: Optional[ProgressCallback] = None) -> List[FileRecord]:
        """
        Scan files from the configured directory.

        Returns:
            FileRecords sorted by path, matching the configured filters.
        """
        ...


class FileGrouper(Protocol):
    def group(
        self,
        records: List[FileRecord],
        progress_callback: Optional[ProgressCallback] = None
    ) -> Tuple[List[DuplicateGroup], RunStatistics]:
        """
        Hash every record and group records with identical hashes.

        Returns:
            A tuple containing:
                - groups of 2+ members, ordered by scan order
                - partial statistics (hashed, cache hits, failures, groups)
        """
        ...


class Resolver(Protocol):
    def resolve(
        self,
        group: DuplicateGroup,
        strategy: KeepStrategy,
        bitrates: Optional[Dict[str, Optional[int]]] = None
    ) -> Resolution:
        ...


class Executor(Protocol):
    def apply(
        self,
        resolution: Resolution,
        mode: ExecutionMode,
        trash_dir: Optional[str] = None
    ) -> ExecutionResult:
        ...
