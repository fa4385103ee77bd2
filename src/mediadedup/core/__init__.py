"""
Core deduplication engine: scanner, hashers, cache, grouper, resolver and executor.

- FileScannerImpl: directory traversal with extension filter, deterministic order
- FFmpegHasher: decoded-content MD5 via ffmpeg; RawFingerprinter: xxHash64 of raw bytes
- FFprobeBitrateProbe: bitrate lookup for the best-quality strategy
- HashCache: SQLite-backed (path, mtime, size) -> hash cache
- FileGrouperImpl: cache-first, optionally parallel hashing and grouping by hash
- DuplicateResolver: keeper selection per KeepStrategy
- ExecutorImpl: dry-run / delete / move-to-trash / system-trash
- Models: FileRecord, DuplicateGroup, Resolution, RunStatistics and configuration objects

No presentation code here, suitable for CLI and library usage.
"""

from .models import (
    FileRecord, HashValue, CacheEntry, DuplicateGroup, Resolution, RunStatistics,
    KeepStrategy, ExecutionMode, RunStage, RemovalStatus, RemovalAction, ExecutionResult,
    RunReport, DeduplicationConfig, DeduplicationParams)
from .exceptions import MediaDedupError, UsageError, HashError, CacheError, ExecutionError
from .scanner import FileScannerImpl
from .hasher import FFmpegHasher, RawFingerprinter
from .probe import FFprobeBitrateProbe
from .cache import HashCache
from .grouper import FileGrouperImpl
from .resolver import DuplicateResolver
from .executor import ExecutorImpl

__all__ = [
    "FileRecord",
    "HashValue",
    "CacheEntry",
    "DuplicateGroup",
    "Resolution",
    "RunStatistics",
    "KeepStrategy",
    "ExecutionMode",
    "RunStage",
    "RemovalStatus",
    "RemovalAction",
    "ExecutionResult",
    "RunReport",
    "DeduplicationConfig",
    "DeduplicationParams",
    "MediaDedupError",
    "UsageError",
    "HashError",
    "CacheError",
    "ExecutionError",
    "FileScannerImpl",
    "FFmpegHasher",
    "RawFingerprinter",
    "FFprobeBitrateProbe",
    "HashCache",
    "FileGrouperImpl",
    "DuplicateResolver",
    "ExecutorImpl",
]
