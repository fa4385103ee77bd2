"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/models.py
Data models and domain logic for media scanning and content-based deduplication.
"""

from dataclasses import dataclass, field, fields, replace
from typing import List, Optional, Tuple
import os
from enum import Enum

# Decoder digest: 32-char lowercase hex MD5 of the decoded streams
HashValue = str


# =============================
# Enums
# =============================

class KeepStrategy(Enum):
    """
    Strategy used to pick the single file that survives in a duplicate group.
    """
    FIRST = "first"
    LAST = "last"
    LARGEST = "largest"
    SMALLEST = "smallest"
    BEST_QUALITY = "best_quality"

    @property
    def display_name(self) -> str:
        """Human-readable name for console output."""
        mapping = {
            KeepStrategy.FIRST: "First",
            KeepStrategy.LAST: "Last",
            KeepStrategy.LARGEST: "Largest",
            KeepStrategy.SMALLEST: "Smallest",
            KeepStrategy.BEST_QUALITY: "Best Quality",
        }
        return mapping.get(self, self.value)

    @property
    def description(self) -> str:
        """Detailed description for help text."""
        mapping = {
            KeepStrategy.FIRST: "first file in scan order",
            KeepStrategy.LAST: "last file in scan order",
            KeepStrategy.LARGEST: "largest file (ties: first in scan order)",
            KeepStrategy.SMALLEST: "smallest file (ties: first in scan order)",
            KeepStrategy.BEST_QUALITY: "highest bitrate reported by ffprobe (ties: first in scan order)",
        }
        return mapping.get(self, self.value)

    @classmethod
    def parse(cls, value: Optional[str]) -> "KeepStrategy":
        """Parse a strategy name; anything unknown falls back to FIRST."""
        if isinstance(value, KeepStrategy):
            return value
        if not value:
            return cls.FIRST
        normalized = value.strip().lower().replace("-", "_")
        if normalized == "bestquality":
            normalized = cls.BEST_QUALITY.value
        for strategy in cls:
            if strategy.value == normalized:
                return strategy
        return cls.FIRST

    def __repr__(self) -> str:
        return self.value


class ExecutionMode(Enum):
    """What happens to the files classified as duplicates."""
    DRY_RUN = "dry-run"
    DELETE = "delete"
    MOVE_TO_TRASH = "move-to-trash"
    SYSTEM_TRASH = "system-trash"

    @property
    def is_dry_run(self) -> bool:
        return self is ExecutionMode.DRY_RUN

    def __repr__(self) -> str:
        return self.value


class RunStage(str, Enum):
    SCANNING = "Scanning"
    GROUPING = "Grouping"
    RESOLVING = "Resolving"
    EXECUTING = "Executing"
    REPORTING = "Reporting"

    @classmethod
    def get_all(cls):
        return [cls.SCANNING, cls.GROUPING, cls.RESOLVING, cls.EXECUTING, cls.REPORTING]


class RemovalStatus(str, Enum):
    WOULD_REMOVE = "would_remove"
    REMOVED = "removed"
    ALREADY_GONE = "already_gone"
    FAILED = "failed"


# ======================
#  Core Data Models
# ======================

@dataclass(frozen=True)
class FileRecord:
    """
    A single candidate media file, as discovered by the scanner.
    Read-only after creation; identity is the path.
    """
    path: str
    size: int  # in bytes
    modified_at: float = 0.0  # st_mtime

    @property
    def name(self) -> str:
        return os.path.basename(self.path)

    @property
    def extension(self) -> str:
        """Lower-cased suffix including the dot (".MP3" -> ".mp3")."""
        _, ext = os.path.splitext(self.name)
        return ext.lower()

    def __repr__(self):
        return f"<FileRecord path={self.path}, size={self.size}>"


@dataclass(frozen=True)
class CacheEntry:
    path: str
    modified_at: float
    size: int
    hash: HashValue

    def matches(self, modified_at: float, size: int) -> bool:
        """A cached hash is only valid for the exact same mtime and size."""
        return self.modified_at == modified_at and self.size == size


@dataclass
class DuplicateGroup:
    """
    Two or more files whose decoded content hashes are identical.
    Members keep the scanner's order (first discovered first).
    """
    hash: HashValue
    members: List[FileRecord]

    def __post_init__(self):
        if len(self.members) < 2:
            raise ValueError("A duplicate group needs at least two members")

    @property
    def duplicate_count(self) -> int:
        """How many files are in this group."""
        return len(self.members)

    @property
    def total_size(self) -> int:
        return sum(m.size for m in self.members)

    def __repr__(self):
        return f"<DuplicateGroup hash={self.hash}, count={len(self.members)}>"


@dataclass
class Resolution:
    """One keeper and the rest of the group marked for removal."""
    group: DuplicateGroup
    keeper: FileRecord
    removals: List[FileRecord]

    def __post_init__(self):
        if self.keeper not in self.group.members:
            raise ValueError(f"Keeper {self.keeper.path} is not a member of the group")
        expected = [m for m in self.group.members if m != self.keeper]
        if list(self.removals) != expected:
            raise ValueError("Removals must be exactly the group members other than the keeper")
        if not self.removals:
            raise ValueError("A resolution must remove at least one file")

    @property
    def bytes_to_free(self) -> int:
        return sum(f.size for f in self.removals)

    @classmethod
    def for_keeper(cls, group: DuplicateGroup, keeper: FileRecord) -> "Resolution":
        removals = [m for m in group.members if m != keeper]
        return cls(group=group, keeper=keeper, removals=removals)


@dataclass(frozen=True)
class RunStatistics:
    """
    Counters collected during a run. Every stage returns its own partial
    value; the orchestrator merges them into the final snapshot.
    """
    files_scanned: int = 0
    files_hashed: int = 0
    cache_hits: int = 0
    decodes_skipped: int = 0
    hash_failures: int = 0
    duplicate_groups: int = 0
    files_removed: int = 0
    bytes_freed: int = 0
    removal_failures: int = 0

    def merge(self, other: "RunStatistics") -> "RunStatistics":
        """Field-wise sum of two statistics snapshots."""
        return replace(self, **{
            f.name: getattr(self, f.name) + getattr(other, f.name)
            for f in fields(self)
        })

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def print_summary(self) -> str:
        labels = {
            "files_scanned": "📁 Files scanned",
            "files_hashed": "🔍 Files hashed",
            "cache_hits": "💾 Cache hits",
            "decodes_skipped": "⏩ Decodes skipped (raw twins)",
            "hash_failures": "⚠️ Hash failures",
            "duplicate_groups": "📄 Duplicate groups",
            "files_removed": "🗑 Files removed",
            "bytes_freed": "📦 Bytes freed",
            "removal_failures": "❌ Removal failures",
        }

        lines = ["📊 Run Statistics:"]
        for name, value in self.as_dict().items():
            lines.append(f"{labels.get(name, name)}: {value}")
        return "\n".join(lines)


@dataclass
class RemovalAction:
    """Outcome of handling one non-keeper file."""
    record: FileRecord
    status: RemovalStatus
    destination: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status != RemovalStatus.FAILED


@dataclass
class ExecutionResult:
    resolution: Resolution
    mode: ExecutionMode
    actions: List[RemovalAction] = field(default_factory=list)
    stats: RunStatistics = field(default_factory=RunStatistics)

    @property
    def failures(self) -> List[RemovalAction]:
        return [a for a in self.actions if not a.succeeded]


@dataclass
class RunReport:
    """Everything a single pass produced, for presentation and export."""
    records: List[FileRecord] = field(default_factory=list)
    groups: List[DuplicateGroup] = field(default_factory=list)
    resolutions: List[Resolution] = field(default_factory=list)
    results: List[ExecutionResult] = field(default_factory=list)
    stats: RunStatistics = field(default_factory=RunStatistics)
    total_time: float = 0.0

    @property
    def duplicates_found(self) -> int:
        """Number of files that are redundant copies (all non-keepers)."""
        return sum(len(r.removals) for r in self.resolutions)

    @property
    def space_saved_bytes(self) -> int:
        return sum(r.bytes_to_free for r in self.resolutions)


# =============================
# Configuration
# =============================

class DeduplicationConfig:
    DEFAULT_EXTENSIONS: Tuple[str, ...] = (
        # audio
        ".mp3", ".flac", ".wav", ".ogg", ".oga", ".opus", ".m4a", ".aac",
        ".wma", ".aif", ".aiff", ".ape", ".wv", ".mka", ".alac",
        # video
        ".mp4", ".m4v", ".mkv", ".avi", ".mov", ".wmv", ".webm", ".flv",
        ".mpg", ".mpeg", ".ts", ".3gp",
    )
    HASH_TIMEOUT_SECONDS = 300.0
    PROBE_TIMEOUT_SECONDS = 30.0
    RAW_FINGERPRINT_CHUNK_SIZE = 1024 * 1024

    @staticmethod
    def default_workers() -> int:
        return os.cpu_count() or 4


"""
DTO for deduplication parameters with built-in validation.
Interface-agnostic: the CLI builds it, the command consumes it.
"""

@dataclass
class DeduplicationParams:
    """Parameters for one deduplication run, validated on creation."""
    root_dir: str
    recursive: bool = True
    extensions: List[str] = field(default_factory=lambda: list(DeduplicationConfig.DEFAULT_EXTENSIONS))
    excluded_dirs: List[str] = field(default_factory=list)
    keep_strategy: KeepStrategy = KeepStrategy.FIRST
    mode: ExecutionMode = ExecutionMode.DRY_RUN
    trash_dir: Optional[str] = None
    cache_path: Optional[str] = None
    workers: int = 1
    hash_timeout: float = DeduplicationConfig.HASH_TIMEOUT_SECONDS
    raw_shortcut: bool = True
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"

    def __post_init__(self):
        """Validate parameters immediately after creation."""
        if not self.root_dir:
            raise ValueError("Root directory cannot be empty")

        if self.workers < 1:
            raise ValueError("Worker count must be at least 1")

        if self.hash_timeout <= 0:
            raise ValueError("Hash timeout must be positive")

        if self.mode == ExecutionMode.MOVE_TO_TRASH and not self.trash_dir:
            raise ValueError("Move-to-trash mode requires a trash directory")

        self.keep_strategy = KeepStrategy.parse(self.keep_strategy)

        # Normalize extensions: ensure they start with dot and are lowercase
        normalized = []
        for ext in self.extensions:
            ext = ext.strip().lower()
            if ext and not ext.startswith('.'):
                ext = f".{ext}"
            if ext and ext not in normalized:
                normalized.append(ext)
        self.extensions = normalized

    @property
    def dry_run(self) -> bool:
        return self.mode.is_dry_run

    @staticmethod
    def parse_extensions(extensions_str: Optional[str]) -> List[str]:
        """
        Parse a comma-separated allowlist. None means the default media set,
        "all" (or "*") means no filtering at all; a blank list is rejected.
        """
        if extensions_str is None:
            return list(DeduplicationConfig.DEFAULT_EXTENSIONS)
        if extensions_str.strip().lower() in ("all", "*"):
            return []
        extensions = [ext.strip() for ext in extensions_str.split(",") if ext.strip()]
        if not extensions:
            raise ValueError("No extensions given; use 'all' to scan every file")
        return extensions

    @staticmethod
    def from_cli_strings(
            root_dir: str,
            extensions_str: Optional[str] = None,
            keep: str = "first",
            **kwargs
    ) -> 'DeduplicationParams':
        """
        Factory method to create params from raw command-line strings.
        """
        return DeduplicationParams(
            root_dir=root_dir,
            extensions=DeduplicationParams.parse_extensions(extensions_str),
            keep_strategy=KeepStrategy.parse(keep),
            **kwargs
        )
