"""
mediadedup: duplicate media finder that compares decoded audio/video content.

Core features:
- Content hashing through ffmpeg: tags, container and filename differences are ignored
- Optional persistent hash cache, parallel hashing and raw-copy shortcut (xxHash64)
- Keep strategies: first, last, largest, smallest, best quality (ffprobe bitrate)
- Dry-run by default; delete, move to a trash directory, or send to the system trash (send2trash)
"""

# Get version
try:
    from importlib.metadata import version as _version
    __version__ = _version("mediadedup")
except Exception:
    try:
        import tomllib  # Python 3.11+
    except ImportError:
        import tomli as tomllib  # Python < 3.11: pip install tomli
    from pathlib import Path as _Path

    with open(_Path(__file__).resolve().parents[2] / "pyproject.toml", "rb") as f:
        __version__ = tomllib.load(f)["project"]["version"]

# Public API, only what users should import directly
from mediadedup.commands import DeduplicationCommand
from mediadedup.core import (
    DeduplicationParams, KeepStrategy, ExecutionMode, FileRecord, DuplicateGroup, Resolution,
    RunStatistics, RunReport,
)
from mediadedup.services import FileService, ReportService
from mediadedup.utils.convert_utils import ConvertUtils

__all__ = [
    "DeduplicationCommand",
    "DeduplicationParams",
    "KeepStrategy",
    "ExecutionMode",
    "FileRecord",
    "DuplicateGroup",
    "Resolution",
    "RunStatistics",
    "RunReport",
    "ConvertUtils",
    "FileService",
    "ReportService",
    "__version__",
]
