"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/exceptions.py
Error taxonomy of the deduplication engine.

- UsageError     : bad arguments or missing target directory (fatal, exit code 1)
- HashError      : decoder failure, malformed output or timeout (file skipped)
- CacheError     : unreadable or corrupt cache store (cache degrades, run continues)
- ExecutionError : a removal that could not be carried out (reported per file)
"""
from typing import Optional


class MediaDedupError(Exception):
    """Base class for all errors raised by mediadedup."""


class UsageError(MediaDedupError):
    pass


class HashError(MediaDedupError):
    UNREADABLE = "unreadable"
    TIMEOUT = "timeout"
    DECODER_MISSING = "decoder-missing"

    def __init__(self, path: str, reason: str = UNREADABLE, detail: Optional[str] = None):
        self.path = path
        self.reason = reason
        self.detail = detail
        message = f"{reason}: {path}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class CacheError(MediaDedupError):
    pass


class ExecutionError(MediaDedupError):
    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")
