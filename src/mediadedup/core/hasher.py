"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

hasher.py
Implements content hashing by decoding media through ffmpeg, plus raw-byte
fingerprinting with xxHash64.

FFmpegHasher asks ffmpeg for an MD5 of the decoded streams with metadata
stripped, so two files differing only in tags, container or name hash the same.
RawFingerprinter hashes the bytes on disk; byte-identical files always decode
identically, which lets the grouper skip redundant decodes.
"""

import logging
import re
import subprocess
from typing import List, Optional

import xxhash

from mediadedup.core.exceptions import HashError
from mediadedup.core.models import HashValue, DeduplicationConfig

logger = logging.getLogger(__name__)

_MD5_OUTPUT = re.compile(r"^MD5=([0-9a-fA-F]{32})$")


class FFmpegHasher:
    """
    Hasher implementation backed by an ffmpeg subprocess.
    Each call is hermetic: stdin is /dev/null, nothing is shared between calls,
    so many calls can run concurrently.
    """

    def __init__(self, ffmpeg_path: str = "ffmpeg",
                 timeout: float = DeduplicationConfig.HASH_TIMEOUT_SECONDS):
        self.ffmpeg_path = ffmpeg_path
        self.timeout = timeout

    def build_command(self, path: str) -> List[str]:
        return [
            self.ffmpeg_path,
            "-nostdin",
            "-hide_banner",
            "-loglevel", "quiet",
            "-err_detect", "ignore_err",
            "-i", path,
            "-map_metadata", "-1",
            "-f", "md5",
            "-",
        ]

    def compute_hash(self, path: str) -> HashValue:
        """Returns the lowercase hex digest of the decoded streams or raises HashError."""
        try:
            completed = subprocess.run(
                self.build_command(path),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            raise HashError(path, HashError.TIMEOUT, f"no result after {self.timeout:g}s")
        except FileNotFoundError as e:
            raise HashError(path, HashError.DECODER_MISSING, str(e)) from e
        except OSError as e:
            raise HashError(path, HashError.UNREADABLE, str(e)) from e

        if completed.returncode != 0:
            raise HashError(path, HashError.UNREADABLE, f"ffmpeg exited with code {completed.returncode}")

        return self.parse_output(path, completed.stdout)

    @staticmethod
    def parse_output(path: str, stdout: bytes) -> HashValue:
        """Validates ffmpeg's `MD5=<hex>` output line."""
        text = stdout.decode("utf-8", errors="replace").strip()
        match = _MD5_OUTPUT.match(text)
        if not match:
            raise HashError(path, HashError.UNREADABLE, "unexpected decoder output")
        return match.group(1).lower()


class RawFingerprinter:
    """Computes xxHash64 over the raw bytes of a file."""

    def __init__(self, chunk_size: int = DeduplicationConfig.RAW_FINGERPRINT_CHUNK_SIZE):
        self.chunk_size = chunk_size

    def fingerprint(self, path: str) -> Optional[bytes]:
        """Returns the 8-byte digest, or None if the file can't be read."""
        digest = xxhash.xxh64()
        try:
            with open(path, 'rb') as f:
                for chunk in iter(lambda: f.read(self.chunk_size), b""):
                    digest.update(chunk)
        except OSError as e:
            logger.debug(f"Could not fingerprint {path}: {e}")
            return None
        return digest.digest()
