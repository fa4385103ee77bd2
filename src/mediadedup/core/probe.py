"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/probe.py
Bitrate lookup through ffprobe, used only by the best-quality keep strategy.
"""

import json
import logging
import subprocess
from typing import List, Optional

from mediadedup.core.models import DeduplicationConfig

logger = logging.getLogger(__name__)


class FFprobeBitrateProbe:
    def __init__(self, ffprobe_path: str = "ffprobe",
                 timeout: float = DeduplicationConfig.PROBE_TIMEOUT_SECONDS):
        self.ffprobe_path = ffprobe_path
        self.timeout = timeout

    def build_command(self, path: str) -> List[str]:
        return [
            self.ffprobe_path,
            "-v", "error",
            "-show_entries", "format=bit_rate",
            "-of", "json",
            path,
        ]

    def probe_bitrate(self, path: str) -> Optional[int]:
        """
        Returns the container-level bitrate in bits/s.
        Any failure (missing tool, timeout, unparsable output) yields None,
        which ranks the file below every file with a known bitrate.
        """
        try:
            completed = subprocess.run(
                self.build_command(path),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning(f"Bitrate probe failed for {path}: {e}")
            return None

        if completed.returncode != 0:
            logger.debug(f"ffprobe exited with code {completed.returncode} for {path}")
            return None

        return self.parse_output(completed.stdout)

    @staticmethod
    def parse_output(stdout: bytes) -> Optional[int]:
        try:
            data = json.loads(stdout.decode("utf-8", errors="ignore") or "{}")
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None
        bit_rate = (data.get("format") or {}).get("bit_rate")
        if isinstance(bit_rate, int):
            return bit_rate
        if isinstance(bit_rate, str) and bit_rate.isdigit():
            return int(bit_rate)
        return None
