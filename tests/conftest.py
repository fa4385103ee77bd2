"""
Shared fixtures for mediadedup tests.

ffmpeg and ffprobe are replaced by in-process fakes so the suite runs without
them. The fake "media" format is:

    TAG:<anything>;BITRATE:<int>\n<payload>

The fake decoder hashes only the payload (tags are ignored, as ffmpeg does
with -map_metadata -1), and files starting with b"NOT MEDIA" fail to decode.
"""
import hashlib
import re
import sys
import threading
from pathlib import Path
from typing import Dict, List, Optional

import pytest

# Add src/ to sys.path so 'mediadedup' is importable without installation
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from mediadedup.core.exceptions import HashError  # noqa: E402

_BITRATE = re.compile(rb"BITRATE:(\d+)")


def make_media(path: Path, payload: bytes, tag: bytes = b"", bitrate: Optional[int] = None) -> Path:
    """Writes a fake media file: tag header line followed by the payload."""
    header = b"TAG:" + tag
    if bitrate is not None:
        header += b";BITRATE:" + str(bitrate).encode()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(header + b"\n" + payload)
    return path


class FakeDecoder:
    """Hasher stand-in: MD5 of the payload, tag line ignored."""

    def __init__(self, *args, **kwargs):
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def compute_hash(self, path: str) -> str:
        with self._lock:
            self.calls.append(path)
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            raise HashError(path, HashError.UNREADABLE, str(e))
        if data.startswith(b"NOT MEDIA"):
            raise HashError(path, HashError.UNREADABLE, "unexpected decoder output")
        if data.startswith(b"TAG:") and b"\n" in data:
            data = data.split(b"\n", 1)[1]
        return hashlib.md5(data).hexdigest()


class FakeProbe:
    """BitrateProbe stand-in reading BITRATE:<n> from the tag line."""

    def __init__(self, *args, **kwargs):
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def probe_bitrate(self, path: str) -> Optional[int]:
        with self._lock:
            self.calls.append(path)
        try:
            head = Path(path).read_bytes().split(b"\n", 1)[0]
        except OSError:
            return None
        match = _BITRATE.search(head)
        return int(match.group(1)) if match else None


@pytest.fixture
def temp_dir(tmp_path) -> Path:
    """Isolated directory for one test, removed by pytest afterwards."""
    root = tmp_path / "library"
    root.mkdir()
    return root


@pytest.fixture
def decoder() -> FakeDecoder:
    return FakeDecoder()


@pytest.fixture
def probe() -> FakeProbe:
    return FakeProbe()


@pytest.fixture
def fake_tools(monkeypatch, decoder, probe):
    """
    Routes DeduplicationCommand and the CLI to the fakes:
    - ffmpeg/ffprobe look installed
    - FFmpegHasher / FFprobeBitrateProbe construction returns the shared fakes
    """
    import mediadedup.cli as cli_module
    import mediadedup.commands as commands_module

    monkeypatch.setattr(cli_module.shutil, "which", lambda name: f"/usr/bin/{name}")
    monkeypatch.setattr(commands_module, "FFmpegHasher", lambda *args, **kwargs: decoder)
    monkeypatch.setattr(commands_module, "FFprobeBitrateProbe", lambda *args, **kwargs: probe)
    return decoder, probe


@pytest.fixture
def media_tree(temp_dir) -> Dict[str, Path]:
    """
    Controlled library for deduplication scenarios:
    - song.mp3 + two copies with different tags/names (one in a subdirectory)
    - intro.flac + byte-identical copy intro_copy.FLAC (uppercase extension)
    - unique.mp3 (different content)
    - empty.mp3 (0 bytes, skipped by scanner)
    - notes.txt (filtered out by default extensions)
    - broken.mp3 (fails to decode)
    """
    files = {}
    files["song"] = make_media(temp_dir / "song.mp3", b"A" * 1024, tag=b"Artist One")
    files["song_tagged"] = make_media(temp_dir / "song (copy).mp3", b"A" * 1024, tag=b"Different Tagger Output")
    files["song_sub"] = make_media(temp_dir / "album" / "track01.mp3", b"A" * 1024, tag=b"x")

    files["intro"] = make_media(temp_dir / "intro.flac", b"B" * 2048)
    files["intro_copy"] = temp_dir / "intro_copy.FLAC"
    files["intro_copy"].write_bytes(files["intro"].read_bytes())

    files["unique"] = make_media(temp_dir / "unique.mp3", b"C" * 1500)

    files["empty"] = temp_dir / "empty.mp3"
    files["empty"].write_bytes(b"")

    files["text"] = temp_dir / "notes.txt"
    files["text"].write_text("not media at all")

    files["broken"] = temp_dir / "broken.mp3"
    files["broken"].write_bytes(b"NOT MEDIA" + b"\x00" * 100)
    return files
