"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/file_service.py
Filesystem side effects of a run: permanent deletion, relocation into a trash
directory, and removal to the operating system's trash via send2trash.

A source file that no longer exists is reported with FileNotFoundError so the
caller can treat it as an already-satisfied removal.
"""
import errno
import os
import shutil
from pathlib import Path
from send2trash import send2trash


class FileService:
    """
    Cross-platform file removal helpers.
    """

    @staticmethod
    def delete_file(file_path: str) -> None:
        """Permanently removes a file."""
        os.remove(file_path)

    @staticmethod
    def move_to_trash(file_path: str) -> None:
        """Moves a file to the system trash."""
        path = Path(file_path).resolve()

        if not path.exists():
            raise FileNotFoundError(errno.ENOENT, "File not found", str(path))

        try:
            send2trash(str(path))
        except OSError:
            raise
        except Exception as e:
            raise RuntimeError(f"Failed to move to trash: {e}") from e

    @staticmethod
    def move_to_directory(file_path: str, target_dir: str) -> str:
        """
        Moves a file into target_dir, keeping its name.
        On a name collision a numeric suffix is appended (song.mp3 -> song_1.mp3)
        so nothing already in the directory is overwritten.

        Returns:
            The destination path.
        """
        source = Path(file_path)
        if not source.exists():
            raise FileNotFoundError(errno.ENOENT, "File not found", str(source))

        target = Path(target_dir)
        target.mkdir(parents=True, exist_ok=True)

        destination = FileService.unique_destination(target, source.name)
        shutil.move(str(source), str(destination))
        return str(destination)

    @staticmethod
    def unique_destination(target_dir: Path, filename: str) -> Path:
        """First free path for filename inside target_dir."""
        candidate = target_dir / filename
        if not candidate.exists():
            return candidate

        stem, suffix = os.path.splitext(filename)
        counter = 1
        while True:
            candidate = target_dir / f"{stem}_{counter}{suffix}"
            if not candidate.exists():
                return candidate
            counter += 1
