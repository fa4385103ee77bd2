"""
CLI tests: argument handling, exit codes and console output.
ffmpeg/ffprobe are replaced by the fakes from conftest.
"""
import json
import os
from unittest import mock

import pytest

import mediadedup.cli as cli_module
from mediadedup.cli import CLIApplication, main
from mediadedup.core.models import DeduplicationConfig
from conftest import make_media


def run_cli(*argv):
    return CLIApplication().run([str(a) for a in argv])


class TestCLIOutput:

    def test_two_identical_wavs(self, temp_dir, fake_tools, capsys):
        make_media(temp_dir / "a.wav", b"pcm" * 100)
        make_media(temp_dir / "b.wav", b"pcm" * 100, tag=b"retagged")

        assert run_cli(temp_dir) == 0
        out = capsys.readouterr().out
        assert f"Analyzed 2 files in {temp_dir}" in out
        assert "Found 1 duplicate(s) in 1 group(s)" in out
        assert "[KEEP]" in out and "a.wav" in out
        assert "Dry run: 1 duplicate(s) found" in out
        assert (temp_dir / "b.wav").exists()

    def test_empty_directory(self, temp_dir, fake_tools, capsys):
        assert run_cli(temp_dir) == 0
        out = capsys.readouterr().out
        assert "Analyzed 0 files" in out
        assert "No media files found." in out

    def test_only_unsupported_files(self, temp_dir, fake_tools, capsys):
        (temp_dir / "readme.txt").write_text("hello")
        (temp_dir / "copy.txt").write_text("hello")

        assert run_cli(temp_dir) == 0
        assert "No media files found." in capsys.readouterr().out

    def test_no_duplicates(self, temp_dir, fake_tools, capsys):
        make_media(temp_dir / "a.mp3", b"one")
        make_media(temp_dir / "b.mp3", b"two")

        assert run_cli(temp_dir) == 0
        assert "No duplicates found." in capsys.readouterr().out

    def test_force_deletes(self, media_tree, temp_dir, fake_tools, capsys):
        assert run_cli(temp_dir, "--force", "--keep", "last") == 0

        out = capsys.readouterr().out
        assert "Deleted 3 duplicate file(s)" in out
        assert media_tree["song"].exists()
        assert not media_tree["song_sub"].exists()
        assert media_tree["intro_copy"].exists()
        assert not media_tree["intro"].exists()

    def test_force_with_trash(self, media_tree, temp_dir, tmp_path, fake_tools, capsys):
        trash = tmp_path / "trash"
        assert run_cli(temp_dir, "--force", "--trash", trash) == 0

        assert "Moved 3 duplicate file(s)" in capsys.readouterr().out
        assert sorted(os.listdir(trash)) == ["intro_copy.FLAC", "song (copy).mp3", "song.mp3"]

    def test_system_trash(self, media_tree, temp_dir, fake_tools, capsys):
        with mock.patch("mediadedup.services.file_service.send2trash") as send:
            assert run_cli(temp_dir, "--delete", "--system-trash") == 0
        assert send.call_count == 3

    def test_undecodable_file_warns(self, media_tree, temp_dir, fake_tools, capsys):
        run_cli(temp_dir)
        assert "could not be decoded" in capsys.readouterr().err

    def test_quiet_prints_nothing(self, media_tree, temp_dir, fake_tools, capsys):
        assert run_cli(temp_dir, "--quiet") == 0
        captured = capsys.readouterr()
        assert captured.out == ""

    def test_verbose_shows_summary(self, media_tree, temp_dir, fake_tools, capsys):
        assert run_cli(temp_dir, "-v", "--parallel", "2") == 0
        out = capsys.readouterr().out
        assert "Run Statistics" in out
        assert "Completed in" in out

    def test_extensions_option(self, media_tree, temp_dir, fake_tools, capsys):
        assert run_cli(temp_dir, "--extensions", "flac") == 0
        out = capsys.readouterr().out
        assert "Analyzed 2 files" in out
        assert "Found 1 duplicate(s) in 1 group(s)" in out


class TestCLIFiles:

    def test_stats_file(self, media_tree, temp_dir, tmp_path, fake_tools):
        stats_path = tmp_path / "stats.json"
        assert run_cli(temp_dir, "--stats", stats_path) == 0

        stats = json.loads(stats_path.read_text(encoding="utf-8"))
        assert stats["total_files"] == 7
        assert stats["duplicates_found"] == 3
        assert stats["dry_run"] is True
        assert stats["hash_failures"] == 1

    def test_log_file(self, media_tree, temp_dir, tmp_path, fake_tools):
        log_path = tmp_path / "run.log"
        assert run_cli(temp_dir, "--log", log_path, "--quiet") == 0

        content = log_path.read_text(encoding="utf-8")
        assert "Would remove:" in content
        assert "Keep:" in content

    def test_cache_option(self, media_tree, temp_dir, tmp_path, fake_tools):
        decoder, _ = fake_tools
        cache_path = tmp_path / "hashes.db"

        run_cli(temp_dir, "--cache", cache_path, "-q")
        first_calls = len(decoder.calls)
        run_cli(temp_dir, "--cache", cache_path, "-q")

        assert cache_path.exists()
        # Only the undecodable file is retried
        assert len(decoder.calls) == first_calls + 1


class TestCLIErrors:

    def test_missing_directory(self, tmp_path, fake_tools, capsys):
        with pytest.raises(SystemExit) as exc_info:
            run_cli(tmp_path / "nope")
        assert exc_info.value.code == 1
        assert "Directory not found" in capsys.readouterr().err

    def test_file_instead_of_directory(self, tmp_path, fake_tools):
        path = make_media(tmp_path / "a.mp3", b"x")
        with pytest.raises(SystemExit) as exc_info:
            run_cli(path)
        assert exc_info.value.code == 1

    def test_unknown_keep_strategy_is_usage_error(self, temp_dir, fake_tools):
        with pytest.raises(SystemExit) as exc_info:
            run_cli(temp_dir, "--keep", "newest")
        assert exc_info.value.code == 2

    def test_force_and_dry_run_are_exclusive(self, temp_dir, fake_tools):
        with pytest.raises(SystemExit) as exc_info:
            run_cli(temp_dir, "--force", "--dry-run")
        assert exc_info.value.code == 2

    def test_invalid_parallel(self, temp_dir, fake_tools):
        with pytest.raises(SystemExit) as exc_info:
            run_cli(temp_dir, "--parallel", "0")
        assert exc_info.value.code == 1

    def test_missing_ffmpeg(self, temp_dir, monkeypatch, capsys):
        monkeypatch.setattr(cli_module.shutil, "which", lambda name: None)
        with pytest.raises(SystemExit) as exc_info:
            run_cli(temp_dir)
        assert exc_info.value.code == 1
        assert "ffmpeg is not installed" in capsys.readouterr().err

    def test_best_quality_requires_ffprobe(self, temp_dir, monkeypatch, capsys):
        monkeypatch.setattr(cli_module.shutil, "which", lambda name: None if name == "ffprobe" else "/bin/ffmpeg")
        with pytest.raises(SystemExit) as exc_info:
            run_cli(temp_dir, "--keep", "best_quality")
        assert exc_info.value.code == 1
        assert "ffprobe" in capsys.readouterr().err

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            run_cli("--version")
        assert exc_info.value.code == 0
        assert "mediadedup" in capsys.readouterr().out

    def test_main_interrupted(self, temp_dir):
        with mock.patch.object(CLIApplication, "run", side_effect=KeyboardInterrupt):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 130

    def test_main_exit_code(self, temp_dir, fake_tools):
        with mock.patch("sys.argv", ["mediadedup", str(temp_dir), "-q"]):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 0


class TestCLIArguments:

    def test_parallel_without_count_before_directory(self, temp_dir, fake_tools, capsys):
        make_media(temp_dir / "a.wav", b"pcm" * 10)
        make_media(temp_dir / "b.wav", b"pcm" * 10, tag=b"other")

        assert run_cli("--parallel", temp_dir) == 0
        assert "Found 1 duplicate(s) in 1 group(s)" in capsys.readouterr().out

    def test_parallel_without_count_uses_cpu_count(self, temp_dir):
        args = CLIApplication().parse_args(["--parallel", str(temp_dir)])
        assert args.directory == str(temp_dir)
        assert args.parallel == DeduplicationConfig.default_workers()

    def test_parallel_with_count(self, temp_dir):
        args = CLIApplication().parse_args(["--parallel", "3", str(temp_dir)])
        assert args.directory == str(temp_dir)
        assert args.parallel == 3

    def test_parallel_with_non_numeric_count(self, temp_dir):
        with pytest.raises(SystemExit) as exc_info:
            CLIApplication().parse_args([str(temp_dir), "--parallel", "many"])
        assert exc_info.value.code == 2

    def test_directory_is_required(self):
        with pytest.raises(SystemExit) as exc_info:
            CLIApplication().parse_args(["--force"])
        assert exc_info.value.code == 2

    @pytest.mark.parametrize("blank", ["", ","])
    def test_blank_extensions_is_usage_error(self, temp_dir, fake_tools, capsys, blank):
        (temp_dir / "a.txt").write_text("same")
        (temp_dir / "b.txt").write_text("same")

        with pytest.raises(SystemExit) as exc_info:
            run_cli(temp_dir, "--extensions", blank)
        assert exc_info.value.code == 1
        assert "No extensions given" in capsys.readouterr().err
