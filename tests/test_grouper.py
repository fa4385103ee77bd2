"""
Tests for FileGrouperImpl: grouping by decoded content hash, failure handling,
ordering under parallelism, cache reuse and the raw-twin decode shortcut.
"""
import os

from mediadedup.core.cache import HashCache
from mediadedup.core.grouper import FileGrouperImpl
from mediadedup.core.hasher import RawFingerprinter
from mediadedup.core.scanner import FileScannerImpl
from conftest import FakeDecoder, make_media

MEDIA_EXTENSIONS = [".mp3", ".flac"]


def _scan(root):
    return FileScannerImpl(str(root), extensions=MEDIA_EXTENSIONS).scan()


def _basenames(group):
    return [os.path.basename(m.path) for m in group.members]


class TestFileGrouper:

    def test_groups_by_decoded_content(self, media_tree, temp_dir, decoder):
        groups, stats = FileGrouperImpl(decoder).group(_scan(temp_dir))

        assert [_basenames(g) for g in groups] == [
            ["track01.mp3", "song (copy).mp3", "song.mp3"],
            ["intro.flac", "intro_copy.FLAC"],
        ]
        assert stats.files_hashed == 6
        assert stats.hash_failures == 1
        assert stats.duplicate_groups == 2

    def test_undecodable_files_are_never_grouped(self, temp_dir, decoder):
        (temp_dir / "bad1.mp3").write_bytes(b"NOT MEDIA same")
        (temp_dir / "bad2.mp3").write_bytes(b"NOT MEDIA same")

        groups, stats = FileGrouperImpl(decoder).group(_scan(temp_dir))
        assert groups == []
        assert stats.hash_failures == 2

    def test_unique_files_form_no_group(self, temp_dir, decoder):
        make_media(temp_dir / "a.mp3", b"one")
        make_media(temp_dir / "b.mp3", b"two")
        groups, _ = FileGrouperImpl(decoder).group(_scan(temp_dir))
        assert groups == []

    def test_empty_input(self, decoder):
        groups, stats = FileGrouperImpl(decoder).group([])
        assert groups == []
        assert stats.files_hashed == 0

    def test_parallel_matches_serial(self, temp_dir):
        for i in range(30):
            make_media(temp_dir / f"f{i:02d}.mp3", bytes([i % 7]) * 64, tag=str(i).encode())
        records = _scan(temp_dir)

        serial, _ = FileGrouperImpl(FakeDecoder(), workers=1).group(records)
        parallel, _ = FileGrouperImpl(FakeDecoder(), workers=8).group(records)

        assert [(g.hash, [m.path for m in g.members]) for g in serial] == \
            [(g.hash, [m.path for m in g.members]) for g in parallel]
        assert len(serial) == 7

    def test_cache_hits_skip_decoding(self, media_tree, temp_dir, tmp_path):
        records = _scan(temp_dir)
        db_path = str(tmp_path / "hashes.db")

        with HashCache(db_path) as cache:
            first_groups, _ = FileGrouperImpl(FakeDecoder(), cache=cache).group(records)

        second_decoder = FakeDecoder()
        with HashCache(db_path) as cache:
            second_groups, stats = FileGrouperImpl(second_decoder, cache=cache).group(records)

        # Only the undecodable file is attempted again
        assert second_decoder.calls == [str(media_tree["broken"])]
        assert stats.cache_hits == 6
        assert [g.hash for g in second_groups] == [g.hash for g in first_groups]

    def test_changed_file_invalidates_cache_entry(self, temp_dir, tmp_path):
        a = make_media(temp_dir / "a.mp3", b"same")
        make_media(temp_dir / "b.mp3", b"same")
        db_path = str(tmp_path / "hashes.db")

        with HashCache(db_path) as cache:
            FileGrouperImpl(FakeDecoder(), cache=cache).group(_scan(temp_dir))

        make_media(a, b"different now")
        os.utime(a, (2_000_000_000, 2_000_000_000))

        decoder = FakeDecoder()
        with HashCache(db_path) as cache:
            groups, stats = FileGrouperImpl(decoder, cache=cache).group(_scan(temp_dir))

        assert decoder.calls == [str(a)]
        assert stats.cache_hits == 1
        assert groups == []

    def test_raw_twins_are_decoded_once(self, media_tree, temp_dir, decoder):
        groups, stats = FileGrouperImpl(decoder, fingerprinter=RawFingerprinter()).group(_scan(temp_dir))

        assert str(media_tree["intro"]) in decoder.calls
        assert str(media_tree["intro_copy"]) not in decoder.calls
        assert stats.decodes_skipped == 1
        assert stats.files_hashed == 6
        assert _basenames(groups[1]) == ["intro.flac", "intro_copy.FLAC"]

    def test_raw_shortcut_does_not_merge_same_size_files(self, temp_dir, decoder):
        make_media(temp_dir / "a.mp3", b"1" * 100)
        make_media(temp_dir / "b.mp3", b"2" * 100)

        groups, stats = FileGrouperImpl(decoder, fingerprinter=RawFingerprinter()).group(_scan(temp_dir))
        assert groups == []
        assert stats.decodes_skipped == 0
        assert len(decoder.calls) == 2

    def test_raw_twins_are_cached_individually(self, temp_dir, tmp_path, decoder):
        a = make_media(temp_dir / "a.mp3", b"twin")
        b = temp_dir / "b.mp3"
        b.write_bytes(a.read_bytes())

        with HashCache(str(tmp_path / "hashes.db")) as cache:
            FileGrouperImpl(decoder, cache=cache, fingerprinter=RawFingerprinter()).group(_scan(temp_dir))
            assert cache.lookup_record(_scan(temp_dir)[1]) is not None
            assert len(cache) == 2

    def test_progress_reaches_total(self, media_tree, temp_dir, decoder):
        calls = []
        records = _scan(temp_dir)
        FileGrouperImpl(decoder).group(records, lambda s, c, t: calls.append((s, c, t)))
        assert calls[-1] == ("Grouping", len(records), len(records))
