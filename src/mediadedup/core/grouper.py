"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/grouper.py
Computes content hashes for scanned files and groups files with identical hashes.

Order of work for every record:
  1. cache lookup (valid only for unchanged mtime and size)
  2. raw twins collapse: same size + same xxHash64 of the bytes -> decode once
  3. decoder hash, optionally on a bounded thread pool
  4. cache store, done on the calling thread only

Parallelism changes throughput only: results are consumed in submission order,
so groups and their members always follow the scanner's order.
"""

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from typing import List, Dict, Tuple, Any, Callable, Iterable, Iterator, Optional

from mediadedup.core.exceptions import HashError
from mediadedup.core.hasher import RawFingerprinter
from mediadedup.core.interfaces import FileGrouper, Hasher, HashStore, ProgressCallback
from mediadedup.core.models import FileRecord, DuplicateGroup, HashValue, RunStatistics

logger = logging.getLogger(__name__)


class FileGrouperImpl(FileGrouper):
    """
    Groups files by the content hash of their decoded media streams.
    The hasher, cache and fingerprinter are injected for flexibility and testability.
    """

    def __init__(
        self,
        hasher: Hasher,
        cache: Optional[HashStore] = None,
        workers: int = 1,
        fingerprinter: Optional[RawFingerprinter] = None
    ):
        self.hasher = hasher
        self.cache = cache
        self.workers = max(1, workers)
        self.fingerprinter = fingerprinter

    def group(
        self,
        records: List[FileRecord],
        progress_callback: Optional[ProgressCallback] = None
    ) -> Tuple[List[DuplicateGroup], RunStatistics]:
        total = len(records)
        hashes: Dict[str, HashValue] = {}
        cache_hits = 0
        failures = 0
        decodes_skipped = 0

        pending = []
        for record in records:
            cached = self.cache.lookup(record.path, record.modified_at, record.size) if self.cache else None
            if cached is not None:
                logger.info(f"Cached: {record.path}")
                hashes[record.path] = cached
                cache_hits += 1
            else:
                pending.append(record)

        processed = cache_hits
        if progress_callback and total:
            progress_callback("Grouping", processed, total)

        batches = self._collapse_raw_twins(pending)
        for batch, (hash_value, error) in zip(batches, self._map(self._hash_one, [b[0] for b in batches])):
            if error is not None:
                for record in batch:
                    logger.warning(f"Skipping {record.path}: could not compute content hash ({error.reason})")
                failures += len(batch)
            else:
                for record in batch:
                    hashes[record.path] = hash_value
                    if self.cache is not None:
                        self.cache.store(record.path, record.modified_at, record.size, hash_value)
                decodes_skipped += len(batch) - 1

            processed += len(batch)
            if progress_callback:
                progress_callback("Grouping", processed, total)

        partitions = self._group_by(
            [r for r in records if r.path in hashes],
            lambda r: hashes[r.path]
        )
        groups = [DuplicateGroup(hash=key, members=members) for key, members in partitions.items()]

        stats = RunStatistics(
            files_hashed=len(hashes),
            cache_hits=cache_hits,
            decodes_skipped=decodes_skipped,
            hash_failures=failures,
            duplicate_groups=len(groups),
        )
        return groups, stats

    def _hash_one(self, record: FileRecord) -> Tuple[Optional[HashValue], Optional[HashError]]:
        """Runs on a worker thread; failures are returned, not raised."""
        logger.info(f"Hashing: {record.path}")
        try:
            return self.hasher.compute_hash(record.path), None
        except HashError as e:
            return None, e

    def _collapse_raw_twins(self, records: List[FileRecord]) -> List[List[FileRecord]]:
        """
        Batches byte-identical files so only the first of each batch is decoded.
        Only files sharing their size with another file are fingerprinted.
        """
        if self.fingerprinter is None:
            return [[r] for r in records]

        by_size = defaultdict(int)
        for record in records:
            by_size[record.size] += 1
        candidates = [r for r in records if by_size[r.size] > 1]

        fingerprints = dict(zip(
            (r.path for r in candidates),
            self._map(lambda r: self.fingerprinter.fingerprint(r.path), candidates)
        ))

        batches: Dict[Any, List[FileRecord]] = {}
        for record in records:
            fingerprint = fingerprints.get(record.path)
            key = (record.size, fingerprint) if fingerprint is not None else ("path", record.path)
            batches.setdefault(key, []).append(record)
        return list(batches.values())

    def _map(self, func: Callable[[Any], Any], items: List[Any]) -> Iterator[Any]:
        """Ordered map, on a bounded thread pool when more than one worker is configured."""
        if self.workers <= 1 or len(items) < 2:
            yield from map(func, items)
            return
        with ThreadPoolExecutor(max_workers=min(self.workers, len(items))) as pool:
            yield from pool.map(func, items)

    @staticmethod
    def _group_by(records: Iterable[FileRecord], key_func: Callable[[FileRecord], Any]) -> Dict[Any, List[FileRecord]]:
        """
        Helper method to group files by any computed key.
        Keeps only groups with 2+ files; insertion order follows the input order.
        """
        groups = defaultdict(list)
        for record in records:
            groups[key_func(record)].append(record)

        return {key: group for key, group in groups.items() if len(group) >= 2}
