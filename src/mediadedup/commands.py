"""
Unified command orchestrator for a deduplication run.
This is the SINGLE source of truth for the run's business logic; the CLI only
parses arguments and presents the RunReport.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional

from mediadedup.core.cache import HashCache
from mediadedup.core.executor import ExecutorImpl
from mediadedup.core.grouper import FileGrouperImpl
from mediadedup.core.hasher import FFmpegHasher, RawFingerprinter
from mediadedup.core.interfaces import BitrateProbe, Hasher
from mediadedup.core.models import (
    DeduplicationParams, DuplicateGroup, KeepStrategy, RunReport, RunStage, RunStatistics,
)
from mediadedup.core.probe import FFprobeBitrateProbe
from mediadedup.core.resolver import DuplicateResolver
from mediadedup.core.scanner import FileScannerImpl

logger = logging.getLogger(__name__)


class DeduplicationCommand:
    """
    Runs the whole pipeline, strictly in sequence:
    Scanning → Grouping → Resolving → Executing → Reporting

    Usage:
        params = DeduplicationParams(root_dir="/music", keep_strategy=KeepStrategy.LARGEST)
        report = DeduplicationCommand().execute(params, progress_callback=cli_progress_printer)

    The hasher and bitrate probe default to ffmpeg/ffprobe and may be injected.
    """

    def __init__(self, hasher: Optional[Hasher] = None, probe: Optional[BitrateProbe] = None):
        self._hasher = hasher
        self._probe = probe
        self._resolver = DuplicateResolver()
        self._executor = ExecutorImpl()

    def execute(
            self,
            params: DeduplicationParams,
            progress_callback: Optional[Callable[[str, int, Optional[int]], None]] = None
    ) -> RunReport:
        """
        Execute one run with the given parameters.

        Args:
            params: Validated deduplication parameters
            progress_callback: (stage: str, current: int, total: Optional[int]) -> None

        Returns:
            RunReport with scanned records, groups, resolutions, execution results and statistics

        Raises:
            UsageError: If the target directory is missing or not a directory
        """
        start_time = time.time()
        report = RunReport()

        # Step 1: Scan
        logger.debug(f"Stage: {RunStage.SCANNING.value}")
        excluded = list(params.excluded_dirs)
        if params.trash_dir:
            excluded.append(params.trash_dir)
        scanner = FileScannerImpl(
            root_dir=params.root_dir,
            recursive=params.recursive,
            extensions=params.extensions,
            excluded_dirs=excluded,
        )
        report.records = scanner.scan(progress_callback=progress_callback)
        stats = RunStatistics(files_scanned=len(report.records))

        if not report.records:
            report.stats = stats
            report.total_time = time.time() - start_time
            return report

        # Step 2: Hash + group
        logger.debug(f"Stage: {RunStage.GROUPING.value}")
        cache = HashCache(params.cache_path) if params.cache_path else None
        try:
            grouper = FileGrouperImpl(
                hasher=self._hasher or FFmpegHasher(params.ffmpeg_path, timeout=params.hash_timeout),
                cache=cache,
                workers=params.workers,
                fingerprinter=RawFingerprinter() if params.raw_shortcut else None,
            )
            report.groups, group_stats = grouper.group(report.records, progress_callback=progress_callback)
        finally:
            if cache is not None:
                cache.close()
        stats = stats.merge(group_stats)

        # Step 3: Resolve
        logger.debug(f"Stage: {RunStage.RESOLVING.value}")
        bitrates = None
        if params.keep_strategy == KeepStrategy.BEST_QUALITY and report.groups:
            bitrates = self._probe_bitrates(report.groups, params, progress_callback)
        report.resolutions = self._resolver.resolve_all(report.groups, params.keep_strategy, bitrates)

        # Step 4: Execute
        logger.debug(f"Stage: {RunStage.EXECUTING.value}")
        total = len(report.resolutions)
        for idx, resolution in enumerate(report.resolutions, 1):
            result = self._executor.apply(resolution, params.mode, trash_dir=params.trash_dir)
            report.results.append(result)
            stats = stats.merge(result.stats)
            if progress_callback:
                progress_callback(RunStage.EXECUTING.value, idx, total)

        report.stats = stats
        report.total_time = time.time() - start_time
        return report

    def _probe_bitrates(
            self,
            groups: List[DuplicateGroup],
            params: DeduplicationParams,
            progress_callback: Optional[Callable[[str, int, Optional[int]], None]] = None
    ) -> Dict[str, Optional[int]]:
        """Bitrate for every member of every duplicate group (never for singletons)."""
        probe = self._probe or FFprobeBitrateProbe(params.ffprobe_path)
        paths = [member.path for group in groups for member in group.members]

        if params.workers > 1 and len(paths) > 1:
            with ThreadPoolExecutor(max_workers=min(params.workers, len(paths))) as pool:
                values = list(pool.map(probe.probe_bitrate, paths))
        else:
            values = [probe.probe_bitrate(path) for path in paths]

        if progress_callback:
            progress_callback(RunStage.RESOLVING.value, len(paths), len(paths))
        return dict(zip(paths, values))
