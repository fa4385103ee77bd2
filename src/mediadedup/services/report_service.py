"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/report_service.py
Export of the final run statistics as JSON (--stats FILE).
"""
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from mediadedup.core.models import DeduplicationParams, RunReport


class ReportService:

    @staticmethod
    def build_stats_payload(report: RunReport, params: DeduplicationParams,
                            timestamp: Optional[datetime] = None) -> Dict[str, Any]:
        stats = report.stats
        return {
            "timestamp": (timestamp or datetime.now()).isoformat(timespec="seconds"),
            "directory": params.root_dir,
            "total_files": stats.files_scanned,
            "duplicates_found": report.duplicates_found,
            "space_saved_bytes": report.space_saved_bytes,
            "dry_run": params.dry_run,
            "keep_strategy": params.keep_strategy.value,
            "mode": params.mode.value,
            "files_hashed": stats.files_hashed,
            "cache_hits": stats.cache_hits,
            "hash_failures": stats.hash_failures,
            "duplicate_groups": stats.duplicate_groups,
            "files_removed": stats.files_removed,
            "bytes_freed": stats.bytes_freed,
            "removal_failures": stats.removal_failures,
            "elapsed_seconds": round(report.total_time, 3),
        }

    @staticmethod
    def write_stats(stats_path: str, report: RunReport, params: DeduplicationParams) -> Dict[str, Any]:
        """Writes the statistics file and returns what was written."""
        payload = ReportService.build_stats_payload(report, params)
        path = Path(stats_path)
        if path.parent and not path.parent.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        return payload
