"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/resolver.py
Pure keeper selection for duplicate groups, no filesystem access.
Every strategy is total over a non-empty member list; ties always go to the
member that comes first in scan order.
"""
from typing import Dict, List, Optional

from mediadedup.core.interfaces import Resolver
from mediadedup.core.models import DuplicateGroup, FileRecord, KeepStrategy, Resolution


class DuplicateResolver(Resolver):
    """
    Picks one keeper per group and classifies the rest as removals.
    Selection rules:
    - FIRST / LAST: scan-order position
    - LARGEST / SMALLEST: file size
    - BEST_QUALITY: bitrate from the `bitrates` mapping, unknown bitrate ranks lowest
    """

    def resolve(
        self,
        group: DuplicateGroup,
        strategy: KeepStrategy = KeepStrategy.FIRST,
        bitrates: Optional[Dict[str, Optional[int]]] = None
    ) -> Resolution:
        keeper = self.select_keeper(group.members, KeepStrategy.parse(strategy), bitrates)
        return Resolution.for_keeper(group, keeper)

    def resolve_all(
        self,
        groups: List[DuplicateGroup],
        strategy: KeepStrategy = KeepStrategy.FIRST,
        bitrates: Optional[Dict[str, Optional[int]]] = None
    ) -> List[Resolution]:
        return [self.resolve(group, strategy, bitrates) for group in groups]

    @staticmethod
    def select_keeper(
        members: List[FileRecord],
        strategy: KeepStrategy,
        bitrates: Optional[Dict[str, Optional[int]]] = None
    ) -> FileRecord:
        if not members:
            raise ValueError("Cannot select a keeper from an empty group")

        if strategy == KeepStrategy.LAST:
            return members[-1]

        # max()/min() return the first of equal elements, which is the FIRST tie-break
        if strategy == KeepStrategy.LARGEST:
            return max(members, key=lambda f: f.size)
        if strategy == KeepStrategy.SMALLEST:
            return min(members, key=lambda f: f.size)
        if strategy == KeepStrategy.BEST_QUALITY:
            known = bitrates or {}
            return max(members, key=lambda f: known.get(f.path) if known.get(f.path) is not None else -1)

        return members[0]
