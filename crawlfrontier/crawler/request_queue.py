"""
Ordering queue that serves admitted crawl requests by depth.
"""

import heapq
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .request import CrawlRequest


class CrawlStrategy(Enum):
    """Traversal order of the frontier."""
    BREADTH_FIRST = 'breadth_first'
    DEPTH_FIRST = 'depth_first'


@dataclass(order=True)
class _QueueEntry:
    depth_key: int
    sequence: int
    request: CrawlRequest = field(compare=False)


class RequestQueue:
    """
    Binary heap keyed by (depth, admission sequence).

    Breadth-first serves shallow requests first, depth-first serves the
    deepest first. Within one depth the request admitted first is served
    first.
    """

    def __init__(self, strategy: CrawlStrategy = CrawlStrategy.BREADTH_FIRST):
        self.strategy = strategy
        self._heap: List[_QueueEntry] = []
        self._sequence = 0

    def push(self, request: CrawlRequest):
        """Add a request, stamping it with the next admission sequence number."""
        if self.strategy is CrawlStrategy.DEPTH_FIRST:
            depth_key = -request.crawl_depth
        else:
            depth_key = request.crawl_depth

        heapq.heappush(self._heap, _QueueEntry(depth_key, self._sequence, request))
        self._sequence += 1

    def pop(self) -> Optional[CrawlRequest]:
        """Remove and return the next request, or None if the queue is empty."""
        if not self._heap:
            return None
        return heapq.heappop(self._heap).request

    def is_empty(self) -> bool:
        return not self._heap

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)
