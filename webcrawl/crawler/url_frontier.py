"""
URL Frontier implementation for managing URLs to crawl.
Implements priority tiers in front of per-host politeness queues.
"""

import heapq
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable, Deque, Dict, List, Optional, Tuple
from urllib.parse import urlparse


class URLPriority(IntEnum):
    """URL priority levels (tier indexes)."""
    LOWEST = 0
    LOW = 1
    NORMAL = 2
    HIGH = 3
    CRITICAL = 4


MIN_PRIORITY = int(URLPriority.LOWEST)
MAX_PRIORITY = int(URLPriority.CRITICAL)


def host_of(url: str) -> str:
    """Extract the lowercased host name from a URL."""
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


@dataclass(frozen=True)
class PendingURL:
    """A URL waiting in the frontier."""
    url: str
    priority: int
    depth: int
    host: str
    parent_url: Optional[str] = None
    enqueued_at: float = field(default_factory=time.monotonic)

    @classmethod
    def for_url(cls, url: str, priority: int, depth: int,
                parent_url: Optional[str] = None,
                enqueued_at: Optional[float] = None) -> 'PendingURL':
        """Build a PendingURL, deriving the host from the URL."""
        return cls(
            url=url,
            priority=priority,
            depth=depth,
            host=host_of(url),
            parent_url=parent_url,
            enqueued_at=time.monotonic() if enqueued_at is None else enqueued_at,
        )


@dataclass
class HostState:
    """Holding queue and politeness timer for one host."""
    host: str
    queue: Deque[PendingURL] = field(default_factory=deque)
    last_dispatch_time: Optional[float] = None

    def next_eligible_time(self, politeness_delay: float) -> float:
        if self.last_dispatch_time is None:
            return float('-inf')
        return self.last_dispatch_time + politeness_delay


class URLFrontier:
    """
    Two-stage scheduler.

    Front stage: five priority tiers, FIFO within a tier.
    Back stage: one FIFO holding queue per host, gated by the politeness delay.

    Each dispatch_next() call promotes at most one URL from the highest
    non-empty tier into its host queue, then hands out the front of the
    soonest-eligible host queue. The URL returned is not necessarily the
    one just promoted.

    Ready hosts are kept in a min-heap keyed on (next eligible time,
    promotion sequence). A host has exactly one heap entry while its
    holding queue is non-empty and none otherwise.
    """

    def __init__(self, politeness_delay: float = 1.0,
                 clock: Callable[[], float] = time.monotonic):
        self.politeness_delay = politeness_delay
        self.clock = clock
        self.logger = logging.getLogger(__name__)

        self.tiers: List[Deque[PendingURL]] = [
            deque() for _ in range(MIN_PRIORITY, MAX_PRIORITY + 1)
        ]
        self.hosts: Dict[str, HostState] = {}
        self._ready_heap: List[Tuple[float, int, str]] = []
        self._sequence = 0

    @staticmethod
    def _tier_index(priority: int) -> int:
        return min(MAX_PRIORITY, max(MIN_PRIORITY, int(priority)))

    def enqueue(self, pending: PendingURL):
        """Add a URL to the tier matching its priority (clamped to 0..4)."""
        self.tiers[self._tier_index(pending.priority)].append(pending)
        self.logger.debug(f"Enqueued URL: {pending.url} (priority {pending.priority}, depth {pending.depth})")

    def enqueue_many(self, pending_urls: List[PendingURL]) -> int:
        for pending in pending_urls:
            self.enqueue(pending)
        return len(pending_urls)

    def promote(self) -> Optional[PendingURL]:
        """
        Move the front URL of the highest non-empty tier onto its host's
        holding queue. Returns the promoted URL, or None if all tiers are empty.
        """
        for tier in reversed(self.tiers):
            if not tier:
                continue
            pending = tier.popleft()
            state = self.hosts.get(pending.host)
            if state is None:
                state = HostState(pending.host)
                self.hosts[pending.host] = state
            if not state.queue:
                self._push_host(state)
            state.queue.append(pending)
            return pending
        return None

    def select_ready(self) -> Optional[PendingURL]:
        """
        Dispatch the front URL of the soonest-eligible host whose politeness
        delay has elapsed. Returns None if no host is eligible.
        """
        if not self._ready_heap:
            return None

        now = self.clock()
        eligible_at, _, host = self._ready_heap[0]
        if now < eligible_at:
            return None

        heapq.heappop(self._ready_heap)
        state = self.hosts[host]
        pending = state.queue.popleft()
        state.last_dispatch_time = now
        if state.queue:
            self._push_host(state)

        self.logger.debug(f"Dispatched URL: {pending.url}")
        return pending

    def dispatch_next(self) -> Optional[PendingURL]:
        """Promote one URL, then return the next politeness-eligible URL if any."""
        self.promote()
        return self.select_ready()

    def _push_host(self, state: HostState):
        self._sequence += 1
        heapq.heappush(
            self._ready_heap,
            (state.next_eligible_time(self.politeness_delay), self._sequence, state.host)
        )

    def time_until_eligible(self) -> Optional[float]:
        """Seconds until the soonest held host may be dispatched, None if nothing is held."""
        if not self._ready_heap:
            return None
        return max(0.0, self._ready_heap[0][0] - self.clock())

    def is_empty(self) -> bool:
        """Check if both the tiers and all host queues are empty."""
        return (all(not tier for tier in self.tiers) and
                all(not state.queue for state in self.hosts.values()))

    def __len__(self) -> int:
        return (sum(len(tier) for tier in self.tiers) +
                sum(len(state.queue) for state in self.hosts.values()))

    def get_stats(self) -> Dict[str, int]:
        """Get frontier statistics."""
        stats = {
            f'tier_{priority}': len(tier) for priority, tier in enumerate(self.tiers)
        }
        stats.update({
            'total_queued': len(self),
            'total_held': sum(len(state.queue) for state in self.hosts.values()),
            'hosts_with_urls': len([s for s in self.hosts.values() if s.queue]),
            'total_hosts': len(self.hosts),
        })
        return stats
