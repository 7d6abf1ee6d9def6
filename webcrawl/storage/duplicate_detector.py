"""
Visited-URL tracking and content fingerprint deduplication.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple


class DuplicateContentError(Exception):
    """Raised when storing a record whose fingerprint belongs to another URL."""
    pass


def content_fingerprint(content: str) -> str:
    """SHA-256 hex digest of the fetched body."""
    return hashlib.sha256(content.encode('utf-8')).hexdigest()


@dataclass(frozen=True)
class CrawlRecord:
    """A successfully fetched, non-duplicate page."""
    url: str
    content: str
    links: Tuple[str, ...]
    status_code: int
    content_type: str
    fingerprint: str


class DedupStore:
    """
    Guarantees at-most-once processing of a URL and at-most-once storage
    of a content body.

    Visited URLs and fingerprints only ever grow during a crawl. The result
    collection is keyed by URL and holds at most one record per fingerprint.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

        self.visited_urls: Set[str] = set()
        self.fingerprints: Set[str] = set()
        self._results: Dict[str, CrawlRecord] = {}
        self._fingerprint_owner: Dict[str, str] = {}

        self.stats = {
            'fingerprint_checks': 0,
            'content_duplicates': 0,
        }

    def is_visited(self, url: str) -> bool:
        return url in self.visited_urls

    def mark_visited(self, url: str):
        """Mark a URL as visited. Marking twice is a no-op."""
        if url not in self.visited_urls:
            self.visited_urls.add(url)
            self.logger.debug(f"Marked URL as visited: {url}")

    def is_fingerprint_seen(self, fingerprint: str) -> bool:
        self.stats['fingerprint_checks'] += 1
        seen = fingerprint in self.fingerprints
        if seen:
            self.stats['content_duplicates'] += 1
        return seen

    def record_fingerprint(self, fingerprint: str):
        self.fingerprints.add(fingerprint)

    def store(self, record: CrawlRecord):
        """Add a record to the result collection and record its fingerprint."""
        owner = self._fingerprint_owner.get(record.fingerprint)
        if owner is not None and owner != record.url:
            raise DuplicateContentError(
                f"Fingerprint {record.fingerprint[:16]} already stored for {owner}"
            )

        previous = self._results.get(record.url)
        if previous is not None and previous.fingerprint != record.fingerprint:
            del self._fingerprint_owner[previous.fingerprint]

        self._results[record.url] = record
        self._fingerprint_owner[record.fingerprint] = record.url
        self.record_fingerprint(record.fingerprint)
        self.logger.debug(f"Stored record for {record.url}")

    def get(self, url: str) -> Optional[CrawlRecord]:
        return self._results.get(url)

    def get_all_results(self) -> List[CrawlRecord]:
        """Stored records in storage order."""
        return list(self._results.values())

    @property
    def visited_count(self) -> int:
        return len(self.visited_urls)

    def __len__(self) -> int:
        return len(self._results)

    def get_stats(self) -> Dict[str, int]:
        """Get deduplication statistics."""
        return {
            **self.stats,
            'visited_urls': len(self.visited_urls),
            'fingerprints': len(self.fingerprints),
            'stored_records': len(self._results),
        }
