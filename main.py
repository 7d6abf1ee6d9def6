#!/usr/bin/env python3
"""
Main entry point for the web crawler system.
"""

import asyncio
import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

from webcrawl.crawler.scheduler import CrawlerScheduler, NoSeedURLsError
from webcrawl.storage.duplicate_detector import CrawlRecord
from webcrawl.utils.config import Config, load_config
from webcrawl.utils.logger import log_system_info, setup_logging
from webcrawl.utils.monitoring import initialize_monitoring

RESULT_PREVIEW_COUNT = 5


class CrawlerApp:
    """Main application class for the web crawler."""

    def __init__(self):
        self.scheduler: Optional[CrawlerScheduler] = None
        self._stop_task: Optional[asyncio.Task] = None
        self.logger = logging.getLogger(__name__)

    def request_stop(self, signum):
        """Stop dispatching; in-flight fetches complete."""
        self.logger.info(f"Received signal {signum}, initiating shutdown...")
        if self.scheduler:
            self._stop_task = asyncio.get_running_loop().create_task(self.scheduler.stop_crawling())

    def setup_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self.request_stop, signum)
            except NotImplementedError:
                # Windows event loops do not support signal handlers
                pass

    async def run(self, config: Config, seed_urls: List[str]) -> int:
        """Run the web crawler and print a summary."""
        self.setup_signal_handlers()

        self.logger.info("=== WEB CRAWLER STARTING ===")
        self.logger.info(f"Seed URLs: {seed_urls}")
        self.logger.info(f"Max pages: {config.crawler.max_pages}")
        self.logger.info(f"Max depth: {config.crawler.max_depth}")
        self.logger.info(f"Politeness delay: {config.crawler.politeness_delay}s")

        monitor = None
        if config.monitoring.metrics_enabled:
            monitor = initialize_monitoring(config.monitoring.prometheus_port, start_server=True)

        try:
            async with CrawlerScheduler(config.crawler, monitor=monitor) as scheduler:
                self.scheduler = scheduler
                results = await scheduler.crawl(seed_urls)
                self.print_summary(results, scheduler.get_stats())
        except NoSeedURLsError as e:
            self.logger.error(str(e))
            return 1
        finally:
            self.logger.info("=== WEB CRAWLER FINISHED ===")

        return 0

    @staticmethod
    def print_summary(results: List[CrawlRecord], stats: dict):
        print(f"\nCrawl completed. Total pages crawled: {len(results)}")

        for result in results[:RESULT_PREVIEW_COUNT]:
            print(f"\nURL: {result.url}")
            print(f"Status: {result.status_code}")
            print(f"Content Type: {result.content_type}")
            print(f"Links found: {len(result.links)}")
            print(f"Content hash: {result.fingerprint[:16]}...")

        print(f"\nFinal Stats: crawled_pages={stats['crawled_pages']} "
              f"visited_urls={stats['visited_urls']} queue_empty={stats['queue_empty']}")


def prompt_seed_url() -> Optional[str]:
    """Ask for a single seed URL on the console."""
    try:
        answer = input("Enter the URL to crawl: ").strip()
    except EOFError:
        return None
    return answer or None


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Web Crawler System")
    parser.add_argument(
        '--config',
        default='config.yaml',
        help='Path to configuration file (default: config.yaml; built-in defaults if absent)'
    )
    args = parser.parse_args()

    try:
        config = load_config(args.config) if Path(args.config).exists() else Config()
    except ValueError as e:
        print(f"Error: invalid configuration '{args.config}': {e}")
        return 1

    setup_logging(config.logging)
    log_system_info()

    seed_urls = list(config.crawler.seed_urls)
    if not seed_urls:
        seed_url = prompt_seed_url()
        if not seed_url:
            print("No URL provided. Exiting.")
            return 1
        seed_urls = [seed_url]

    app = CrawlerApp()
    try:
        return asyncio.run(app.run(config, seed_urls))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 1


if __name__ == '__main__':
    sys.exit(main())
