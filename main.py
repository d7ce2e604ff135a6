#!/usr/bin/env python3
"""
Main entry point for the crawler.
"""

import asyncio
import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

from crawlfrontier import __version__
from crawlfrontier.crawler.request import CrawlRequestError
from crawlfrontier.crawler.scheduler import CrawlerScheduler
from crawlfrontier.crawler.url_frontier import CrawlFrontier
from crawlfrontier.utils.config import load_config, Config
from crawlfrontier.utils.logger import setup_logging
from crawlfrontier.utils.monitoring import initialize_monitoring


class CrawlerApp:
    """Main application class for the crawler."""

    def __init__(self):
        self.scheduler: Optional[CrawlerScheduler] = None
        self.logger = logging.getLogger(__name__)
        self._shutdown_event: Optional[asyncio.Event] = None

    def setup_signal_handlers(self):
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        def signal_handler(signum):
            self.logger.info(f"Received signal {signum}, initiating shutdown...")
            self._shutdown_event.set()

        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, signal_handler, signum)
            except NotImplementedError:
                # add_signal_handler is unavailable on Windows event loops
                signal.signal(signum, lambda s, f: loop.call_soon_threadsafe(signal_handler, s))

    async def run(self, config_path: str, max_pages: Optional[int] = None,
                  max_duration: Optional[int] = None, dry_run: bool = False) -> int:
        """Run the crawler."""
        config = load_config(config_path)
        setup_logging(config.logging)

        self._shutdown_event = asyncio.Event()
        self.setup_signal_handlers()

        self.logger.info("=== CRAWLER STARTING ===")
        self.logger.info(f"Configuration loaded from: {config_path}")
        self.logger.info(f"Seed URLs: {config.crawler.seed_urls}")
        self.logger.info(f"Crawl strategy: {config.crawler.crawl_strategy}")
        self.logger.info(f"Max crawl depth: {config.crawler.max_crawl_depth or 'unlimited'}")
        self.logger.info(f"Filter offsite requests: {config.crawler.filter_offsite_requests}")
        self.logger.info(f"Filter duplicate requests: {config.crawler.filter_duplicate_requests}")

        if not config.crawler.seed_urls:
            self.logger.error("At least one seed URL must be provided")
            return 1

        if dry_run:
            self.logger.info("DRY RUN MODE: No actual crawling will be performed")
            self._dry_run(config)
            return 0

        monitor = initialize_monitoring(
            config.monitoring.metrics_enabled,
            config.monitoring.prometheus_port
        )

        try:
            self.scheduler = CrawlerScheduler(config, monitor=monitor)
            await self.scheduler.initialize()
            await self._crawl_until_shutdown(max_pages, max_duration)

        except CrawlRequestError as e:
            self.logger.error(f"Invalid seed configuration: {e}")
            return 1

        finally:
            if self.scheduler:
                await self.scheduler.close()
            self.logger.info(f"Monitoring summary: {monitor.get_summary()}")
            self.logger.info("=== CRAWLER FINISHED ===")

        return 0

    async def _crawl_until_shutdown(self, max_pages: Optional[int], max_duration: Optional[int]):
        """Run the crawl, stopping it early if a shutdown signal arrives."""
        crawl_task = asyncio.create_task(self.scheduler.start_crawling(max_pages, max_duration))
        shutdown_task = asyncio.create_task(self._shutdown_event.wait())

        done, _ = await asyncio.wait([crawl_task, shutdown_task], return_when=asyncio.FIRST_COMPLETED)

        if crawl_task in done:
            shutdown_task.cancel()
            # Re-raises anything the crawl itself failed with
            crawl_task.result()
            return

        self.logger.info("Shutdown requested, stopping crawler...")
        await self.scheduler.stop_crawling()
        crawl_task.cancel()
        await asyncio.gather(crawl_task, return_exceptions=True)

    def _dry_run(self, config: Config):
        """Build the frontier from the configuration without fetching anything."""
        frontier = CrawlFrontier(config.crawler)
        stats = frontier.get_stats()
        self.logger.info(f"Seed requests queued: {stats['total_queued']}")
        self.logger.info(f"Seed domains: {stats['seed_domains']}")
        self.logger.info("Dry run completed")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='crawl-frontier',
        description="Breadth-first web crawler driven by a crawl frontier",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --config crawl.yaml        # Crawl the seeds in crawl.yaml
  python main.py --max-pages 500            # Stop after 500 fetched pages
  python main.py --max-duration 600         # Stop after ten minutes
  python main.py --dry-run                  # Check config and seeds only
        """
    )
    parser.add_argument('--config', default='config.yaml',
                        help='YAML configuration file (default: config.yaml)')
    parser.add_argument('--max-pages', type=int,
                        help='Stop after fetching this many pages')
    parser.add_argument('--max-duration', type=int,
                        help='Stop after this many seconds')
    parser.add_argument('--dry-run', action='store_true',
                        help='Validate the configuration and seed the frontier without crawling')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    if not Path(args.config).exists():
        print(f"Error: configuration file '{args.config}' not found (use --config to point at one)")
        return 1

    app = CrawlerApp()
    try:
        return asyncio.run(app.run(
            config_path=args.config,
            max_pages=args.max_pages,
            max_duration=args.max_duration,
            dry_run=args.dry_run
        ))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 1
    except (ValueError, FileNotFoundError, CrawlRequestError) as e:
        print(f"Configuration error: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
