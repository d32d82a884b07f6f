#!/usr/bin/env python3
"""
Main entry point for the web crawler system.
"""

import asyncio
import argparse
import logging
import signal
import sys
from typing import Optional

from webcrawler import __version__
from webcrawler.crawler.scheduler import CrawlerScheduler, CrawlOutcome
from webcrawler.utils.config import Config, OUTPUT_FORMATS, load_config, validate_config
from webcrawler.utils.logger import setup_logging
from webcrawler.utils.report import write_report


class CrawlerApp:
    """Main application class for the web crawler."""

    def __init__(self):
        self.scheduler: Optional[CrawlerScheduler] = None
        self.logger = logging.getLogger(__name__)
        self._shutdown_event = asyncio.Event()

    def setup_signal_handlers(self):
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self._shutdown_event.set)
            except NotImplementedError:
                # Not available on Windows event loops
                pass

    async def run(self, config: Config, verbose: bool = False) -> int:
        """Run one crawl and write its sitemap report."""
        setup_logging(config.logging, verbose=verbose)
        self.setup_signal_handlers()

        self.logger.info("=== WEB CRAWLER STARTING ===")
        self.logger.info(f"Seed URL: {config.crawler.seed_url}")
        self.logger.info(f"Workers: {config.crawler.workers}")
        self.logger.info(f"Retries: {config.crawler.retries} "
                         f"(backoff {config.crawler.backoff}s x{config.crawler.backoff_multiplier})")
        self.logger.info(f"Timeout: {config.crawler.timeout}s")

        try:
            async with CrawlerScheduler(config.crawler) as scheduler:
                self.scheduler = scheduler

                crawl_task = asyncio.create_task(scheduler.start_crawling())
                shutdown_task = asyncio.create_task(self._shutdown_event.wait())

                # Wait for either crawling to complete or shutdown signal
                done, pending = await asyncio.wait(
                    [crawl_task, shutdown_task],
                    return_when=asyncio.FIRST_COMPLETED
                )

                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)

                if shutdown_task in done:
                    self.logger.warning("Shutdown requested, reporting what was crawled so far")
                else:
                    outcome = crawl_task.result()
                    if outcome is CrawlOutcome.TIMED_OUT:
                        self.logger.warning("Crawl stopped by timeout, the sitemap may be incomplete")

                write_report(scheduler.get_sitemap(), config.output.format, config.output.file)

        except Exception as e:
            self.logger.error(f"Fatal error: {e}", exc_info=True)
            return 1

        finally:
            self.logger.info("=== WEB CRAWLER FINISHED ===")

        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Given a starting URL, visit each URL found on the same host and print a sitemap",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py https://example.com               # Crawl with defaults
  python main.py example.com -w 10 -t 60          # 10 workers, 60 second budget
  python main.py https://example.com -f raw       # Print a tree instead of JSON
  python main.py --config config.yaml             # Read settings from a file
        """
    )

    parser.add_argument('seed', nargs='?', help='Address to start crawling from')
    parser.add_argument('--config', help='Path to a YAML configuration file')
    parser.add_argument('-w', '--workers', type=int,
                        help='Number of concurrent workers (default: 3)')
    parser.add_argument('-r', '--retries', type=int,
                        help='Attempts per individual download (default: 1)')
    parser.add_argument('-b', '--backoff', type=float,
                        help='Seconds to wait before retrying a failed request (default: 0.5)')
    parser.add_argument('-m', '--backoff-multiplier', type=float,
                        help='Backoff growth between attempts (default: 2)')
    parser.add_argument('-t', '--timeout', type=float,
                        help='Seconds the crawler may spend exploring the host (default: 10)')
    parser.add_argument('-f', '--format', choices=OUTPUT_FORMATS,
                        help='Output format (default: json)')
    parser.add_argument('-o', '--output',
                        help='File to write the report to, stdout if omitted')
    parser.add_argument('-v', '--verbose', action='store_true', help='Print logs')
    parser.add_argument('--version', action='version',
                        version=f'Web Crawler System {__version__}')
    return parser


def main(argv=None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
        config.override(
            'crawler',
            seed_url=args.seed,
            workers=args.workers,
            retries=args.retries,
            backoff=args.backoff,
            backoff_multiplier=args.backoff_multiplier,
            timeout=args.timeout
        )
        config.override('output', format=args.format, file=args.output)
        validate_config(config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not config.crawler.seed_url:
        print("Error: expected a domain to explore", file=sys.stderr)
        return 1

    app = CrawlerApp()
    try:
        return asyncio.run(app.run(config, verbose=args.verbose))
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
