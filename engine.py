"""
╔══════════════════════════════════════════════════════════════╗
║                                                              ║
║   🗺️  MARKET PULL — Local Business Lead Machine              ║
║                                                              ║
║   Maps listings → website emails → Prospeo fallback →        ║
║   BounceBan verification → CSV export.                       ║
║                                                              ║
║   Usage:                                                     ║
║     python engine.py --category plumber                      ║
║     python engine.py --category hvac --min-reviews 50        ║
║     python engine.py --category roofing --one-per-domain     ║
║     python engine.py --list-regions                          ║
║                                                              ║
╚══════════════════════════════════════════════════════════════╝
"""

import asyncio
import argparse
import logging
import time
from datetime import datetime

from pipeline import JobInput, JobManager, JobStatus
from regions import list_regions
from output.csv_writer import CSVWriter

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(message)s'
)
logger = logging.getLogger(__name__)


class MarketPullRunner:
    """Runs one market pull in-process and prints its progress."""

    def __init__(self, args):
        self.args = args
        self.manager = JobManager()
        self.csv_writer = None if args.dry_run else CSVWriter(args.output_dir)
        self._last_line = ""

    def _on_update(self, status: JobStatus):
        line = f"[{status.stage or status.status}] {status.progress}/{status.progress_total} {status.message}"
        if line != self._last_line:
            self._last_line = line
            print(f"  {line}")

    async def run(self) -> int:
        self._print_banner()
        start = time.time()

        handle = self.manager.subscribe(self._on_update)
        try:
            self.manager.start(JobInput(
                service_category=self.args.category,
                region=self.args.region,
                min_reviews=self.args.min_reviews,
                max_results=self.args.max_results,
                limit_one_per_domain=self.args.one_per_domain,
            ))
            await self.manager.join()
        finally:
            self.manager.unsubscribe(handle)

        status = self.manager.get_status()
        self._print_summary(status, time.time() - start)

        if status.status == "error":
            return 1
        if status.csv_data and self.csv_writer:
            self.csv_writer.write(status.csv_data)
        return 0

    def _print_banner(self):
        print(f"\n{'='*60}")
        print("  🗺️  MARKET PULL")
        print(f"{'='*60}")
        print(f"  ⏰  {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        print(f"  🔧  Category: {self.args.category}")
        print(f"  📍  Region: {self.args.region}")
        print(f"  ⭐  Min reviews: {self.args.min_reviews} | Max results: {self.args.max_results}")
        print()

    def _print_summary(self, status: JobStatus, elapsed: float):
        stats = status.stats
        print(f"\n{'='*60}")
        print("  📊  MARKET PULL SUMMARY")
        print(f"{'='*60}")
        print(f"  ⏱️  Duration: {elapsed:.1f}s")
        print(f"  🏢  Businesses found: {stats.businesses_found}")
        print(f"  🌐  Websites found: {stats.websites_found}")
        print(f"  📧  Emails discovered: {stats.emails_discovered}")
        print(f"  ✅  Emails verified: {stats.emails_verified}")
        if status.error:
            print(f"  ❌  Error: {status.error}")
        else:
            print(f"  💬  {status.message}")
        summary = self.manager.last_run_summary
        if summary:
            print(f"  🔎  Prospeo: {summary.enrich_attempts} attempts, ~{summary.estimated_credits} credits")
        print()


# ──────────────────────────────────────────────────
#  CLI
# ──────────────────────────────────────────────────

def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="🗺️ MARKET PULL — Local Business Lead Machine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--category", type=str, default="",
        help="Service category to search for (e.g. plumber, hvac, roofing)",
    )
    parser.add_argument(
        "--region", type=str, default="michigan",
        help="Region catalog to fan out over (default: michigan)",
    )
    parser.add_argument(
        "--min-reviews", type=int, default=30,
        help="Drop listings with fewer reviews (default: 30)",
    )
    parser.add_argument(
        "--max-results", type=int, default=500,
        help="Stop after this many accepted listings (default: 500)",
    )
    parser.add_argument(
        "--one-per-domain", action="store_true",
        help="Export only the first verified email per business",
    )
    parser.add_argument(
        "--output-dir", type=str, default="data",
        help="Directory for CSV exports (default: data)",
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Run the pipeline but don't write the CSV",
    )
    parser.add_argument(
        "--list-regions", action="store_true",
        help="Print available regions and exit",
    )
    args = parser.parse_args(argv)
    if not args.list_regions and not args.category.strip():
        parser.error("--category is required")
    return args


async def main(argv=None) -> int:
    args = parse_args(argv)
    if args.list_regions:
        for slug in list_regions():
            print(slug)
        return 0
    runner = MarketPullRunner(args)
    return await runner.run()


def cli():
    raise SystemExit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
