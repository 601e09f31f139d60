"""
Tests for the command-line runner.
Run with: python -m pytest tests/test_engine.py -v
"""

import asyncio
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from engine import MarketPullRunner, main, parse_args
from pipeline import JobManager, PipelineStages
from http_fakes import FakeSession


class TestParseArgs:
    def test_defaults(self):
        args = parse_args(["--category", "plumber"])
        assert args.category == "plumber"
        assert args.region == "michigan"
        assert args.min_reviews == 30
        assert args.max_results == 500
        assert not args.one_per_domain
        assert not args.dry_run

    def test_category_required(self):
        with pytest.raises(SystemExit):
            parse_args([])

    def test_list_regions_needs_no_category(self, capsys):
        assert asyncio.run(main(["--list-regions"])) == 0
        assert "michigan" in capsys.readouterr().out


class TestRunner:
    def test_error_run_returns_nonzero(self, tmp_path):
        args = parse_args(["--category", "plumber", "--output-dir", str(tmp_path), "--dry-run"])
        runner = MarketPullRunner(args)

        def no_credentials():
            raise RuntimeError("DataForSEO credentials not configured")

        runner.manager = JobManager(stages_factory=no_credentials, session_factory=FakeSession)
        assert asyncio.run(runner.run()) == 1

    def test_empty_run_writes_nothing(self, tmp_path):
        class EmptySource:
            async def pull_listings(self, session, *args, **kwargs):
                return []

        args = parse_args(["--category", "plumber", "--output-dir", str(tmp_path)])
        runner = MarketPullRunner(args)
        stages = PipelineStages(listing_source=EmptySource(), scraper=None)
        runner.manager = JobManager(stages_factory=lambda: stages, session_factory=FakeSession)
        assert asyncio.run(runner.run()) == 0
        assert list((tmp_path / "exports").iterdir()) == []
