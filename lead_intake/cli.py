"""Command line interface for harvesting and summarizing leads."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .badges import RuleConfig
from .config import ConfigurationError, HarvestSettings, load_badge_config
from .events import Event, EventBus
from .io import load_captures, write_captures
from .orchestrator import IntakeOrchestrator
from .reporting import export_report

LOGGER = logging.getLogger(__name__)


def build_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog,
        description="Harvest insurance leads, classify them, and write a spreadsheet report",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (e.g. DEBUG, INFO, WARNING)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    summarize = subparsers.add_parser("summarize", help="Summarize a saved capture file")
    summarize.add_argument("captures", help="Path to the capture file (JSON or YAML)")
    summarize.add_argument("output", help="Path where the report should be written (XLSX or CSV)")
    _add_common_options(summarize)
    summarize.add_argument(
        "--mode",
        choices=["sequential", "concurrent"],
        default="sequential",
        help="Whether to summarize leads sequentially or concurrently",
    )
    summarize.add_argument(
        "--max-workers",
        type=int,
        default=None,
        help="Maximum number of workers to use in concurrent mode",
    )

    scrape = subparsers.add_parser("scrape", help="Harvest leads from the CRM and write a report")
    scrape.add_argument("output", help="Path where the report should be written (XLSX or CSV)")
    _add_common_options(scrape)
    scrape.add_argument("--captures", default=None, help="Also save the raw captures to this JSON file")
    scrape.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum number of leads to harvest (defaults to MAX_LEADS or 200)",
    )
    scrape.add_argument("--headful", action="store_true", help="Show the browser window")
    return parser


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--badge-config",
        default=None,
        help="Optional badge rule table (YAML or JSON); default thresholds apply otherwise",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def _log_event(event: Event) -> None:
    if event.type == "lead":
        LOGGER.info("[%s] lead %s: %s", event.job_id, event.payload.get("index"), event.payload.get("name"))


def _load_badge_config(path: Optional[str]) -> Optional[RuleConfig]:
    return load_badge_config(path) if path else None


def _run_summarize(args: argparse.Namespace, bus: EventBus) -> int:
    captures = load_captures(args.captures)
    orchestrator = IntakeOrchestrator(
        badge_config=_load_badge_config(args.badge_config),
        concurrent=args.mode == "concurrent",
        max_workers=args.max_workers,
        bus=bus,
    )
    summaries = orchestrator.summarize(captures, job_id="summarize")
    export_report(args.output, summaries)
    LOGGER.info("Processed %s leads", len(summaries))
    LOGGER.info("Report written to %s", Path(args.output).resolve())
    return 0


def _run_scrape(args: argparse.Namespace, bus: EventBus) -> int:
    from .harvest import BrowserHarvesterConfig, PlanetHarvester

    badge_config = _load_badge_config(args.badge_config)
    settings = HarvestSettings.from_env(max_leads=args.limit)
    harvester = PlanetHarvester(
        settings,
        BrowserHarvesterConfig(headless=not args.headful),
        bus=bus,
        job_id="scrape",
    )
    captures = harvester.harvest()
    if args.captures:
        write_captures(args.captures, captures)
        LOGGER.info("Captures written to %s", Path(args.captures).resolve())

    summaries = IntakeOrchestrator(badge_config=badge_config, bus=bus).summarize(captures, job_id="scrape")
    export_report(args.output, summaries)
    total = sum(summary.monthly_premium_total for summary in summaries)
    LOGGER.info("Processed %s leads, %s monthly premium in total", len(summaries), total)
    LOGGER.info("Report written to %s", Path(args.output).resolve())
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    bus = EventBus()
    bus.subscribe_all(_log_event)
    try:
        if args.command == "scrape":
            return _run_scrape(args, bus)
        return _run_summarize(args, bus)
    except ConfigurationError as exc:
        LOGGER.error("Configuration error: %s", exc)
        return 1
    except RuntimeError as exc:
        LOGGER.error("Run failed: %s", exc)
        return 1


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
