"""
ArtPulse Orchestrator CLI
=========================

Command-line interface for the ArtPulse pipeline.

Commands:
    run         - Execute the pipeline for one owner
    status      - Show a run's status (or an owner's last run)
    feed        - List an owner's published opportunities for a date
    wvs         - Compute a single Watch Velocity Score
    run-all     - Execute the pipeline for every active owner

Usage:
    python -m artpulse.orchestrator.cli run --owner owner-1 --term "abstract painting"
    python -m artpulse.orchestrator.cli status --run-id <uuid>
    python -m artpulse.orchestrator.cli feed --owner owner-1 --json
    python -m artpulse.orchestrator.cli wvs --watchers 10 --bids 2 --days 5 --price 150
    python -m artpulse.orchestrator.cli run-all
"""

import argparse
import json
import logging
import sys
from datetime import date

from ..data.config import get_settings
from ..data.data_models import RunStatus, utc_now
from ..data.store import create_store
from ..exceptions import RunInProgressError
from ..scoring.wvs_scorer import WVSInput, WVSScorer
from .logging_config import setup_logging, setup_logging_from_config
from .pulse_pipeline import PulsePipeline, StageStatus


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD")


def _print_result(result) -> None:
    run = result.run
    print()
    print("=" * 60)
    print("PIPELINE COMPLETE")
    print("=" * 60)
    print(f"Run ID: {run.id}")
    print(f"Status: {run.status.value}")
    if run.duration_seconds is not None:
        print(f"Duration: {run.duration_seconds:.1f} seconds")
    if result.message:
        print(f"Message: {result.message}")
    print()

    print("Counters:")
    for name, value in run.counters().items():
        print(f"  {name:26} {value}")
    print()

    print("Stage Results:")
    for stage, stage_result in result.stages.items():
        status_icon = "✓" if stage_result.status == StageStatus.COMPLETED else "✗"
        duration = (
            f"{stage_result.duration_seconds:.1f}s"
            if stage_result.duration_seconds is not None else "N/A"
        )
        print(f"  {status_icon} {stage.value}: {stage_result.status.value} ({duration})")


def cmd_run(args):
    """Execute the pipeline for one owner."""
    print("=" * 60)
    print("ARTPULSE PULSE PIPELINE")
    print("=" * 60)
    print(f"Owner: {args.owner}")
    print(f"Search term: {args.term or '(all)'}")
    print(f"Started at: {utc_now().isoformat()}")

    try:
        with PulsePipeline() as pipeline:
            result = pipeline.run(args.owner, search_term=args.term, run_date=args.date)
    except RunInProgressError as e:
        print(f"\nERROR: {e}")
        return 1
    except Exception as e:
        print(f"\nERROR: Pipeline execution failed: {e}")
        logging.exception("Pipeline failed")
        return 1

    _print_result(result)
    return 1 if result.status == RunStatus.FAILED else 0


def cmd_run_all(args):
    """Execute the pipeline for every active owner."""
    print("=" * 60)
    print("ARTPULSE PULSE PIPELINE (ALL OWNERS)")
    print("=" * 60)

    try:
        with PulsePipeline() as pipeline:
            results = pipeline.run_all_owners(run_date=args.date)
    except Exception as e:
        print(f"\nERROR: Pipeline execution failed: {e}")
        logging.exception("Pipeline failed")
        return 1

    if not results:
        print("No active owners.")
        return 0

    for result in results:
        print(
            f"  {result.run.owner_id}: {result.status.value} "
            f"({result.run.opportunities_published} opportunities)"
        )

    failed = [r for r in results if r.status == RunStatus.FAILED]
    print(f"\nTotal: {len(results)} runs, {len(failed)} failed")
    return 1 if failed else 0


def cmd_status(args):
    """Show a run's status."""
    if not args.run_id and not args.owner:
        print("ERROR: --run-id or --owner is required")
        return 1

    try:
        with create_store() as store:
            run = store.get_run(args.run_id) if args.run_id else store.get_last_run(args.owner)
    except Exception as e:
        print(f"ERROR: Failed to get status: {e}")
        return 1

    if run is None:
        print("No matching run found.")
        return 1

    status = run.to_dict()
    if args.json:
        print(json.dumps(status, indent=2, default=str))
        return 0

    print("=" * 60)
    print("PIPELINE RUN")
    print("=" * 60)
    print(f"Run ID: {status['run_id']}")
    print(f"Owner: {status['owner_id']}")
    print(f"Status: {status['status']}")
    print(f"Started: {status['started_at']}")
    print(f"Ended: {status['ended_at'] or 'N/A'}")
    if status["error_summary"]:
        print(f"Message: {status['error_summary']}")
    print()
    for name in run.COUNTER_FIELDS:
        print(f"  {name:26} {status[name]}")
    return 0


def cmd_feed(args):
    """List an owner's published opportunities."""
    target_date = args.date or utc_now().date()

    try:
        with create_store() as store:
            opportunities = store.get_opportunities(args.owner, target_date)
    except Exception as e:
        print(f"ERROR: Failed to list opportunities: {e}")
        return 1

    if args.json:
        print(json.dumps([o.to_dict() for o in opportunities], indent=2, default=str))
        return 0

    if not opportunities:
        print(f"No opportunities for {args.owner} on {target_date.isoformat()}")
        return 0

    print("=" * 60)
    print(f"OPPORTUNITIES FOR {args.owner} ({target_date.isoformat()})")
    print("=" * 60)
    print()

    for opp in opportunities:
        band = opp.price_band
        print(f"{opp.rank}. {opp.topic_label}")
        print(f"   WVS: {opp.wvs_score:.2f} (confidence {opp.confidence:.2f})")
        print(f"   Price band: ${band.min:g} - ${band.median:g} - ${band.max:g}")
        print(f"   Format: {opp.format_recommendation}")
        if opp.recommended_sizes:
            print(f"   Sizes: {', '.join(opp.recommended_sizes)}")
        if opp.keyword_stack:
            print(f"   Keywords: {', '.join(opp.keyword_stack)}")
        print(f"   Evidence: {len(opp.evidence_urls)} listings")
        print()

    print(f"Total: {len(opportunities)} opportunities")
    return 0


def cmd_wvs(args):
    """Compute one Watch Velocity Score."""
    score = WVSScorer().calculate(WVSInput(
        watcher_count=args.watchers,
        bid_count=args.bids,
        days_active=args.days,
        item_price=args.price,
        category_median_price=args.median,
        similar_listings_count=args.similar,
    ))

    if args.json:
        print(json.dumps(score.to_dict(), indent=2))
        return 0

    print("=" * 60)
    print("WATCH VELOCITY SCORE")
    print("=" * 60)
    print(f"WVS: {score.wvs} ({score.label})")
    print(f"Confidence: {score.confidence}")
    print()
    print("Components:")
    for name, value in score.components.to_dict().items():
        print(f"  {name:26} {value}")
    return 0


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="artpulse",
        description="ArtPulse Pipeline Orchestrator CLI",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # run command
    run_parser = subparsers.add_parser("run", help="Execute the pipeline for one owner")
    run_parser.add_argument("--owner", required=True, help="Owner id")
    run_parser.add_argument("--term", help="Only process raw listings with this search term")
    run_parser.add_argument("--date", type=_parse_date, help="Score date, YYYY-MM-DD (default: today)")

    # run-all command
    run_all_parser = subparsers.add_parser("run-all", help="Execute the pipeline for every active owner")
    run_all_parser.add_argument("--date", type=_parse_date, help="Score date, YYYY-MM-DD (default: today)")

    # status command
    status_parser = subparsers.add_parser("status", help="Show run status")
    status_parser.add_argument("--run-id", help="Run id")
    status_parser.add_argument("--owner", help="Show this owner's last run")
    status_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # feed command
    feed_parser = subparsers.add_parser("feed", help="List published opportunities")
    feed_parser.add_argument("--owner", required=True, help="Owner id")
    feed_parser.add_argument("--date", type=_parse_date, help="Opportunity date (default: today)")
    feed_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # wvs command
    wvs_parser = subparsers.add_parser("wvs", help="Compute a single Watch Velocity Score")
    wvs_parser.add_argument("--watchers", type=int, required=True, help="Watcher count")
    wvs_parser.add_argument("--bids", type=int, required=True, help="Bid count")
    wvs_parser.add_argument("--days", type=int, required=True, help="Days active")
    wvs_parser.add_argument("--price", type=float, required=True, help="Item price")
    wvs_parser.add_argument("--median", type=float, help="Category median price (default: 150)")
    wvs_parser.add_argument("--similar", type=int, default=0, help="Similar active listings")
    wvs_parser.add_argument("--json", action="store_true", help="Output as JSON")

    args = parser.parse_args()

    if args.verbose:
        setup_logging(level="DEBUG")
    else:
        setup_logging_from_config(get_settings().logging)

    if args.command is None:
        parser.print_help()
        return 1

    commands = {
        "run": cmd_run,
        "run-all": cmd_run_all,
        "status": cmd_status,
        "feed": cmd_feed,
        "wvs": cmd_wvs,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)
    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
