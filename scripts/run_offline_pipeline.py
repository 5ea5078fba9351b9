#!/usr/bin/env python3
"""
Offline pipeline validation: seeded in-memory store -> full pulse pipeline.
No database and no API keys. Prints the run summary and the published feed.

Usage:
    python scripts/run_offline_pipeline.py
    python scripts/run_offline_pipeline.py --listings 20 --term "ocean seascape"
"""

import argparse
import json
import sys
from datetime import timedelta
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from artpulse.data.config import Settings
from artpulse.data.data_models import utc_now
from artpulse.data.store import InMemoryStore
from artpulse.notifications.notifier import LoggingNotificationSink
from artpulse.orchestrator.logging_config import setup_logging
from artpulse.orchestrator.pulse_pipeline import PulsePipeline

OWNER_ID = "offline-owner"

TITLES = [
    "Original Abstract Acrylic Painting on Canvas {w}x{h} Blue Gold Modern",
    "Large Abstract Oil Painting {w}x{h} inch Contemporary Red Black",
    "Abstract Expressionist Mixed Media Painting {w}x{h} Green",
]


def make_rows(term: str, count: int):
    """Sold listings observed over the last few days, most with strong watch activity."""
    now = utc_now()
    rows = []
    for i in range(count):
        width, height = (24, 36) if i % 2 == 0 else (16, 20)
        rows.append({
            "url": f"https://www.ebay.com/itm/{100000 + i}",
            "title": TITLES[i % len(TITLES)].format(w=width, h=height),
            "price": 140 + (i % 5) * 15,
            "bid_count": 3 if i % 3 == 0 else 0,
            "is_auction": i % 3 == 0,
            "watcher_count": 25 + i,
            "search_term": term,
            "observed_at": (now - timedelta(days=i % 3)).isoformat(),
        })
    return rows


def main():
    parser = argparse.ArgumentParser(description="Run the pulse pipeline against seeded data")
    parser.add_argument("--term", default="abstract painting", help="Search term to seed")
    parser.add_argument("--listings", type=int, default=12, help="Number of raw listings")
    parser.add_argument("--json", action="store_true", help="Print the feed as JSON")
    args = parser.parse_args()

    setup_logging(level="INFO")

    store = InMemoryStore()
    store.add_owner(OWNER_ID, email="artist@example.com", interest_terms=[args.term])
    store.add_raw_rows(OWNER_ID, make_rows(args.term, args.listings))

    settings = Settings(store_backend="memory")
    sink = LoggingNotificationSink()

    print("=" * 60)
    print("  OFFLINE PULSE PIPELINE")
    print("=" * 60)

    with PulsePipeline(store=store, settings=settings, sink=sink) as pipeline:
        result = pipeline.run(OWNER_ID, search_term=args.term)

    print(json.dumps(result.get_summary(), indent=2, default=str))

    feed = store.get_opportunities(OWNER_ID, result.run_date)
    print()
    print(f"Published opportunities: {len(feed)}")
    for opp in feed:
        if args.json:
            print(json.dumps(opp.to_dict(), indent=2))
        else:
            print(f"  {opp.rank}. {opp.topic_label}  WVS={opp.wvs_score:.2f}  "
                  f"band={opp.price_band.to_dict()}  format={opp.format_recommendation}")
    print(f"Pulse alerts sent: {len(sink.sent)}")

    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
