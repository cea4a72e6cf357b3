#!/usr/bin/env python3
"""
Run one intelligence scan from the command line and print the drafts.

Run with: python scripts/run_scan.py [--demo] [--publish]
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add parent to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from agents.base import HttpAgentCaller
from agents.demo import DemoAgentCaller
from config import settings
from dashboard_settings import SettingsStore
from db import async_session, create_tables
from orchestrator import Orchestrator


async def run(demo: bool, publish: bool) -> int:
    await create_tables()
    caller = DemoAgentCaller() if demo else HttpAgentCaller(session_factory=async_session)
    orch = Orchestrator(caller=caller, store=SettingsStore(async_session), demo_mode=demo)
    await orch.start()

    print("=" * 70)
    print("Trend Intelligence Scan")
    print("=" * 70)

    result = await orch.run_scan()
    if result is None:
        print(f"✗ Scan failed: {orch.session.scan_error}")
        return 1

    stats = orch.session.stats()
    print(f"✓ Items scanned: {stats['items_scanned']}")
    print(f"✓ High-signal items: {stats['high_signal']}")
    print(f"✓ Thread drafts: {stats['total_drafts']}")
    print(f"✓ Flagged for review: {stats['flagged_for_review']}")
    print()

    for draft in result.drafts:
        mark = "✓" if orch.session.approvals.is_approved(draft.id) else "·"
        review = f"  [review: {draft.review_reason}]" if draft.requires_review else ""
        print(f"{mark} {draft.id} ({draft.relevance_score}) {draft.classification}: {draft.title}{review}")
        print(f"    {len(draft.segments())} posts, {draft.tags}")

    if publish:
        print()
        summary = await orch.publish_all_approved()
        print(f"Published {summary['published']}, failed {summary['failed']}, skipped {summary['skipped']}")
        for record in orch.session.publish_history.values():
            detail = record.external_url or record.error_message
            print(f"  {record.status:8} {record.draft_id} {detail}")

    await orch.stop()
    return 0


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--demo", action="store_true", default=settings.demo_mode,
                        help="Use canned agent replies instead of the live agents")
    parser.add_argument("--publish", action="store_true", help="Publish all approved drafts after the scan")
    args = parser.parse_args()
    sys.exit(asyncio.run(run(args.demo, args.publish)))


if __name__ == "__main__":
    main()
