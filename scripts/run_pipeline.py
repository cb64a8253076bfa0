#!/usr/bin/env python3
"""Run the batch pipeline passes for one tenant outside the web process.

Usage:
    # Analyse up to 20 leads that have a website but no analysis yet:
    python scripts/run_pipeline.py --tenant <uuid> analyze --limit 20

    # First-touch prospecting pass (classifies inline, sends initial emails):
    python scripts/run_pipeline.py --tenant <uuid> prospect --limit 5

    # Follow-ups for leads contacted at least 3 days ago:
    python scripts/run_pipeline.py --tenant <uuid> follow-ups --min-days 3

Requires:
    DATABASE_URL and JWT_SECRET_KEY environment variables (or in .env);
    SENDGRID_API_KEY / AI_API_KEY to actually send / personalize.
"""

import argparse
import asyncio
import logging
import sys
from uuid import UUID

from prospectflow.core import deps
from prospectflow.core.config import settings
from prospectflow.core.database import async_session, engine
from prospectflow.services.pipeline import run_prospecting, run_follow_ups
from prospectflow.services.site_classifier import classify_batch

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
logger = logging.getLogger("run_pipeline")


def print_results(report: dict):
    results = report.get("results", [])
    for entry in results:
        if isinstance(entry, dict):
            print(f"  {entry.get('id')}: {entry.get('site_classification')}")
        else:
            reason = f" ({entry.reason})" if entry.reason else ""
            print(f"  {entry.id}: {entry.status}{reason}")
    for failure in report.get("failures", []):
        print(f"  {failure['id']}: FAILED {failure['error']}")


async def run(args) -> dict:
    tenant_id = args.tenant
    try:
        async with async_session() as db:
            if args.command == "analyze":
                report = await classify_batch(db, tenant_id, args.limit, deps.get_site_fetcher())
                print(f"Analyzed {report['analyzed']} lead(s)")
            elif args.command == "prospect":
                report = await run_prospecting(
                    db, tenant_id, args.limit,
                    deps.get_site_fetcher(), deps.get_email_sender(), deps.get_ai_client(),
                )
                print(f"Processed {report['processed']} lead(s)")
            else:
                min_days = args.min_days if args.min_days is not None else settings.FOLLOW_UP_AFTER_DAYS
                report = await run_follow_ups(
                    db, tenant_id, args.limit, min_days,
                    deps.get_email_sender(), deps.get_ai_client(),
                )
                print(f"Processed {report['processed']} lead(s)")
    finally:
        await engine.dispose()
    print_results(report)
    return report


def main(argv=None):
    parser = argparse.ArgumentParser(description="Run ProspectFlow batch passes for one tenant")
    parser.add_argument("--tenant", type=UUID, required=True, help="Tenant (user) id")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Analyse sites of leads never analysed")
    analyze.add_argument("--limit", type=int, default=10)

    prospect = sub.add_parser("prospect", help="Send first-touch emails to new leads")
    prospect.add_argument("--limit", type=int, default=5)

    follow_ups = sub.add_parser("follow-ups", help="Send the next follow-up to contacted leads")
    follow_ups.add_argument("--limit", type=int, default=10)
    follow_ups.add_argument("--min-days", type=int, default=None)

    args = parser.parse_args(argv)
    if args.limit < 1:
        parser.error("--limit must be at least 1")

    try:
        asyncio.run(run(args))
    except Exception as e:
        logger.error("Pipeline run failed: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
