"""
Prefect Flow - Monthly brewery ingestion.

The API quota is monthly, so the full run is scheduled once a month. The flow
has no retries: a retried run would spend quota on brewers already fetched.
Resume an interrupted run from the CLI instead (`brewery-ingest run --resume`).

Usage:
    # Run once
    python -m brewery_ingest.orchestration.ingest_flow

    # Leave regions out
    python -m brewery_ingest.orchestration.ingest_flow --skip Alaska Hawaii

    # Serve with a monthly schedule (1st of the month, 3 AM)
    python -m brewery_ingest.orchestration.ingest_flow --serve
"""

import argparse
from typing import List, Optional

from prefect import flow

from brewery_ingest.config import load_api_key, load_config
from brewery_ingest.observability.logging_config import setup_logging
from brewery_ingest.orchestration.pipeline import build_orchestrator


@flow(
    name="brewery-ingest",
    description="Discover breweries per region and ingest their beers",
    log_prints=True,
    retries=0,
)
def ingest_flow(
    regions: Optional[List[str]] = None,
    skip: Optional[List[str]] = None,
    config_path: Optional[str] = None,
) -> dict:
    """
    Full ingestion run.

    Args:
        regions: Only these regions (default: all)
        skip: Leave these regions out
        config_path: Alternative pipeline.yaml

    Returns:
        dict: Run summary (see RunSummary.to_dict)
    """
    config = load_config(config_path)
    api_key = load_api_key()

    setup_logging(region="all", log_dir=config["logging"]["log_dir"])
    orchestrator = build_orchestrator(config, api_key)
    summary = orchestrator.run(only=regions, skip=skip)

    result = summary.to_dict()
    print(f"Run {result['run_id']}: {result['records']} beers, {result['entity_failures']} failures")
    return result


def main(argv=None):
    parser = argparse.ArgumentParser()
    parser.add_argument("--regions", nargs="+", default=None)
    parser.add_argument("--skip", nargs="+", default=None)
    parser.add_argument("--serve", action="store_true", help="Serve with a monthly schedule")
    args = parser.parse_args(argv)

    if args.serve:
        ingest_flow.serve(name="monthly-full", cron="0 3 1 * *", tags=["ingest", "monthly"])
    else:
        ingest_flow(regions=args.regions, skip=args.skip)


if __name__ == "__main__":
    main()
