"""
Brewery ingestion CLI.

Usage:
    brewery-ingest run                              # all regions
    brewery-ingest run --region "North Dakota"      # one region
    brewery-ingest run --skip Alabama --skip Alaska # leave regions out
    brewery-ingest run --resume ingest_20260101_030000
    brewery-ingest regions                          # list discovered regions
    brewery-ingest refetch "North Dakota" 1234 5678 # re-run failed brewers
    brewery-ingest restore NorthDakota_Beers.csv    # load a backup into the store
    brewery-ingest stats --days 90
"""

import sys
from datetime import datetime
from pathlib import Path

import click
from loguru import logger

from brewery_ingest.config import load_api_key, load_config
from brewery_ingest.ingest.errors import ConfigError, DiscoveryError
from brewery_ingest.ingest.loaders.csv_writer import read_backup
from brewery_ingest.ingest.scrapers.region_index import RegionIndex
from brewery_ingest.observability.logging_config import setup_logging
from brewery_ingest.observability.metrics import MetricsCollector
from brewery_ingest.orchestration.pipeline import build_orchestrator
from brewery_ingest.storage.document_store import DocumentStore

EXIT_FAILED = 1
EXIT_PARTIAL = 2


def _load(config_path, need_key: bool = True):
    """Load config (and the API key) before any network activity."""
    try:
        config = load_config(config_path)
        api_key = load_api_key() if need_key else None
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(EXIT_FAILED)
    return config, api_key


@click.group()
@click.version_option(package_name="brewery-ingest")
def cli():
    """Brewery ingestion pipeline."""
    pass


@cli.command()
@click.option("--region", "regions", multiple=True, help="Only process this region (repeatable)")
@click.option("--skip", "skip", multiple=True, help="Skip this region (repeatable)")
@click.option("--resume", "resume_run", default=None, help="Resume a run id; 'latest' for the last run")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def run(regions, skip, resume_run, config_path, verbose):
    """Discover regions and ingest every brewer's beers."""
    config, api_key = _load(config_path)

    run_id = f"ingest_{datetime.now().strftime('%Y%m%d_%H%M%S')}"
    resume = False
    if resume_run:
        if resume_run == "latest":
            resume_run = MetricsCollector(config["metrics"]["path"]).latest_run_id()
            if not resume_run:
                click.echo("No previous run to resume", err=True)
                sys.exit(EXIT_FAILED)
        run_id, resume = resume_run, True

    setup_logging(run_id=run_id, region="all", verbose=verbose, log_dir=config["logging"]["log_dir"])
    orchestrator = build_orchestrator(config, api_key)

    try:
        summary = orchestrator.run(only=regions or None, skip=skip, run_id=run_id, resume=resume)
    except DiscoveryError as e:
        click.echo(f"Discovery failed: {e}", err=True)
        sys.exit(EXIT_FAILED)

    result = summary.to_dict()
    click.echo(
        f"Run {result['run_id']}: {result['regions_processed']} regions, "
        f"{result['records']} beers, {result['entity_failures']} brewer failures, "
        f"{len(result['regions_not_completed'])} regions not completed"
    )
    if not summary.clean:
        sys.exit(EXIT_PARTIAL)


@cli.command()
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None)
def regions(config_path):
    """List the regions found on the brewery index (no API requests)."""
    config, _ = _load(config_path, need_key=False)
    setup_logging(region="all", log_dir=config["logging"]["log_dir"])

    index = RegionIndex(config["listing"], name_overrides=config.get("name_overrides"))
    try:
        found = index.discover_regions()
    except DiscoveryError as e:
        click.echo(f"Discovery failed: {e}", err=True)
        sys.exit(EXIT_FAILED)

    for region in found:
        click.echo(f"{region.id:>6}  {region.name:<24} {region.url}")


@cli.command()
@click.argument("region_name")
@click.argument("entity_ids", nargs=-1, required=True)
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None)
def refetch(region_name, entity_ids, config_path):
    """Re-fetch selected brewers of one region (after failures)."""
    config, api_key = _load(config_path)
    setup_logging(region=region_name, log_dir=config["logging"]["log_dir"])

    orchestrator = build_orchestrator(config, api_key)
    report = orchestrator.refetch(region_name, list(entity_ids))

    click.echo(f"{region_name}: {report.records} beers, {len(report.failures)} failures")
    for failure in report.failures:
        click.echo(f"  brewer {failure.entity_id}: {failure.reason}")
    if report.failures or report.status != "completed":
        sys.exit(EXIT_PARTIAL)


@cli.command()
@click.argument("backup", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None)
def restore(backup, config_path):
    """Insert a region backup CSV into the document store."""
    config, _ = _load(config_path, need_key=False)
    setup_logging(region="restore", log_dir=config["logging"]["log_dir"])

    try:
        records = read_backup(backup)
    except ValueError as e:
        click.echo(f"Cannot read {backup}: {e}", err=True)
        sys.exit(EXIT_FAILED)

    store = DocumentStore(config["store"]["path"], config["store"]["collection"])
    inserted = store.insert_many(record.model_dump() for record in records)
    logger.info(f"Restored {inserted} records from {backup}")
    click.echo(f"Restored {inserted} records from {backup.name}")


@cli.command()
@click.option("--days", type=int, default=30, show_default=True)
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None)
def stats(days, config_path):
    """Show recent runs from the metrics database."""
    config, _ = _load(config_path, need_key=False)
    df = MetricsCollector(config["metrics"]["path"]).get_run_stats(days)

    if df.empty:
        click.echo(f"No runs in the last {days} days")
        return
    click.echo(df.to_string(index=False))


def main():
    cli()


if __name__ == "__main__":
    main()
