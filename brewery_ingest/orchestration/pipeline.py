"""
Pipeline orchestrator.

Per run:  Discovering -> for each region {Scraping -> Fetching -> Parsing ->
Persisting} -> Done. Regions are processed one at a time, strictly in order.

Failure policy:
- DiscoveryError: the run stops (no regions, no work)
- ScrapeError: the region is aborted, the run moves to the next region
- any other error inside a region: the region is aborted with a logged
  traceback, the run moves to the next region
- failed or malformed brewer fetch: zero records for that brewer, failure
  recorded, the region carries on
Nothing is retried automatically; failures are reported with region name and
brewer ID so they can be re-run by hand (`brewery-ingest refetch`).
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from loguru import logger

from brewery_ingest.ingest.errors import DiscoveryError, MalformedResponseError, ScrapeError
from brewery_ingest.ingest.parser import ResponseParser
from brewery_ingest.ingest.scrapers.beer_graphql import BeerGraphQLFetcher
from brewery_ingest.ingest.scrapers.brewer_ids import EntityIdScraper
from brewery_ingest.ingest.scrapers.region_index import Region, RegionIndex
from brewery_ingest.observability.metrics import MetricsCollector
from brewery_ingest.schemas.beers import ProductRecord
from brewery_ingest.storage.document_store import DocumentStore
from brewery_ingest.storage.sink import PersistenceSink


@dataclass
class EntityFailure:
    entity_id: str
    reason: str
    kind: str  # 'transport' or 'malformed'


@dataclass
class RegionReport:
    region: Region
    status: str = "completed"  # 'completed', 'partial', 'aborted'
    entities: int = 0
    item_counts: Dict[str, int] = field(default_factory=dict)
    failures: List[EntityFailure] = field(default_factory=list)
    records: int = 0
    stored: int = 0
    backup_path: Optional[Path] = None
    errors: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0


@dataclass
class RunSummary:
    run_id: str
    regions_discovered: int = 0
    regions: List[RegionReport] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    @property
    def records(self) -> int:
        return sum(r.records for r in self.regions)

    @property
    def api_requests(self) -> int:
        return sum(len(r.item_counts) + len(r.failures) for r in self.regions)

    @property
    def failures(self) -> List[tuple[str, EntityFailure]]:
        return [(r.region.name, f) for r in self.regions for f in r.failures]

    @property
    def aborted(self) -> List[RegionReport]:
        return [r for r in self.regions if r.status != "completed"]

    @property
    def clean(self) -> bool:
        return not self.failures and not self.aborted

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "regions_discovered": self.regions_discovered,
            "regions_processed": len(self.regions),
            "regions_skipped": len(self.skipped),
            "regions_not_completed": [r.region.name for r in self.aborted],
            "api_requests": self.api_requests,
            "entity_failures": len(self.failures),
            "records": self.records,
            "elapsed_seconds": round(self.elapsed_seconds, 1),
            "clean": self.clean,
        }


def format_elapsed(seconds: float) -> str:
    return str(timedelta(seconds=int(seconds)))


class PipelineOrchestrator:
    def __init__(
        self,
        region_index: RegionIndex,
        entity_scraper: EntityIdScraper,
        fetcher: BeerGraphQLFetcher,
        parser: ResponseParser,
        sink: PersistenceSink,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.region_index = region_index
        self.entity_scraper = entity_scraper
        self.fetcher = fetcher
        self.parser = parser
        self.sink = sink
        self.metrics = metrics
        self.clock = clock

    # -- Full run --

    def run(
        self,
        only: Optional[Iterable[str]] = None,
        skip: Optional[Iterable[str]] = None,
        run_id: Optional[str] = None,
        resume: bool = False,
    ) -> RunSummary:
        """
        Run the whole pipeline.

        Args:
            only: Region names to process (default: all discovered)
            skip: Region names to leave out
            run_id: Run identifier (default: ingest_<timestamp>)
            resume: Reopen `run_id` and skip the regions it already completed

        Raises:
            DiscoveryError: the region index yielded nothing
        """
        run_id = run_id or f"ingest_{datetime.now().strftime('%Y%m%d_%H%M%S')}"
        summary = RunSummary(run_id=run_id)
        start = self.clock()

        skip_names = {name.casefold() for name in (skip or [])}
        if self.metrics:
            if resume:
                done = self.metrics.completed_regions(run_id)
                logger.info(f"Resuming {run_id}: {len(done)} regions already completed")
                skip_names |= {name.casefold() for name in done}
            self.metrics.start_run(run_id, resume=resume)

        logger.info(f"Starting run {run_id}")

        try:
            regions = self.region_index.discover_regions()
            summary.regions_discovered = len(regions)

            selected = self._select(regions, only, skip_names, summary)
            total = len(selected)

            for index, region in enumerate(selected, start=1):
                report = self._process_isolated(region)
                summary.regions.append(report)
                self._record(report)

                logger.info(
                    f"[{index}/{total}] {region.name}: {report.status}, "
                    f"{report.records} beers from {len(report.item_counts)}/{report.entities} brewers, "
                    f"{len(report.failures)} failures ({report.duration_seconds:.0f}s) "
                    f"| elapsed {format_elapsed(self.clock() - start)}"
                )

        except DiscoveryError as e:
            summary.elapsed_seconds = self.clock() - start
            logger.error(f"Run {run_id} failed during discovery: {e}")
            self._finish(summary, status="failed", error_message=str(e))
            raise
        except KeyboardInterrupt:
            summary.elapsed_seconds = self.clock() - start
            logger.warning(
                f"Run {run_id} interrupted after {len(summary.regions)} regions; "
                f"resume with: brewery-ingest run --resume {run_id}"
            )
            self._finish(summary, status="interrupted", error_message="interrupted")
            raise
        except Exception as e:
            summary.elapsed_seconds = self.clock() - start
            logger.exception(f"Run {run_id} failed")
            self._finish(summary, status="failed", error_message=f"{type(e).__name__}: {e}")
            raise

        summary.elapsed_seconds = self.clock() - start
        self._finish(summary, status="success" if summary.clean else "partial")
        self._log_summary(summary)
        return summary

    def _select(self, regions, only, skip_names, summary) -> List[Region]:
        wanted = {name.casefold() for name in only} if only else None

        if wanted:
            known = {r.name.casefold() for r in regions}
            for name in only:
                if name.casefold() not in known:
                    logger.warning(f"Region '{name}' not found on the index, ignoring")

        selected = []
        for region in regions:
            key = region.name.casefold()
            if wanted is not None and key not in wanted:
                continue
            if key in skip_names:
                summary.skipped.append(region.name)
                continue
            selected.append(region)

        if summary.skipped:
            logger.info(f"Skipping {len(summary.skipped)} regions: {', '.join(summary.skipped)}")
        return selected

    # -- One region --

    def process_region(
        self,
        region: Region,
        entity_ids: Optional[List[str]] = None,
        label: Optional[str] = None,
    ) -> RegionReport:
        """
        Scrape, fetch, parse and persist one region.

        Args:
            region: Region to process
            entity_ids: Brewer IDs to fetch instead of scraping the listing
            label: Backup label (default: region name)
        """
        started = self.clock()
        report = RegionReport(region=region)

        if entity_ids is None:
            try:
                entity_ids = self.entity_scraper.scrape_entity_ids(region.url)
            except ScrapeError as e:
                report.status = "aborted"
                report.errors.append(str(e))
                report.duration_seconds = self.clock() - started
                logger.error(f"[{region.name}] Region aborted: {e}")
                return report

        report.entities = len(entity_ids)
        logger.info(f"[{region.name}] Fetching beers for {len(entity_ids)} brewers")

        records = self._fetch_records(region, entity_ids, report)
        report.records = len(records)

        outcome = self.sink.persist(records, label or region.name)

        report.backup_path = outcome.backup_path
        report.stored = outcome.stored_count
        for error in (outcome.backup_error, outcome.store_error):
            if error:
                report.errors.append(error)
        if not outcome.ok:
            report.status = "partial"

        report.duration_seconds = self.clock() - started
        return report

    def _process_isolated(self, region: Region) -> RegionReport:
        """process_region for the run loop: an unexpected error aborts only this region."""
        started = self.clock()
        try:
            return self.process_region(region)
        except Exception as e:
            logger.exception(f"[{region.name}] Region aborted by unexpected error")
            return RegionReport(
                region=region,
                status="aborted",
                errors=[f"{type(e).__name__}: {e}"],
                duration_seconds=self.clock() - started,
            )

    def _fetch_records(self, region: Region, entity_ids, report: RegionReport) -> List[ProductRecord]:
        records: List[ProductRecord] = []

        for result in self.fetcher.fetch_all(entity_ids):
            if not result.ok:
                report.failures.append(
                    EntityFailure(result.entity_id, result.failure_reason, "transport")
                )
                logger.warning(
                    f"[{region.name}] Brewer {result.entity_id} fetch failed: {result.failure_reason}"
                )
                continue

            try:
                parsed = self.parser.parse(result)
            except MalformedResponseError as e:
                report.failures.append(EntityFailure(result.entity_id, str(e), "malformed"))
                logger.warning(f"[{region.name}] Brewer {result.entity_id} malformed response: {e}")
                continue

            report.item_counts[result.entity_id] = len(parsed)
            records.extend(parsed)

        return records

    # -- Manual resume --

    def refetch(self, region_name: str, entity_ids: List[str]) -> RegionReport:
        """
        Re-run fetch -> parse -> persist for selected brewers of one region.

        The backup goes to "<Region>Refetch_<Kind>.csv" so the region's main
        backup is left untouched. The run is recorded in the metrics
        ledger as refetch_<timestamp>, which `--resume latest` never picks.
        """
        region = Region(name=region_name, id="", url="")
        logger.info(f"[{region_name}] Refetching {len(entity_ids)} brewers")

        summary = RunSummary(run_id=f"refetch_{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}")
        if self.metrics:
            self.metrics.start_run(summary.run_id)

        start = self.clock()
        try:
            report = self.process_region(region, entity_ids=list(entity_ids), label=f"{region_name} Refetch")
        except KeyboardInterrupt:
            self._finish(summary, status="interrupted", error_message="interrupted")
            raise
        except Exception as e:
            self._finish(summary, status="failed", error_message=f"{type(e).__name__}: {e}")
            raise
        summary.regions.append(report)
        summary.elapsed_seconds = self.clock() - start

        self._record(report)
        self._finish(summary, status="success" if summary.clean else "partial")
        logger.info(
            f"[{region_name}] Refetch done: {report.records} beers, "
            f"{len(report.failures)} failures"
        )
        return report

    # -- Bookkeeping --

    def _record(self, report: RegionReport):
        if not self.metrics:
            return
        try:
            self.metrics.record_region(
                region=report.region.name,
                region_id=report.region.id,
                status=report.status,
                entities=report.entities,
                entity_failures=len(report.failures),
                records=report.records,
                stored=report.stored,
                backup_path=str(report.backup_path) if report.backup_path else None,
                duration_seconds=report.duration_seconds,
                error_message="; ".join(report.errors) or None,
            )
        except Exception:
            logger.exception(f"[{report.region.name}] Could not record region in metrics ledger")

    def _finish(self, summary: RunSummary, status: str, error_message: str = None):
        if not self.metrics:
            return
        try:
            self.metrics.finish_run(
                status=status,
                regions_discovered=summary.regions_discovered,
                regions_processed=len(summary.regions),
                api_requests=summary.api_requests,
                entity_failures=len(summary.failures),
                records_persisted=summary.records,
                error_message=error_message,
            )
        except Exception:
            logger.exception(f"Could not close run {summary.run_id} in metrics ledger")

    def _log_summary(self, summary: RunSummary):
        logger.info(
            f"Run {summary.run_id} done in {format_elapsed(summary.elapsed_seconds)}: "
            f"{len(summary.regions)} regions, {summary.records} beers, "
            f"{summary.api_requests} API requests, {len(summary.failures)} failures"
        )

        for report in summary.aborted:
            logger.warning(f"  Region not completed: {report.region.name} ({'; '.join(report.errors)})")

        by_region: Dict[str, List[str]] = {}
        for region_name, failure in summary.failures:
            logger.warning(f"  {region_name} / brewer {failure.entity_id}: {failure.reason}")
            by_region.setdefault(region_name, []).append(failure.entity_id)

        for region_name, ids in by_region.items():
            logger.info(f"  Re-run with: brewery-ingest refetch \"{region_name}\" {' '.join(ids)}")


def build_orchestrator(config: dict, api_key: str) -> PipelineOrchestrator:
    """Wire the pipeline from a loaded config (see brewery_ingest.config)."""
    listing = config["listing"]
    output = config["output"]

    store = DocumentStore(config["store"]["path"], config["store"]["collection"])
    return PipelineOrchestrator(
        region_index=RegionIndex(listing, name_overrides=config.get("name_overrides")),
        entity_scraper=EntityIdScraper(listing),
        fetcher=BeerGraphQLFetcher(config["api"], api_key),
        parser=ResponseParser(config["api"].get("query_name", "beersByBrewer")),
        sink=PersistenceSink(store, Path(output["backup_dir"]), output.get("entity_kind", "Beers")),
        metrics=MetricsCollector(config["metrics"]["path"]),
    )
