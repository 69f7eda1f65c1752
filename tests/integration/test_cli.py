"""
CLI tests using click's CliRunner.

The orchestrator is mocked: these tests cover argument handling, exit
codes and the commands that only touch local files.
"""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from brewery_ingest.cli import EXIT_FAILED, EXIT_PARTIAL, cli
from brewery_ingest.config import API_KEY_ENV
from brewery_ingest.ingest.errors import DiscoveryError
from brewery_ingest.ingest.loaders.csv_writer import write_backup
from brewery_ingest.ingest.scrapers.region_index import Region
from brewery_ingest.observability.metrics import MetricsCollector
from brewery_ingest.orchestration.pipeline import EntityFailure, RegionReport, RunSummary
from brewery_ingest.schemas.beers import ProductRecord
from brewery_ingest.storage.document_store import DocumentStore

NORTH_DAKOTA = Region(name="North Dakota", id="35", url="https://www.ratebeer.com/breweries/north-dakota/35/213/")


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def cli_config(temp_dir):
    """Config file keeping every output under the temp dir."""
    path = temp_dir / "pipeline.yaml"
    path.write_text(
        "output:\n"
        f"  backup_dir: {temp_dir / 'backups'}\n"
        "store:\n"
        f"  path: {temp_dir / 'beers.duckdb'}\n"
        "metrics:\n"
        f"  path: {temp_dir / 'runs.duckdb'}\n"
        "logging:\n"
        f"  log_dir: {temp_dir / 'logs'}\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setenv(API_KEY_ENV, "test-key")


@pytest.fixture
def no_api_key(monkeypatch):
    monkeypatch.delenv(API_KEY_ENV, raising=False)
    with patch("brewery_ingest.config.load_dotenv"):
        yield


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("brewery_ingest.cli.setup_logging"):
        yield


@pytest.fixture
def orchestrator():
    with patch("brewery_ingest.cli.build_orchestrator") as build:
        yield build.return_value


# ─────────────────────────────────────────────────────────────────────
# run
# ─────────────────────────────────────────────────────────────────────

def test_run_missing_api_key_exits_before_network(runner, cli_config, no_api_key):
    with patch("brewery_ingest.cli.build_orchestrator") as build:
        result = runner.invoke(cli, ["run", "--config", str(cli_config)])

    assert result.exit_code == EXIT_FAILED
    assert API_KEY_ENV in result.output
    build.assert_not_called()


def test_run_missing_config_file_exits(runner, temp_dir, api_key):
    result = runner.invoke(cli, ["run", "--config", str(temp_dir / "absent.yaml")])

    assert result.exit_code == EXIT_FAILED
    assert "Configuration error" in result.output


def test_run_clean_exits_zero(runner, cli_config, api_key, orchestrator):
    orchestrator.run.return_value = RunSummary(
        run_id="ingest_x", regions_discovered=1, regions=[RegionReport(region=NORTH_DAKOTA, records=12)]
    )

    result = runner.invoke(cli, ["run", "--config", str(cli_config)])

    assert result.exit_code == 0, result.output
    assert "12 beers" in result.output


def test_run_with_failures_exits_partial(runner, cli_config, api_key, orchestrator):
    report = RegionReport(region=NORTH_DAKOTA, failures=[EntityFailure("23456", "HTTP 500", "transport")])
    orchestrator.run.return_value = RunSummary(run_id="ingest_x", regions=[report])

    result = runner.invoke(cli, ["run", "--config", str(cli_config)])

    assert result.exit_code == EXIT_PARTIAL
    assert "1 brewer failures" in result.output


def test_run_discovery_failure_exits_failed(runner, cli_config, api_key, orchestrator):
    orchestrator.run.side_effect = DiscoveryError("No regions found")

    result = runner.invoke(cli, ["run", "--config", str(cli_config)])

    assert result.exit_code == EXIT_FAILED
    assert "Discovery failed" in result.output


def test_run_passes_region_selection(runner, cli_config, api_key, orchestrator):
    orchestrator.run.return_value = RunSummary(run_id="ingest_x")

    runner.invoke(cli, [
        "run", "--config", str(cli_config),
        "--region", "North Dakota", "--region", "Iowa", "--skip", "Iowa",
    ])

    kwargs = orchestrator.run.call_args.kwargs
    assert kwargs["only"] == ("North Dakota", "Iowa")
    assert kwargs["skip"] == ("Iowa",)
    assert kwargs["resume"] is False


def test_run_resume_latest(runner, cli_config, api_key, orchestrator, temp_dir):
    metrics = MetricsCollector(str(temp_dir / "runs.duckdb"))
    metrics.start_run("ingest_20261001_030000")
    metrics.finish_run("interrupted")
    orchestrator.run.return_value = RunSummary(run_id="ingest_20261001_030000")

    result = runner.invoke(cli, ["run", "--config", str(cli_config), "--resume", "latest"])

    assert result.exit_code == 0, result.output
    kwargs = orchestrator.run.call_args.kwargs
    assert kwargs["run_id"] == "ingest_20261001_030000"
    assert kwargs["resume"] is True


def test_run_resume_latest_without_history_exits(runner, cli_config, api_key, orchestrator):
    result = runner.invoke(cli, ["run", "--config", str(cli_config), "--resume", "latest"])

    assert result.exit_code == EXIT_FAILED
    orchestrator.run.assert_not_called()


# ─────────────────────────────────────────────────────────────────────
# refetch
# ─────────────────────────────────────────────────────────────────────

def test_refetch_passes_ids(runner, cli_config, api_key, orchestrator):
    orchestrator.refetch.return_value = RegionReport(region=NORTH_DAKOTA, records=4)

    result = runner.invoke(cli, ["refetch", "North Dakota", "23456", "34567", "--config", str(cli_config)])

    assert result.exit_code == 0, result.output
    orchestrator.refetch.assert_called_once_with("North Dakota", ["23456", "34567"])


def test_refetch_with_failures_exits_partial(runner, cli_config, api_key, orchestrator):
    orchestrator.refetch.return_value = RegionReport(
        region=NORTH_DAKOTA, failures=[EntityFailure("23456", "HTTP 503", "transport")]
    )

    result = runner.invoke(cli, ["refetch", "North Dakota", "23456", "--config", str(cli_config)])

    assert result.exit_code == EXIT_PARTIAL
    assert "brewer 23456: HTTP 503" in result.output


def test_refetch_requires_ids(runner, cli_config, api_key):
    result = runner.invoke(cli, ["refetch", "North Dakota", "--config", str(cli_config)])

    assert result.exit_code != 0


# ─────────────────────────────────────────────────────────────────────
# restore / stats
# ─────────────────────────────────────────────────────────────────────

def test_restore_loads_backup_into_store(runner, cli_config, no_api_key, temp_dir):
    records = [ProductRecord(name="Wood Chipper", abv=8.0), ProductRecord(name="Sod House")]
    backup = write_backup(records, "North Dakota", temp_dir / "backups")

    result = runner.invoke(cli, ["restore", str(backup), "--config", str(cli_config)])

    assert result.exit_code == 0, result.output
    store = DocumentStore(str(temp_dir / "beers.duckdb"))
    assert store.find_all() == [r.model_dump() for r in records]


def test_restore_rejects_foreign_csv(runner, cli_config, temp_dir):
    other = temp_dir / "prices.csv"
    other.write_text("productId,price\n1,2.5\n", encoding="utf-8")

    result = runner.invoke(cli, ["restore", str(other), "--config", str(cli_config)])

    assert result.exit_code == EXIT_FAILED


def test_stats_without_runs(runner, cli_config):
    result = runner.invoke(cli, ["stats", "--config", str(cli_config)])

    assert result.exit_code == 0
    assert "No runs in the last 30 days" in result.output


def test_stats_lists_runs(runner, cli_config, temp_dir):
    metrics = MetricsCollector(str(temp_dir / "runs.duckdb"))
    metrics.start_run("ingest_20261017_030000")
    metrics.finish_run("success", records_persisted=14)

    result = runner.invoke(cli, ["stats", "--config", str(cli_config)])

    assert result.exit_code == 0
    assert "ingest_20261017_030000" in result.output


# ─────────────────────────────────────────────────────────────────────
# regions
# ─────────────────────────────────────────────────────────────────────

def test_regions_lists_discovered_regions_without_api_key(runner, cli_config, no_api_key):
    with patch("brewery_ingest.cli.RegionIndex") as index_cls:
        index_cls.return_value.discover_regions.return_value = [NORTH_DAKOTA]
        result = runner.invoke(cli, ["regions", "--config", str(cli_config)])

    assert result.exit_code == 0, result.output
    assert "North Dakota" in result.output
    assert NORTH_DAKOTA.url in result.output


def test_regions_discovery_failure_exits_failed(runner, cli_config):
    with patch("brewery_ingest.cli.RegionIndex") as index_cls:
        index_cls.return_value.discover_regions.side_effect = DiscoveryError("No regions found")
        result = runner.invoke(cli, ["regions", "--config", str(cli_config)])

    assert result.exit_code == EXIT_FAILED
