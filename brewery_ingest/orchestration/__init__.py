"""
Orchestration for the brewery ingestion pipeline.

- pipeline: region-by-region orchestrator and its wiring
- ingest_flow: Prefect flow for the monthly scheduled run
"""

from .pipeline import PipelineOrchestrator, RegionReport, RunSummary, build_orchestrator

__all__ = ["PipelineOrchestrator", "RegionReport", "RunSummary", "build_orchestrator"]
