"""
Dual-sink persistence: per-region CSV backup + shared document collection.

The two writes are independent. The backup is written first because it is
the recovery path when the store insert fails; a failing backup never stops
the store insert either.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from loguru import logger

from brewery_ingest.ingest.loaders.csv_writer import write_backup
from brewery_ingest.schemas.beers import ProductRecord
from brewery_ingest.storage.document_store import DocumentStore


@dataclass
class PersistOutcome:
    backup_path: Optional[Path] = None
    backup_error: Optional[str] = None
    stored_count: int = 0
    store_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.backup_error is None and self.store_error is None


class PersistenceSink:
    def __init__(
        self,
        store: DocumentStore,
        backup_dir: Path = Path("."),
        entity_kind: str = "Beers",
    ):
        self.store = store
        self.backup_dir = Path(backup_dir)
        self.entity_kind = entity_kind

    def write_backup(self, records: List[ProductRecord], region_name: str) -> Path:
        return write_backup(records, region_name, self.backup_dir, self.entity_kind)

    def write_to_store(self, records: List[ProductRecord]) -> int:
        return self.store.insert_many(record.model_dump() for record in records)

    def persist(self, records: List[ProductRecord], region_name: str) -> PersistOutcome:
        """Run both writes; report each failure without letting it block the other."""
        outcome = PersistOutcome()

        try:
            outcome.backup_path = self.write_backup(records, region_name)
        except Exception as e:
            outcome.backup_error = f"{type(e).__name__}: {e}"
            logger.exception(f"[{region_name}] Backup write failed")

        try:
            outcome.stored_count = self.write_to_store(records)
        except Exception as e:
            outcome.store_error = f"{type(e).__name__}: {e}"
            if outcome.backup_path:
                logger.exception(
                    f"[{region_name}] Store insert failed; recover with: "
                    f"brewery-ingest restore {outcome.backup_path}"
                )
            else:
                logger.exception(f"[{region_name}] Store insert failed and no backup was written")

        return outcome
