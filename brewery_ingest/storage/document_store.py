"""
Document store backed by DuckDB.

One collection = one table of schema-less JSON documents:

    CREATE TABLE beers (document JSON-as-text, inserted_at TIMESTAMP)

Inserts are append-only with no uniqueness key: re-running a region inserts
its beers again. Deduplication belongs to downstream queries, e.g.

    SELECT DISTINCT document->>'name', document->>'brewerName' FROM beers
"""

import json
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List

import duckdb
from loguru import logger

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class DocumentStore:
    """Append-only JSON document collection in a DuckDB file."""

    def __init__(self, db_path: str = "data/warehouse/beers.duckdb", collection: str = "beers"):
        if not _IDENTIFIER.match(collection):
            raise ValueError(f"Invalid collection name: {collection!r}")
        self.db_path = Path(db_path)
        self.collection = collection
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _init_schema(self):
        with duckdb.connect(str(self.db_path)) as conn:
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.collection} (
                    document VARCHAR NOT NULL,
                    inserted_at TIMESTAMP NOT NULL
                )
            """)

    def insert_many(self, documents: Iterable[Dict[str, Any]]) -> int:
        """
        Append documents to the collection.

        Returns:
            Number of documents inserted
        """
        now = datetime.now()
        rows = [[json.dumps(doc, ensure_ascii=False), now] for doc in documents]
        if not rows:
            return 0

        with duckdb.connect(str(self.db_path)) as conn:
            conn.executemany(
                f"INSERT INTO {self.collection} (document, inserted_at) VALUES (?, ?)",
                rows,
            )

        logger.debug(f"Inserted {len(rows)} documents into {self.collection}")
        return len(rows)

    def count(self) -> int:
        with duckdb.connect(str(self.db_path)) as conn:
            return conn.execute(f"SELECT COUNT(*) FROM {self.collection}").fetchone()[0]

    def find_all(self) -> List[Dict[str, Any]]:
        """All documents in insertion order."""
        with duckdb.connect(str(self.db_path)) as conn:
            rows = conn.execute(
                f"SELECT document FROM {self.collection} ORDER BY inserted_at, rowid"
            ).fetchall()
        return [json.loads(row[0]) for row in rows]
