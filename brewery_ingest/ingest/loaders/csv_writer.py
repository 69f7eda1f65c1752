"""
CSV backup writer/reader for per-region beer records.

One file per region, named <RegionNameWithoutSpaces>_<EntityKind>.csv
(e.g. NorthDakota_Beers.csv). Writing overwrites, so re-running a region's
backup is always safe. The backup is the recovery source if the document
store insert fails: see `brewery-ingest restore`.
"""

from pathlib import Path
from typing import Iterable, List

import pandas as pd
from loguru import logger

from brewery_ingest.schemas.beers import PRODUCT_FIELDS, ProductRecord

# Column dtypes used on both write and read so missing values survive the
# round trip as missing (not "", not NaN-turned-float).
CSV_DTYPES = {
    "name": "string",
    "abv": "float64",
    "ibu": "float64",
    "calories": "float64",
    "isRetired": "boolean",
    "overallScore": "float64",
    "averageRating": "float64",
    "ratingCount": "Int64",
    "styleName": "string",
    "brewerName": "string",
    "brewerRegion": "string",
}


def backup_filename(region_name: str, entity_kind: str = "Beers") -> str:
    """ "North Dakota" -> "NorthDakota_Beers.csv" """
    return f"{''.join(region_name.split())}_{entity_kind}.csv"


def records_to_frame(records: Iterable[ProductRecord]) -> pd.DataFrame:
    rows = [record.model_dump() for record in records]
    df = pd.DataFrame(rows, columns=PRODUCT_FIELDS)
    return df.astype(CSV_DTYPES)


def write_backup(
    records: List[ProductRecord],
    region_name: str,
    output_dir: Path = Path("."),
    entity_kind: str = "Beers",
) -> Path:
    """
    Write all records of one region to its backup CSV.

    Args:
        records: Region's records (may be empty: a header-only file is written)
        region_name: Display name, spaces are dropped for the file name
        output_dir: Target directory (created if missing)
        entity_kind: File name suffix

    Returns:
        Path of the written file
    """
    output_path = Path(output_dir) / backup_filename(region_name, entity_kind)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    df = records_to_frame(records)
    tmp_path = output_path.with_suffix(".csv.tmp")
    df.to_csv(tmp_path, index=False, encoding="utf-8")
    tmp_path.replace(output_path)

    logger.debug(f"Wrote {len(df)} records to {output_path}")
    return output_path


def read_backup(path: Path) -> List[ProductRecord]:
    """
    Read a backup CSV back into records.

    Only empty cells are treated as missing, so beers named "NA" or "None"
    stay strings.
    """
    df = pd.read_csv(
        path,
        dtype=CSV_DTYPES,
        keep_default_na=False,
        float_precision="round_trip",
        na_values=[""],
        encoding="utf-8",
    )

    missing = [col for col in PRODUCT_FIELDS if col not in df.columns]
    if missing:
        raise ValueError(f"{path} is not a beer backup (missing columns: {missing})")

    records = []
    for row in df[PRODUCT_FIELDS].to_dict(orient="records"):
        cleaned = {key: (None if pd.isna(value) else value) for key, value in row.items()}
        records.append(ProductRecord.model_validate(cleaned))
    return records
