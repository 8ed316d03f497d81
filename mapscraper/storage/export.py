"""Final JSON + CSV exports of a merged run."""

from __future__ import annotations

import csv
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Sequence

from mapscraper.extractors.schemas import DetailRecord
from mapscraper.logging_config import get_logger

LOGGER = get_logger(__name__)

CSV_HEADER = [
    "Keyword",
    "Region",
    "Name",
    "Phones",
    "Address",
    "Category",
    "Website",
    "URL",
    "Status",
    "Error",
]
PHONE_SEPARATOR = "; "


def run_timestamp(now: datetime | None = None) -> str:
    """Filesystem-safe UTC timestamp used to suffix output files."""

    moment = now or datetime.now(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H-%M-%S-%fZ")


def _row_to_values(record: DetailRecord) -> list[str]:
    return [
        record.keyword,
        record.region,
        record.name or "",
        PHONE_SEPARATOR.join(record.phones),
        record.address or "",
        record.category or "",
        record.website or "",
        record.maps_url,
        record.status.value,
        record.error or "",
    ]


def _atomic_write(path: Path, write) -> None:
    os.makedirs(path.parent, exist_ok=True)
    with NamedTemporaryFile(
        mode="w", newline="", encoding="utf-8", dir=str(path.parent), delete=False
    ) as handle:
        write(handle)
        handle.flush()
        os.fsync(handle.fileno())
        tmp_name = handle.name

    os.replace(tmp_name, path)


def write_json(records: Sequence[DetailRecord], json_path: str | Path) -> Path:
    path = Path(json_path)
    payload = [record.model_dump(mode="json") for record in records]
    _atomic_write(path, lambda handle: json.dump(payload, handle, ensure_ascii=False, indent=2))
    return path


def write_csv(records: Sequence[DetailRecord], csv_path: str | Path) -> Path:
    path = Path(csv_path)

    def _write(handle) -> None:
        writer = csv.writer(handle)
        writer.writerow(CSV_HEADER)
        for record in records:
            writer.writerow(_row_to_values(record))

    _atomic_write(path, _write)
    return path


def write_results(
    records: Sequence[DetailRecord],
    output_dir: str | Path,
    timestamp: str | None = None,
) -> tuple[Path, Path]:
    """Write ``results_<ts>.json`` and ``results_<ts>.csv`` into *output_dir*."""

    stamp = timestamp or run_timestamp()
    directory = Path(output_dir)
    json_path = write_json(records, directory / f"results_{stamp}.json")
    LOGGER.info("Saved JSON results to %s", json_path)
    csv_path = write_csv(records, directory / f"results_{stamp}.csv")
    LOGGER.info("Saved CSV results to %s", csv_path)
    return json_path, csv_path
