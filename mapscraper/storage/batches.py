"""Append-only batch files plus a merge step that folds them by ``maps_url``.

Each flush writes one immutable JSON array. The file is written under a
``.tmp`` name in the same directory and renamed into place, so the merge only
ever sees complete files; leftover ``.tmp`` files from a crash are ignored.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Iterable

from pydantic import ValidationError

from mapscraper.errors import BatchWriteError
from mapscraper.extractors.schemas import DetailRecord
from mapscraper.logging_config import get_logger
from mapscraper.normalizers import safe_filename_part

LOGGER = get_logger(__name__)

BATCH_SUFFIX = ".json"
TEMP_SUFFIX = ".tmp"


def batch_filename(partition_key: str, batch_id: str | int) -> str:
    return f"{safe_filename_part(partition_key)}_part_{safe_filename_part(str(batch_id))}{BATCH_SUFFIX}"


class BatchStore:
    def __init__(self, temp_dir: str | Path) -> None:
        self.temp_dir = Path(temp_dir)

    def _ensure_dir(self) -> None:
        self.temp_dir.mkdir(parents=True, exist_ok=True)

    def write_batch(
        self,
        records: Iterable[DetailRecord],
        partition_key: str,
        batch_id: str | int,
    ) -> Path:
        """Persist *records* as one batch file and return its final path."""

        self._ensure_dir()
        final_path = self.temp_dir / batch_filename(partition_key, batch_id)
        payload = [record.model_dump(mode="json") for record in records]

        tmp_name: str | None = None
        try:
            with NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=str(self.temp_dir),
                prefix=final_path.name + ".",
                suffix=TEMP_SUFFIX,
                delete=False,
            ) as handle:
                tmp_name = handle.name
                json.dump(payload, handle, ensure_ascii=False, indent=2)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, final_path)
        except OSError as exc:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
            raise BatchWriteError(f"Failed to write temp batch {final_path.name}: {exc}") from exc

        LOGGER.debug("Written temp batch: %s (%s records)", final_path.name, len(payload))
        return final_path

    def batch_files(self) -> list[Path]:
        """Completed batch files in write order (mtime, then name)."""

        if not self.temp_dir.exists():
            return []
        files = [path for path in self.temp_dir.iterdir() if path.is_file() and path.suffix == BATCH_SUFFIX]
        return sorted(files, key=lambda path: (path.stat().st_mtime_ns, path.name))

    def merge_all(self) -> list[DetailRecord]:
        """Fold every batch into one record per ``maps_url``; later files win."""

        files = self.batch_files()
        LOGGER.info("Merging %s temp files...", len(files))

        merged: dict[str, DetailRecord] = {}
        for path in files:
            try:
                with path.open("r", encoding="utf-8") as handle:
                    data = json.load(handle)
                if not isinstance(data, list):
                    raise ValueError("batch file does not contain a JSON array")
                records = [DetailRecord.model_validate(item) for item in data]
            except (OSError, ValueError, ValidationError) as exc:
                LOGGER.error("Error reading temp file %s: %s", path.name, exc)
                continue
            for record in records:
                if record.maps_url:
                    merged[record.maps_url] = record

        return list(merged.values())
