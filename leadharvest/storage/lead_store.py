"""CSV-backed lead store.

The kept table accumulates across runs; the filtered table is replaced on
every run. Loading is tolerant of legacy files: rows too short to carry an
identity are skipped, shorter rows are padded with column defaults.
"""

import csv
import logging
import os
from pathlib import Path
from typing import Iterable, Protocol

from leadharvest.models import Lead
from leadharvest.storage.schema import LEAD_COLUMNS, MIN_LEGACY_COLUMNS, TABLE_FILES

logger = logging.getLogger(__name__)


class LeadStore(Protocol):
    """Accumulative lead storage injected into the pipeline."""

    def load(self) -> list[Lead]:
        """Previously kept leads, oldest first."""
        ...

    def save(self, kept: list[Lead], filtered: list[Lead]) -> None:
        """Write the full kept table and replace the filtered table."""
        ...


class CsvLeadStore:
    """Lead tables stored as CSV files with a header row."""

    def __init__(
        self,
        kept_path: str | Path = TABLE_FILES["kept"],
        filtered_path: str | Path = TABLE_FILES["filtered"],
    ):
        """Initialize with the kept and filtered table paths."""
        self.kept_path = Path(kept_path)
        self.filtered_path = Path(filtered_path)

    def load(self) -> list[Lead]:
        """Read the kept table; a missing file means no prior leads."""
        if not self.kept_path.exists():
            logger.info("No existing leads at %s", self.kept_path)
            return []

        with open(self.kept_path, newline="", encoding="utf-8") as f:
            leads = list(self._parse_rows(csv.reader(f)))

        logger.info("Loaded %d existing leads from %s", len(leads), self.kept_path)
        return leads

    def _parse_rows(self, reader: Iterable[list[str]]) -> Iterable[Lead]:
        """Yield leads from CSV rows, skipping noise and unusable rows."""
        header: list[str] | None = None
        for line_no, row in enumerate(reader, 1):
            if header is None:
                # Legacy files may carry log noise above the header
                if "canonical" in row:
                    header = [c.strip() for c in row]
                continue
            if not any(cell.strip() for cell in row):
                continue
            if len(row) < MIN_LEGACY_COLUMNS:
                logger.warning(
                    "Skipping lead row %d in %s: %d columns",
                    line_no, self.kept_path, len(row),
                )
                continue
            record = dict(zip(header, row))
            if not record.get("canonical", "").strip():
                logger.warning("Skipping lead row %d in %s: no canonical", line_no, self.kept_path)
                continue
            yield Lead.from_row(record)

        if header is None:
            logger.warning("No header row found in %s", self.kept_path)

    def save(self, kept: list[Lead], filtered: list[Lead]) -> None:
        """Rewrite the kept table and replace the filtered table."""
        self._write_table(self.kept_path, kept)
        self._write_table(self.filtered_path, filtered)
        logger.info(
            "Wrote %d kept leads to %s and %d filtered leads to %s",
            len(kept), self.kept_path, len(filtered), self.filtered_path,
        )

    @staticmethod
    def _write_table(path: Path, leads: list[Lead]) -> None:
        """Write a table atomically via a temporary sibling file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            with open(tmp_path, "w", newline="", encoding="utf-8") as f:
                writer = csv.DictWriter(f, fieldnames=LEAD_COLUMNS)
                writer.writeheader()
                for lead in leads:
                    writer.writerow(lead.to_row())
            os.replace(tmp_path, path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
