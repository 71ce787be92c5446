"""Tests for the CSV lead store."""

import csv
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from leadharvest.models import Lead
from leadharvest.storage.lead_store import CsvLeadStore
from leadharvest.storage.schema import LEAD_COLUMNS


def make_lead(canonical, **overrides):
    values = dict(
        discovered_at="2026-10-01T12:00:00+00:00",
        source="showhn",
        source_url=f"https://{canonical}/launch",
        canonical=canonical,
        title=canonical.split(".")[0].title(),
        status=200,
        weighted_score=9.0,
    )
    values.update(overrides)
    return Lead(**values)


class TestCsvLeadStore(unittest.TestCase):
    """Test loading and saving the kept and filtered tables."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        root = Path(self.tmp.name)
        self.kept_path = root / "out" / "leads.csv"
        self.filtered_path = root / "out" / "leads_filtered.csv"
        self.store = CsvLeadStore(self.kept_path, self.filtered_path)

    def tearDown(self):
        self.tmp.cleanup()

    def test_missing_file_loads_empty(self):
        self.assertEqual(self.store.load(), [])

    def test_save_then_load(self):
        kept = [
            make_lead("acme.dev", emails=["jane@acme.dev", "hello@acme.dev"]),
            make_lead("servercompass.app", contact_channels=["form:/contact"]),
        ]
        self.store.save(kept, [])

        loaded = self.store.load()
        self.assertEqual(loaded, kept)
        self.assertEqual(loaded[0].emails, ["jane@acme.dev", "hello@acme.dev"])

    def test_header_matches_columns(self):
        self.store.save([make_lead("acme.dev")], [])
        with open(self.kept_path, newline="") as f:
            header = next(csv.reader(f))
        self.assertEqual(header, LEAD_COLUMNS)
        self.assertEqual(header[:4], ["discovered_at", "source", "source_url", "canonical"])
        self.assertEqual(header[-1], "filter_reason")

    def test_filtered_table_replaced(self):
        first = make_lead("old.dev", filter_reason="below_threshold")
        second = make_lead("new.dev", filter_reason="no_team_cue")
        self.store.save([], [first])
        self.store.save([], [second])

        with open(self.filtered_path, newline="") as f:
            rows = list(csv.DictReader(f))
        self.assertEqual([r["canonical"] for r in rows], ["new.dev"])
        self.assertEqual(rows[0]["filter_reason"], "no_team_cue")

    def test_no_temporary_files_left(self):
        self.store.save([make_lead("acme.dev")], [])
        names = sorted(p.name for p in self.kept_path.parent.iterdir())
        self.assertEqual(names, ["leads.csv", "leads_filtered.csv"])

    def test_failed_write_keeps_previous_table(self):
        self.store.save([make_lead("acme.dev")], [])
        with patch.object(Lead, "to_row", side_effect=RuntimeError("disk full")):
            with self.assertRaises(RuntimeError):
                self.store.save([make_lead("acme.dev"), make_lead("b.dev")], [])

        names = sorted(p.name for p in self.kept_path.parent.iterdir())
        self.assertEqual(names, ["leads.csv", "leads_filtered.csv"])
        self.assertEqual([l.canonical for l in self.store.load()], ["acme.dev"])

    def test_legacy_file_tolerated(self):
        self.kept_path.parent.mkdir(parents=True)
        self.kept_path.write_text(
            "Loading leads...\n"
            "discovered_at,source,source_url,canonical,title\n"
            "2025-01-01,showhn,https://a.dev,a.dev,A\n"
            "short,row\n"
            "\n"
            "2025-01-02,manual,https://b.dev,,B\n"
        )
        loaded = self.store.load()
        self.assertEqual(len(loaded), 1)
        self.assertEqual(loaded[0].canonical, "a.dev")
        self.assertEqual(loaded[0].title, "A")
        self.assertEqual(loaded[0].weighted_score, 0.0)
        self.assertEqual(loaded[0].emails, [])

    def test_file_without_header(self):
        self.kept_path.parent.mkdir(parents=True)
        self.kept_path.write_text("just,some,noise\n")
        self.assertEqual(self.store.load(), [])


if __name__ == "__main__":
    unittest.main()
