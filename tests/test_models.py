"""Tests for data models."""

import unittest

from leadharvest.models import Candidate, FetchResult, FilterReason, Lead, RunStats


class TestCandidate(unittest.TestCase):
    """Test Candidate model."""

    def test_hostname_lowercase_without_port(self):
        candidate = Candidate(url="https://WWW.Example.COM:8443/launch")
        self.assertEqual(candidate.hostname, "www.example.com")

    def test_source_defaults_to_unknown(self):
        self.assertEqual(Candidate(url="https://example.com").source, "unknown")


class TestFetchResult(unittest.TestCase):

    def test_ok_requires_success_status_and_body(self):
        self.assertTrue(FetchResult(status=200, body="<html></html>").ok)
        self.assertTrue(FetchResult(status=301, body="moved").ok)
        self.assertFalse(FetchResult(status=404, body="not found").ok)
        self.assertFalse(FetchResult(status=200, body="").ok)
        self.assertFalse(FetchResult(status=0, body="").ok)


class TestLeadRows(unittest.TestCase):
    """Test Lead serialization to and from table rows."""

    def _lead(self, **overrides):
        values = dict(
            discovered_at="2026-10-01T12:00:00+00:00",
            source="showhn",
            source_url="https://servercompass.app/launch",
            canonical="servercompass.app",
            title="ServerCompass",
            status=200,
            weighted_score=8.0,
            has_api=True,
            has_cli=True,
            emails=["jane@servercompass.app", "hello@servercompass.app"],
            contact_channels=["form:/contact", "intercom:detected"],
        )
        values.update(overrides)
        return Lead(**values)

    def test_to_row_formats_cells(self):
        row = self._lead().to_row()
        self.assertEqual(row["weighted_score"], "8")
        self.assertEqual(row["has_api"], "1")
        self.assertEqual(row["has_pricing"], "0")
        self.assertEqual(row["status"], "200")
        self.assertEqual(row["emails"], "jane@servercompass.app | hello@servercompass.app")
        self.assertEqual(row["filter_reason"], "")

    def test_fractional_score_kept(self):
        row = self._lead(weighted_score=6.5).to_row()
        self.assertEqual(row["weighted_score"], "6.5")

    def test_round_trip_preserves_fields(self):
        lead = self._lead()
        self.assertEqual(Lead.from_row(lead.to_row()), lead)

    def test_from_row_tolerates_missing_and_bad_cells(self):
        lead = Lead.from_row({
            "discovered_at": "2025-01-01",
            "source": "legacy",
            "source_url": "https://acme.dev",
            "canonical": "acme.dev",
            "weighted_score": "not-a-number",
            "status": "",
        })
        self.assertEqual(lead.canonical, "acme.dev")
        self.assertEqual(lead.weighted_score, 0.0)
        self.assertEqual(lead.status, 0)
        self.assertEqual(lead.emails, [])
        self.assertEqual(lead.team_size_estimate, "unknown")
        self.assertEqual(lead.email_confidence, "none")

    def test_kept_reflects_filter_reason(self):
        self.assertTrue(self._lead().kept)
        self.assertFalse(self._lead(filter_reason="below_threshold").kept)


class TestRunStats(unittest.TestCase):

    def test_counts_and_scores(self):
        stats = RunStats()
        stats.count_source("showhn")
        stats.count_source("showhn")
        stats.count_source("producthunt")
        stats.count_filtered(FilterReason.AGGREGATOR)
        stats.kept_scores.extend([("a.dev", 8.0), ("b.dev", 12.0)])

        self.assertEqual(stats.sources, {"showhn": 2, "producthunt": 1})
        self.assertEqual(stats.filtered["aggregator"], 1)
        self.assertEqual(stats.kept, 2)
        self.assertEqual(stats.top_score, ("b.dev", 12.0))
        self.assertAlmostEqual(stats.average_score, 10.0)

    def test_summary_lines(self):
        stats = RunStats()
        stats.count_source("showhn")
        stats.kept_scores.append(("a.dev", 7.5))
        lines = stats.summary_lines()
        self.assertIn("Sources: 1 showhn", lines)
        self.assertIn("Enriched: 1 new leads", lines)
        self.assertIn("Top score: 7.5 (a.dev)", lines)
        self.assertIn("Avg score: 7.5", lines)

    def test_empty_run_has_no_score_lines(self):
        lines = RunStats().summary_lines()
        self.assertFalse(any(line.startswith("Top score") for line in lines))
        self.assertIsNone(RunStats().average_score)


if __name__ == "__main__":
    unittest.main()
