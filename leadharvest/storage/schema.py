"""Column layout of the kept and filtered lead tables.

Both tables share one header; ``filter_reason`` is empty in the kept table.
"""

from dataclasses import fields

from leadharvest.models import Lead

LEAD_COLUMNS = [f.name for f in fields(Lead)]

# A row must reach the identity column to be usable for deduplication
MIN_LEGACY_COLUMNS = LEAD_COLUMNS.index("canonical") + 1

TABLE_FILES = {
    "kept": "leads.csv",
    "filtered": "leads_filtered.csv",
}
