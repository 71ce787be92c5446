"""On-disk cache for subpage probe responses.

Entries are keyed by (identity, path, UTC day) and expire a fixed TTL after
they were written. Caching is best effort: unreadable or corrupt entries are
misses and write failures are ignored.
"""

import hashlib
import json
import logging
import math
import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from leadharvest.models import FetchResult

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60
DEFAULT_TTL_SECONDS = 7 * SECONDS_PER_DAY
DEFAULT_MAX_BODY_CHARS = 200_000

_UNSAFE_CHARS = re.compile(r"[^a-z0-9]", re.IGNORECASE)


class ProbeCache:
    """TTL-expiring JSON file cache for probe responses."""

    def __init__(
        self,
        directory: str | Path,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_body_chars: int = DEFAULT_MAX_BODY_CHARS,
    ):
        """Initialize a cache rooted at directory (created on first write)."""
        self.directory = Path(directory)
        self.ttl_seconds = ttl_seconds
        self.max_body_chars = max_body_chars

    def path_for(self, identity: str, path: str, now: Optional[float] = None) -> Path:
        """File path of the cache entry for (identity, path, day of ``now``)."""
        now = time.time() if now is None else now
        day = datetime.fromtimestamp(now, tz=timezone.utc).strftime("%Y-%m-%d")
        digest = hashlib.md5(f"{identity}{path}{day}".encode("utf-8")).hexdigest()[:8]
        safe_identity = _UNSAFE_CHARS.sub("_", identity)
        safe_path = path.replace("/", "_")
        safe_path = _UNSAFE_CHARS.sub("_", safe_path)
        return self.directory / f"{safe_identity}_{safe_path}_{digest}.cache"

    def get(self, identity: str, path: str, now: Optional[float] = None) -> Optional[FetchResult]:
        """Return a fresh cached response, or None on miss/expiry/corruption.

        Keys of earlier days are checked too, back as far as the TTL reaches,
        so an entry written before midnight is still served after it.
        """
        now = time.time() if now is None else now
        days_back = max(1, math.ceil(self.ttl_seconds / SECONDS_PER_DAY))
        for offset in range(days_back + 1):
            entry_path = self.path_for(identity, path, now - offset * SECONDS_PER_DAY)
            result = self._read_entry(entry_path, now)
            if result is not None:
                return result
        return None

    def _read_entry(self, entry_path: Path, now: float) -> Optional[FetchResult]:
        """Read one entry file, returning None if missing, expired or corrupt."""
        try:
            with open(entry_path, encoding="utf-8") as f:
                entry = json.load(f)
            age = now - float(entry["timestamp"])
            if age >= self.ttl_seconds:
                logger.debug("Cache expired: %s (age=%.0fs)", entry_path, age)
                return None
            return FetchResult(
                status=int(entry["status"]),
                body=str(entry.get("body", "")),
                from_cache=True,
            )
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.debug("Unreadable cache entry %s: %s", entry_path, e)
            return None


    def put(
        self,
        identity: str,
        path: str,
        status: int,
        body: str,
        now: Optional[float] = None,
    ) -> None:
        """Write a response to the cache, capping the stored body size."""
        now = time.time() if now is None else now
        entry_path = self.path_for(identity, path, now)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with open(entry_path, "w", encoding="utf-8") as f:
                json.dump(
                    {
                        "status": status,
                        "body": body[: self.max_body_chars],
                        "timestamp": now,
                    },
                    f,
                )
        except (OSError, TypeError, ValueError) as e:
            logger.debug("Cache write failed for %s: %s", entry_path, e)
