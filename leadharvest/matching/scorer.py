"""Weighted token scoring against the ideal-customer profile.

Each configured token (word or short phrase) is matched once,
case-insensitively, on word boundaries. The score is the sum of the weights
of matched tokens. Matched tokens are also sorted into signal buckets, which
drive the pass/fail decision but never add score of their own.
"""

import logging
import re

from leadharvest.config import ScoringConfig
from leadharvest.models import CapabilityFlags, FilterReason, ScoreResult, SignalBuckets

logger = logging.getLogger(__name__)

# Independent keyword checks, reported regardless of scoring outcome
_FLAG_PATTERNS = {
    "pricing": re.compile(r"\bpricing\b", re.IGNORECASE),
    "docs": re.compile(r"\b(docs|documentation|api reference)\b", re.IGNORECASE),
    "signup": re.compile(r"\b(signup|sign up|get started|register)\b", re.IGNORECASE),
    "changelog": re.compile(r"\bchangelog\b", re.IGNORECASE),
    "api": re.compile(r"\b(api|rest api|graphql)\b", re.IGNORECASE),
    "webhook": re.compile(r"\bwebhook", re.IGNORECASE),
    "cli": re.compile(r"\b(cli|command line)\b", re.IGNORECASE),
    "sdk": re.compile(r"\bsdk\b", re.IGNORECASE),
}


def token_pattern(token: str) -> re.Pattern:
    """Compile a whole-word/phrase, case-insensitive pattern for a token."""
    return re.compile(rf"\b{re.escape(token)}\b", re.IGNORECASE)


class WeightedScorer:
    """Score page text with a token-weight table and threshold checks."""

    def __init__(self, config: ScoringConfig):
        """Initialize with scoring configuration.

        Args:
            config: Token weights, signal sets and thresholds.
        """
        self.config = config
        self._patterns = [
            (token, weight, token_pattern(token))
            for token, weight in config.weights.items()
        ]
        logger.info("WeightedScorer initialized with %d tokens", len(self._patterns))

    def matched_tokens(self, text: str) -> list[tuple[str, float]]:
        """Return (token, weight) for every configured token present in text."""
        if not text:
            return []
        return [
            (token, weight)
            for token, weight, pattern in self._patterns
            if pattern.search(text)
        ]

    def classify_token(self, token: str, weight: float) -> str | None:
        """Bucket for a matched token: dev, team, negative, launch, or None."""
        if token in self.config.dev_signals:
            return "dev"
        if token in self.config.team_signals:
            return "team"
        if weight < 0:
            return "negative"
        if token in self.config.launch_signals:
            return "launch"
        return None

    def score(self, text: str) -> ScoreResult:
        """Score text and decide whether it passes the thresholds.

        Checks run in order and the first failure sets the filter reason:
        minimum score, dev signal (if required), team cue (if required).

        Args:
            text: Combined page text (homepage, probes and title).

        Returns:
            ScoreResult with score, signal buckets, decision and pricing model.
        """
        total = 0.0
        signals = SignalBuckets()
        for token, weight in self.matched_tokens(text):
            total += weight
            bucket = self.classify_token(token, weight)
            if bucket is not None:
                getattr(signals, bucket).append(token)

        reason = None
        if total < self.config.minimum_score:
            reason = FilterReason.BELOW_THRESHOLD
        elif self.config.require_dev_signal and not signals.dev:
            reason = FilterReason.NO_DEV_SIGNAL
        elif self.config.require_team_cue and not signals.team:
            reason = FilterReason.NO_TEAM_CUE

        return ScoreResult(
            score=total,
            signals=signals,
            passed=reason is None,
            filter_reason=reason,
            pricing_model=self.pricing_model(text),
        )

    def pricing_model(self, text: str) -> str:
        """First configured pricing group with a pattern present in text."""
        text_lower = (text or "").lower()
        for model, patterns in self.config.pricing_models:
            if any(p in text_lower for p in patterns):
                return model
        return ""

    @staticmethod
    def flags(text: str) -> CapabilityFlags:
        """Keyword-presence capability flags, independent of token weights."""
        text = text or ""
        return CapabilityFlags(
            **{name: bool(pattern.search(text)) for name, pattern in _FLAG_PATTERNS.items()}
        )
