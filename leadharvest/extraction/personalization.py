"""One-line personalization hook for outreach."""

from leadharvest.models import CapabilityFlags, SignalBuckets

FALLBACK_HOOK = "interesting SaaS product"
MAX_HOOKS = 2


def personalization_seed(
    signals: SignalBuckets,
    flags: CapabilityFlags,
    pricing_model: str,
    launch_context: str,
) -> str:
    """Join the first two applicable hooks into an opener fragment."""
    hooks = []
    if launch_context:
        hooks.append(f"I saw your {launch_context} launch")
    if signals.dev:
        hooks.append(f"noticed your {signals.dev[0]}")
    if pricing_model in ("per_seat", "per_workspace"):
        hooks.append("per-seat pricing suggests team collaboration focus")
    if flags.api and flags.webhook:
        hooks.append("API-first with webhook support")
    if signals.team:
        hooks.append(f"{signals.team[0]} for teams")
    if not hooks:
        hooks.append(FALLBACK_HOOK)
    return ", ".join(hooks[:MAX_HOOKS])
