from __future__ import annotations
from .models import Tier

# Inclusive lower bounds, checked top-down
TIER_THRESHOLDS = (
    (0.8, Tier.EXCELLENT),
    (0.6, Tier.GOOD),
    (0.4, Tier.NICE),
)


def participation_ratio(participated: int, possible: int) -> float:
    if possible <= 0:
        return 0.0
    return participated / possible


def classify_ratio(ratio: float) -> Tier:
    for bound, tier in TIER_THRESHOLDS:
        if ratio >= bound:
            return tier
    return Tier.BAD


def classify(participated: int, possible: int) -> Tier:
    """Tier for a school; no possible events counts as ratio 0 (Bad)."""
    return classify_ratio(participation_ratio(participated, possible))
