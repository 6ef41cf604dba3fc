"""Lead priority scoring."""
from __future__ import annotations

from typing import Any

from ..models.lead import ParkingType

RULE_POINTS = 2
MIN_SCORE = 0
MAX_SCORE = 10


def compute_lead_score(lead: Any) -> int:
    """Return the 0-10 priority score for a lead-like object.

    Each satisfied site signal adds two points: basement parking, more than 100
    flats, a known decision maker, more than five EVs on site and any stated
    charger interest.
    """

    score = 0
    if getattr(lead, "parking_type", None) == ParkingType.BASEMENT:
        score += RULE_POINTS
    if (getattr(lead, "property_size_flats", None) or 0) > 100:
        score += RULE_POINTS
    if getattr(lead, "decision_maker_known", False):
        score += RULE_POINTS
    if (getattr(lead, "current_ev_count", None) or 0) > 5:
        score += RULE_POINTS
    if getattr(lead, "charger_interest", None):
        score += RULE_POINTS

    return max(MIN_SCORE, min(MAX_SCORE, score))
