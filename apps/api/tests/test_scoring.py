"""Tests for the lead priority score."""
from __future__ import annotations

from types import SimpleNamespace

import pytest

from crm.models.lead import ParkingType
from crm.schemas.leads import LeadCreateRequest
from crm.services.scoring import compute_lead_score


def _lead(**overrides):
    fields = dict(
        parking_type=ParkingType.OPEN,
        property_size_flats=None,
        decision_maker_known=False,
        current_ev_count=None,
        charger_interest=[],
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


def test_all_signals_score_ten() -> None:
    lead = _lead(
        parking_type=ParkingType.BASEMENT,
        property_size_flats=150,
        decision_maker_known=True,
        current_ev_count=8,
        charger_interest=["7.4", "22"],
    )

    assert compute_lead_score(lead) == 10


def test_no_signals_score_zero() -> None:
    assert compute_lead_score(_lead()) == 0


@pytest.mark.parametrize(
    "overrides",
    [
        {"parking_type": ParkingType.BASEMENT},
        {"property_size_flats": 101},
        {"decision_maker_known": True},
        {"current_ev_count": 6},
        {"charger_interest": ["3.3"]},
    ],
)
def test_each_signal_adds_two_points(overrides) -> None:
    assert compute_lead_score(_lead(**overrides)) == 2


def test_thresholds_are_exclusive() -> None:
    lead = _lead(property_size_flats=100, current_ev_count=5, parking_type=ParkingType.MIXED)

    assert compute_lead_score(lead) == 0


def test_plain_string_parking_value_is_recognised() -> None:
    assert compute_lead_score(_lead(parking_type="basement")) == 2


def test_intake_payload_can_be_scored_directly() -> None:
    payload = LeadCreateRequest(
        lead_type="CHS",
        name="Green Acres",
        phone="9820000000",
        area="Bandra",
        parking_type="basement",
        charger_interest="7.4",
    )

    assert payload.charger_interest == ["7.4"]
    assert compute_lead_score(payload) == 4
