"""Service-level tests for the lead lifecycle."""
from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError

from crm.models.activity import ActivityType
from crm.models.followup import FollowupStatus
from crm.models.lead import LeadStage, LeadType, ParkingType
from crm.models.user import UserRole
from crm.repositories import activities as activities_repo
from crm.repositories import followups as followups_repo
from crm.repositories import leads as leads_repo
from crm.repositories import users as users_repo
from crm.schemas import leads as schemas
from crm.services import leads as leads_service


class DummySession:
    """Minimal session stub supporting async transaction context."""

    def __init__(self) -> None:
        self.added: list[object] = []
        self.flushes = 0

    def add(self, obj: object) -> None:
        self.added.append(obj)

    async def flush(self) -> None:
        self.flushes += 1

    def begin(self):  # noqa: D401 - mimic SQLAlchemy's async begin
        session = self

        class _Tx:
            async def __aenter__(self_inner):
                return session

            async def __aexit__(self_inner, exc_type, exc, tb):
                return False

        return _Tx()


CREATED_AT = datetime(2025, 1, 1, tzinfo=timezone.utc)

ADMIN = SimpleNamespace(id="admin-1", name="Asha", role=UserRole.ADMIN)
PRIYA = SimpleNamespace(id="u1", name="Priya", role=UserRole.SALES)
ROHAN = SimpleNamespace(id="u2", name="Rohan", role=UserRole.SALES)


def make_lead(**overrides) -> SimpleNamespace:
    fields = dict(
        id="lead-1234-abcd",
        lead_id="ACS-600000-abcd",
        lead_type=LeadType.CHS,
        name="Seaview CHS",
        phone="9820011111",
        email=None,
        area="Andheri",
        locality="Lokhandwala",
        property_size_flats=None,
        parking_type=ParkingType.OPEN,
        current_ev_count=None,
        charger_interest=[],
        notes=None,
        consent=False,
        decision_maker_known=False,
        stage=LeadStage.NEW,
        lead_score=0,
        owner_id="u1",
        next_follow_up_date=None,
        duplicate_of_id=None,
        updated_by_id=None,
        created_at=CREATED_AT,
        updated_at=CREATED_AT,
        closed_at=None,
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


def intake_payload(**overrides) -> schemas.LeadCreateRequest:
    data = dict(lead_type="CHS", name="Seaview CHS", phone="9820011111", area="Andheri")
    data.update(overrides)
    return schemas.LeadCreateRequest(**data)


@pytest.fixture
def stub_create(monkeypatch):
    captured: dict[str, object] = {}

    async def create_lead_stub(session, **fields):
        captured.update(fields)
        return SimpleNamespace(id="3f2c9a1e-0000-4000-8000-00000000beef", created_at=CREATED_AT, lead_id=None, **fields)

    monkeypatch.setattr(leads_repo, "create_lead", create_lead_stub)
    return captured


@pytest.mark.asyncio
async def test_create_lead_assigns_owner_and_builds_id(monkeypatch, stub_create):
    monkeypatch.setattr(leads_repo, "find_duplicate", AsyncMock(return_value=None))
    monkeypatch.setattr(leads_service, "assign_owner", AsyncMock(return_value=PRIYA))
    session = DummySession()

    response = await leads_service.create_lead(
        intake_payload(
            parking_type="basement",
            property_size_flats=150,
            decision_maker_known=True,
            current_ev_count=8,
            charger_interest=["7.4", "22"],
        ),
        session,
    )

    assert response.lead_id == "ACS-600000-beef"
    assert response.id.endswith("beef")
    assert response.duplicate is False
    assert response.assigned_to == "Priya"
    assert stub_create["lead_score"] == 10
    assert stub_create["owner_id"] == "u1"
    assert stub_create["stage"] is LeadStage.NEW
    assert stub_create["duplicate_of_id"] is None
    assert session.flushes == 1


@pytest.mark.asyncio
async def test_create_lead_flags_duplicate_without_blocking(monkeypatch, stub_create):
    finder = AsyncMock(return_value=SimpleNamespace(id="lead-old"))
    monkeypatch.setattr(leads_repo, "find_duplicate", finder)
    monkeypatch.setattr(leads_service, "assign_owner", AsyncMock(return_value=None))

    response = await leads_service.create_lead(intake_payload(email="a@b.com"), DummySession())

    assert response.duplicate is True
    assert response.assigned_to is None
    assert stub_create["duplicate_of_id"] == "lead-old"
    assert stub_create["owner_id"] is None
    assert stub_create["lead_score"] == 0
    assert finder.await_args.kwargs == {"phone": "9820011111", "email": "a@b.com"}


@pytest.mark.asyncio
async def test_create_lead_persistence_failure_is_generic(monkeypatch):
    monkeypatch.setattr(leads_repo, "find_duplicate", AsyncMock(return_value=None))
    monkeypatch.setattr(leads_service, "assign_owner", AsyncMock(return_value=None))
    monkeypatch.setattr(leads_repo, "create_lead", AsyncMock(side_effect=SQLAlchemyError("down")))

    with pytest.raises(HTTPException) as exc:
        await leads_service.create_lead(intake_payload(), DummySession())

    assert exc.value.status_code == 500
    assert exc.value.detail == "Failed to create lead"


def test_build_lead_id_uses_trailing_digits_and_id_chars():
    created = datetime.fromtimestamp(1_700_000_123.456, tz=timezone.utc)

    assert leads_service.build_lead_id(created, "abcdef12", prefix="ACS") == "ACS-123456-ef12"


@pytest.fixture
def update_stubs(monkeypatch):
    stubs = SimpleNamespace(
        create_activity=AsyncMock(),
        recompute=AsyncMock(return_value=True),
        names=AsyncMock(return_value={"u1": "Priya", "u2": "Rohan"}),
        get_user=AsyncMock(return_value=ROHAN),
    )
    monkeypatch.setattr(activities_repo, "create_activity", stubs.create_activity)
    monkeypatch.setattr(leads_service, "recompute_incentive", stubs.recompute)
    monkeypatch.setattr(users_repo, "names_by_id", stubs.names)
    monkeypatch.setattr(users_repo, "get_by_id", stubs.get_user)
    return stubs


@pytest.mark.asyncio
async def test_stage_change_logs_default_note_and_recomputes(monkeypatch, update_stubs):
    lead = make_lead()
    monkeypatch.setattr(leads_repo, "get_by_id", AsyncMock(return_value=lead))

    result = await leads_service.update_lead(
        lead.id, schemas.LeadUpdateRequest(stage="Won"), PRIYA, DummySession()
    )

    assert result.stage is LeadStage.WON
    assert result.owner_name == "Priya"
    assert lead.closed_at is not None
    assert lead.updated_by_id == "u1"
    update_stubs.create_activity.assert_awaited_once()
    kwargs = update_stubs.create_activity.await_args.kwargs
    assert kwargs["subject"] == "Stage: New → Won"
    assert kwargs["description"] == "Lead moved from New to Won"
    assert kwargs["type"] is ActivityType.NOTE
    assert kwargs["user_id"] == "u1"
    update_stubs.recompute.assert_awaited_once()
    assert update_stubs.recompute.await_args.args[1] == "u1"


@pytest.mark.asyncio
async def test_stage_note_becomes_activity_description(monkeypatch, update_stubs):
    lead = make_lead(stage=LeadStage.QUALIFIED)
    monkeypatch.setattr(leads_repo, "get_by_id", AsyncMock(return_value=lead))

    await leads_service.update_lead(
        lead.id,
        schemas.LeadUpdateRequest(stage="Meeting Booked", stage_note="Site visit on Friday"),
        ADMIN,
        DummySession(),
    )

    kwargs = update_stubs.create_activity.await_args.kwargs
    assert kwargs["subject"] == "Stage: Qualified → Meeting Booked"
    assert kwargs["description"] == "Site visit on Friday"


@pytest.mark.asyncio
async def test_field_update_rescores_without_side_effects(monkeypatch, update_stubs):
    lead = make_lead()
    monkeypatch.setattr(leads_repo, "get_by_id", AsyncMock(return_value=lead))

    result = await leads_service.update_lead(
        lead.id,
        schemas.LeadUpdateRequest(parking_type="basement", current_ev_count=12, stage_note="ignored"),
        PRIYA,
        DummySession(),
    )

    assert result.lead_score == 4
    update_stubs.create_activity.assert_not_awaited()
    update_stubs.recompute.assert_not_awaited()


@pytest.mark.asyncio
async def test_patched_next_followup_date_is_stored_in_utc(monkeypatch, update_stubs):
    lead = make_lead()
    monkeypatch.setattr(leads_repo, "get_by_id", AsyncMock(return_value=lead))

    await leads_service.update_lead(
        lead.id,
        schemas.LeadUpdateRequest(next_follow_up_date="2025-03-04T09:30:00"),
        PRIYA,
        DummySession(),
    )

    assert lead.next_follow_up_date == datetime(2025, 3, 4, 9, 30, tzinfo=timezone.utc)
    assert lead.next_follow_up_date.tzinfo is not None


@pytest.mark.asyncio
async def test_owner_change_recomputes_both_agents(monkeypatch, update_stubs):
    lead = make_lead(stage=LeadStage.WON, closed_at=CREATED_AT)
    monkeypatch.setattr(leads_repo, "get_by_id", AsyncMock(return_value=lead))

    result = await leads_service.update_lead(
        lead.id, schemas.LeadUpdateRequest(owner_id="u2"), ADMIN, DummySession()
    )

    assert result.owner_id == "u2"
    update_stubs.create_activity.assert_not_awaited()
    recomputed = [call.args[1] for call in update_stubs.recompute.await_args_list]
    assert recomputed == ["u2", "u1"]


@pytest.mark.asyncio
async def test_unknown_owner_is_rejected(monkeypatch, update_stubs):
    lead = make_lead()
    monkeypatch.setattr(leads_repo, "get_by_id", AsyncMock(return_value=lead))
    update_stubs.get_user.return_value = None

    with pytest.raises(HTTPException) as exc:
        await leads_service.update_lead(
            lead.id, schemas.LeadUpdateRequest(owner_id="ghost"), ADMIN, DummySession()
        )

    assert exc.value.status_code == 400
    assert lead.owner_id == "u1"


@pytest.mark.asyncio
async def test_reopening_clears_closed_at(monkeypatch, update_stubs):
    lead = make_lead(stage=LeadStage.LOST, closed_at=CREATED_AT)
    monkeypatch.setattr(leads_repo, "get_by_id", AsyncMock(return_value=lead))

    await leads_service.update_lead(
        lead.id, schemas.LeadUpdateRequest(stage="Qualified"), PRIYA, DummySession()
    )

    assert lead.closed_at is None
    assert update_stubs.create_activity.await_args.kwargs["subject"] == "Stage: Lost → Qualified"


@pytest.mark.asyncio
async def test_update_forbidden_for_other_agents(monkeypatch, update_stubs):
    lead = make_lead(owner_id="u1")
    monkeypatch.setattr(leads_repo, "get_by_id", AsyncMock(return_value=lead))

    with pytest.raises(HTTPException) as exc:
        await leads_service.update_lead(
            lead.id, schemas.LeadUpdateRequest(stage="Won"), ROHAN, DummySession()
        )

    assert exc.value.status_code == 403
    assert lead.stage is LeadStage.NEW
    update_stubs.create_activity.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_missing_lead(monkeypatch, update_stubs):
    monkeypatch.setattr(leads_repo, "get_by_id", AsyncMock(return_value=None))

    with pytest.raises(HTTPException) as exc:
        await leads_service.update_lead("missing", schemas.LeadUpdateRequest(stage="Won"), ADMIN, DummySession())

    assert exc.value.status_code == 404


def test_update_patch_drops_identity_and_audit_fields():
    payload = schemas.LeadUpdateRequest(
        **{"id": "x", "lead_id": "HACK", "created_at": "2020-01-01T00:00:00Z", "stage": "Qualified"}
    )

    assert payload.changes() == {"stage": LeadStage.QUALIFIED}


def test_update_patch_rejects_null_required_field():
    with pytest.raises(ValueError):
        schemas.LeadUpdateRequest(name=None)


@pytest.mark.asyncio
async def test_delete_cascades_and_recomputes_owner(monkeypatch):
    lead = make_lead(stage=LeadStage.WON)
    monkeypatch.setattr(leads_repo, "get_by_id", AsyncMock(return_value=lead))
    delete_activities = AsyncMock(return_value=3)
    delete_followups = AsyncMock(return_value=1)
    delete_lead = AsyncMock()
    recompute = AsyncMock()
    monkeypatch.setattr(activities_repo, "delete_for_lead", delete_activities)
    monkeypatch.setattr(followups_repo, "delete_for_lead", delete_followups)
    monkeypatch.setattr(leads_repo, "delete_lead", delete_lead)
    monkeypatch.setattr(leads_service, "recompute_incentive", recompute)

    response = await leads_service.delete_lead(lead.id, ADMIN, DummySession())

    assert "deleted" in response.message
    assert delete_activities.await_args.args[1] == lead.id
    assert delete_followups.await_args.args[1] == lead.id
    assert delete_lead.await_args.args[1] is lead
    assert recompute.await_args.args[1] == "u1"


@pytest.mark.asyncio
async def test_delete_unowned_lead_skips_recompute(monkeypatch):
    lead = make_lead(owner_id=None)
    monkeypatch.setattr(leads_repo, "get_by_id", AsyncMock(return_value=lead))
    monkeypatch.setattr(activities_repo, "delete_for_lead", AsyncMock(return_value=0))
    monkeypatch.setattr(followups_repo, "delete_for_lead", AsyncMock(return_value=0))
    monkeypatch.setattr(leads_repo, "delete_lead", AsyncMock())
    recompute = AsyncMock()
    monkeypatch.setattr(leads_service, "recompute_incentive", recompute)

    await leads_service.delete_lead(lead.id, ADMIN, DummySession())

    recompute.assert_not_awaited()


@pytest.mark.asyncio
async def test_delete_forbidden_leaves_records(monkeypatch):
    lead = make_lead(owner_id="u1")
    monkeypatch.setattr(leads_repo, "get_by_id", AsyncMock(return_value=lead))
    delete_activities = AsyncMock()
    monkeypatch.setattr(activities_repo, "delete_for_lead", delete_activities)

    with pytest.raises(HTTPException) as exc:
        await leads_service.delete_lead(lead.id, ROHAN, DummySession())

    assert exc.value.status_code == 403
    delete_activities.assert_not_awaited()


@pytest.mark.asyncio
async def test_add_activity_records_author(monkeypatch):
    lead = make_lead()
    monkeypatch.setattr(leads_repo, "get_by_id", AsyncMock(return_value=lead))
    activity = SimpleNamespace(
        id="act-1",
        lead_id=lead.id,
        user_id="u1",
        type=ActivityType.CALL,
        subject="",
        description="Spoke to the secretary",
        attachment_url=None,
        created_at=CREATED_AT,
    )
    create_activity = AsyncMock(return_value=activity)
    monkeypatch.setattr(activities_repo, "create_activity", create_activity)

    result = await leads_service.add_activity(
        lead.id,
        schemas.ActivityCreateRequest(type="call", description="Spoke to the secretary"),
        PRIYA,
        DummySession(),
    )

    assert result.user_name == "Priya"
    assert create_activity.await_args.kwargs["user_id"] == "u1"
    assert create_activity.await_args.kwargs["type"] is ActivityType.CALL


@pytest.mark.asyncio
async def test_add_followup_sets_next_followup_date(monkeypatch):
    lead = make_lead()
    session = DummySession()
    monkeypatch.setattr(leads_repo, "get_by_id", AsyncMock(return_value=lead))
    due = datetime(2025, 2, 3, 10, 0)
    followup = SimpleNamespace(
        id="f-1",
        lead_id=lead.id,
        user_id="u1",
        due_date=due.replace(tzinfo=timezone.utc),
        status=FollowupStatus.PENDING,
        notes="Call back",
        created_at=CREATED_AT,
    )
    create_followup = AsyncMock(return_value=followup)
    monkeypatch.setattr(followups_repo, "create_followup", create_followup)

    result = await leads_service.add_followup(
        lead.id, schemas.FollowupCreateRequest(due_date=due, notes="Call back"), PRIYA, session
    )

    assert result.status is FollowupStatus.PENDING
    assert lead.next_follow_up_date == due.replace(tzinfo=timezone.utc)
    assert create_followup.await_args.kwargs["due_date"].tzinfo is not None
    assert lead in session.added


@pytest.mark.asyncio
async def test_update_followup_rejects_foreign_followup(monkeypatch):
    lead = make_lead()
    monkeypatch.setattr(leads_repo, "get_by_id", AsyncMock(return_value=lead))
    monkeypatch.setattr(
        followups_repo, "get_by_id", AsyncMock(return_value=SimpleNamespace(id="f-9", lead_id="other"))
    )

    with pytest.raises(HTTPException) as exc:
        await leads_service.update_followup(
            lead.id, "f-9", schemas.FollowupUpdateRequest(status="completed"), ADMIN, DummySession()
        )

    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_update_followup_marks_completed(monkeypatch):
    lead = make_lead()
    monkeypatch.setattr(leads_repo, "get_by_id", AsyncMock(return_value=lead))
    followup = SimpleNamespace(
        id="f-1",
        lead_id=lead.id,
        user_id="u1",
        due_date=CREATED_AT,
        status=FollowupStatus.PENDING,
        notes=None,
        created_at=CREATED_AT,
        updated_by_id=None,
    )
    monkeypatch.setattr(followups_repo, "get_by_id", AsyncMock(return_value=followup))

    result = await leads_service.update_followup(
        lead.id, "f-1", schemas.FollowupUpdateRequest(status="completed"), PRIYA, DummySession()
    )

    assert result.status is FollowupStatus.COMPLETED
    assert followup.updated_by_id == "u1"


@pytest.mark.asyncio
async def test_list_leads_scopes_sales_users_to_own_leads(monkeypatch):
    list_stub = AsyncMock(return_value=[make_lead()])
    monkeypatch.setattr(leads_repo, "list_leads", list_stub)
    monkeypatch.setattr(users_repo, "names_by_id", AsyncMock(return_value={"u1": "Priya"}))

    results = await leads_service.list_leads(
        leads_repo.LeadFilters(owner_id="u2", stage=LeadStage.NEW), PRIYA, AsyncMock(), limit=50
    )

    scoped = list_stub.await_args.args[1]
    assert scoped.owner_id == "u1"
    assert scoped.stage is LeadStage.NEW
    assert list_stub.await_args.kwargs["limit"] == 50
    assert results[0].owner_name == "Priya"


@pytest.mark.asyncio
async def test_list_leads_admin_keeps_owner_filter(monkeypatch):
    list_stub = AsyncMock(return_value=[])
    monkeypatch.setattr(leads_repo, "list_leads", list_stub)
    monkeypatch.setattr(users_repo, "names_by_id", AsyncMock(return_value={}))

    await leads_service.list_leads(leads_repo.LeadFilters(owner_id="u2"), ADMIN, AsyncMock())

    assert list_stub.await_args.args[1].owner_id == "u2"
