# This project was developed with assistance from AI tools.
"""Service-layer tests for the offline sync pull."""

import pytest
from pms_db import ActivityUser, Beneficiary, FormResponse, Project, Service, ServiceDelivery
from pms_db.enums import EntityType
from pydantic import ValidationError

from pms_api.schemas.auth import ByEntityIds, BySelfStaffId, Unrestricted
from pms_api.schemas.sync import SyncPullRequest
from pms_api.services.sync import pull, serialize_row

from .factories import make_access, make_result, make_session

ADMIN = ("SuperAdmin",)


def _sql(session, call=0) -> str:
    return str(session.execute.await_args_list[call].args[0])


def _delivery(id, entity_id, entity_type, staff="fo-1"):
    return ServiceDelivery(
        id=id, service_id="svc-1", beneficiary_id="b-1",
        entity_id=entity_id, entity_type=entity_type, staff_user_id=staff,
    )


def test_serialize_row_camel_case():
    row = Project(id="P1", name="Shelter", category="relief")
    out = serialize_row(row)
    assert out["id"] == "P1"
    assert out["name"] == "Shelter"
    assert "createdAt" in out and "updatedAt" in out


def test_unknown_collection_rejected():
    with pytest.raises(ValidationError):
        SyncPullRequest(entities=["projects", "passwords"])


def test_request_accepts_camel_case():
    req = SyncPullRequest.model_validate({"entityId": "A1", "entityType": "activity"})
    assert req.entity_id == "A1"
    assert req.entity_type == EntityType.ACTIVITY


@pytest.mark.asyncio
async def test_admin_pull_decrypts_and_audits():
    session = make_session(
        make_result(scalars=[Project(id="P1", name="Shelter")]),
        make_result(scalars=[Beneficiary(id="b-1", pseudonym="BNF-0001")]),
    )
    access = make_access(Unrestricted(), roles=ADMIN, session=session)

    snapshot = await pull(session, access, SyncPullRequest(entities=["projects", "beneficiaries"]))

    assert snapshot["snapshotId"]
    assert snapshot["serverTime"] is not None
    assert snapshot["piiDecrypted"] is True
    assert snapshot["data"]["projects"][0]["id"] == "P1"
    assert snapshot["data"]["beneficiaries"][0]["pii"]["firstName"] is None
    assert session.add.call_args[0][0].action == "BENEFICIARY_PII_LIST_READ"
    session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_manager_pull_gets_ciphertext_only():
    """Sync applies the same admin-only decrypt rule as the beneficiary endpoints."""
    session = make_session(make_result(scalars=[Beneficiary(id="b-1", pseudonym="BNF-0001")]))
    access = make_access(ByEntityIds(ids=frozenset({"P1"})), session=session)

    snapshot = await pull(session, access, SyncPullRequest(entities=["beneficiaries"]))

    beneficiary = snapshot["data"]["beneficiaries"][0]
    assert "pii" not in beneficiary
    assert "piiEnc" in beneficiary
    assert snapshot["piiDecrypted"] is False
    session.add.assert_not_called()
    assert "beneficiary_assignments" in _sql(session)


@pytest.mark.asyncio
async def test_deliveries_filtered_through_hierarchy():
    rows = [
        _delivery("d-1", "P1", EntityType.PROJECT),
        _delivery("d-2", "S2", EntityType.SUBPROJECT),
    ]
    session = make_session(
        make_result(scalars=rows),
        make_result(rows=[("S2", "P2")]),
    )
    access = make_access(ByEntityIds(ids=frozenset({"P1"})), session=session)

    snapshot = await pull(session, access, SyncPullRequest(entities=["serviceDeliveries"]))

    assert [d["id"] for d in snapshot["data"]["serviceDeliveries"]] == ["d-1"]
    assert session.execute.await_count == 2


@pytest.mark.asyncio
async def test_entity_override_goes_into_sql():
    session = make_session(make_result(scalars=[]))
    access = make_access(ByEntityIds(ids=frozenset({"P1"})), session=session)
    request = SyncPullRequest(entities=["formResponses"], entity_id="A1", entity_type=EntityType.ACTIVITY)

    await pull(session, access, request)

    sql = _sql(session)
    assert "form_responses.entity_id = " in sql
    assert "form_responses.entity_type = " in sql
    assert session.execute.await_count == 1


@pytest.mark.asyncio
async def test_since_applies_unless_full():
    from datetime import UTC, datetime

    since = datetime(2026, 3, 1, tzinfo=UTC)
    session = make_session(make_result(scalars=[]), make_result(scalars=[]))
    access = make_access(Unrestricted(), roles=ADMIN, session=session)

    await pull(session, access, SyncPullRequest(entities=["projects"], since=since))
    await pull(session, access, SyncPullRequest(entities=["projects"], since=since, full=True))

    assert "projects.updated_at >= " in _sql(session, 0)
    assert "updated_at >= " not in _sql(session, 1)


@pytest.mark.asyncio
async def test_sub_project_manager_gets_no_project_rows():
    session = make_session(make_result(scalars=[]))
    access = make_access(ByEntityIds(ids=frozenset({"S1"}), level=EntityType.SUBPROJECT), session=session)

    await pull(session, access, SyncPullRequest(entities=["projects"]))

    assert "WHERE false" in _sql(session)


@pytest.mark.asyncio
async def test_field_operator_activity_users_are_own_rows():
    rows = [
        ActivityUser(id="au-1", activity_id="A1", user_id="fo-1"),
        ActivityUser(id="au-2", activity_id="A1", user_id="fo-2"),
    ]
    session = make_session(make_result(scalars=rows))
    access = make_access(BySelfStaffId(staff_user_id="fo-1"), roles=("Field Operator",), user_id="fo-1",
                         session=session)

    snapshot = await pull(session, access, SyncPullRequest(entities=["activityUsers"]))

    assert [r["id"] for r in snapshot["data"]["activityUsers"]] == ["au-1"]


@pytest.mark.asyncio
async def test_form_responses_self_filter_uses_submitter():
    session = make_session(make_result(scalars=[FormResponse(id="fr-1", submitted_by="fo-1")]))
    access = make_access(BySelfStaffId(staff_user_id="fo-1"), roles=("Field Operator",), user_id="fo-1",
                         session=session)

    snapshot = await pull(session, access, SyncPullRequest(entities=["formResponses"]))

    assert "form_responses.submitted_by = " in _sql(session)
    assert snapshot["data"]["formResponses"][0]["submittedBy"] == "fo-1"


@pytest.mark.asyncio
async def test_manager_catalog_limited_to_assigned_entities():
    session = make_session(
        make_result(scalars=[Service(id="svc-1", name="Food parcel")]),
        make_result(scalars=[]),
    )
    access = make_access(ByEntityIds(ids=frozenset({"P1"})), session=session)

    snapshot = await pull(session, access, SyncPullRequest(entities=["services", "formTemplates"]))

    services_sql = _sql(session, 0)
    assert "WHERE services.id IN" in services_sql
    assert "service_assignments.service_id" in services_sql
    assert "service_assignments.entity_type = " in services_sql
    templates_sql = _sql(session, 1)
    assert "WHERE form_templates.id IN" in templates_sql
    assert "form_entity_associations.form_template_id" in templates_sql
    assert [s["id"] for s in snapshot["data"]["services"]] == ["svc-1"]
    assert snapshot["data"]["formTemplates"] == []


@pytest.mark.asyncio
async def test_catalog_with_empty_scope_matches_nothing():
    session = make_session(make_result(scalars=[]))
    access = make_access(ByEntityIds(ids=frozenset()), session=session)

    await pull(session, access, SyncPullRequest(entities=["services"]))

    assert "false" in _sql(session)


@pytest.mark.asyncio
async def test_admin_catalog_unfiltered():
    session = make_session(make_result(scalars=[]), make_result(scalars=[]))
    access = make_access(Unrestricted(), roles=ADMIN, session=session)

    await pull(session, access, SyncPullRequest(entities=["services", "formTemplates"]))

    assert "WHERE" not in _sql(session, 0)
    assert "WHERE" not in _sql(session, 1)


@pytest.mark.asyncio
async def test_field_operator_user_links_are_own_rows():
    session = make_session(make_result(scalars=[]), make_result(scalars=[]))
    access = make_access(BySelfStaffId(staff_user_id="fo-1"), roles=("Field Operator",), user_id="fo-1",
                         session=session)

    await pull(session, access, SyncPullRequest(entities=["projectUsers", "subprojectUsers"]))

    assert "project_users.user_id = " in _sql(session, 0)
    assert "subproject_users.user_id = " in _sql(session, 1)
