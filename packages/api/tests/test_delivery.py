# This project was developed with assistance from AI tools.
"""Service-layer tests for scoped delivery metrics."""

import pytest
from pms_db.enums import EntityType

from pms_api.schemas.auth import ByEntityIds, BySelfStaffId, Unrestricted
from pms_api.services.delivery import count_deliveries, deliveries_grouped
from pms_api.services.scope import RequestFilters

from .factories import make_access, make_result, make_session


def _stmt(session):
    return session.execute.await_args.args[0]


@pytest.mark.asyncio
async def test_count_unrestricted():
    session = make_session(make_result(scalar=42))
    total = await count_deliveries(session, make_access(Unrestricted(), roles=("SuperAdmin",)), RequestFilters())
    assert total == 42
    assert "WHERE true" in str(_stmt(session))


@pytest.mark.asyncio
async def test_count_scoped_in_sql():
    """Aggregates are scoped in the database, not after the fact."""
    session = make_session(make_result(scalar=3))
    access = make_access(ByEntityIds(ids=frozenset({"P1"}), level=EntityType.PROJECT))

    assert await count_deliveries(session, access, RequestFilters()) == 3

    sql = str(_stmt(session))
    assert "count(service_deliveries.id)" in sql
    assert "subprojects.project_id IN" in sql
    assert session.execute.await_count == 1


@pytest.mark.asyncio
async def test_count_none_is_zero():
    session = make_session(make_result(scalar=None))
    assert await count_deliveries(session, make_access(ByEntityIds()), RequestFilters()) == 0


@pytest.mark.asyncio
async def test_grouped_by_user_for_field_operator():
    session = make_session(make_result(rows=[("fo-1", 5)]))
    access = make_access(BySelfStaffId(staff_user_id="fo-1"), roles=("Field Operator",), user_id="fo-1")

    items = await deliveries_grouped(session, access, RequestFilters(), "staff_user_id")

    assert items == [{"staffUserId": "fo-1", "count": 5}]
    sql = str(_stmt(session))
    assert "GROUP BY service_deliveries.staff_user_id" in sql
    assert "DESC" in sql
    assert "service_deliveries.staff_user_id = " in sql


@pytest.mark.asyncio
async def test_grouped_by_service_with_filters():
    session = make_session(make_result(rows=[("svc-1", 7), ("svc-2", 2)]))
    access = make_access(Unrestricted(), roles=("SuperAdmin",))

    items = await deliveries_grouped(
        session, access, RequestFilters(beneficiary_id="b-1"), "service_id"
    )

    assert items == [{"serviceId": "svc-1", "count": 7}, {"serviceId": "svc-2", "count": 2}]
    assert "service_deliveries.beneficiary_id = " in str(_stmt(session))


@pytest.mark.asyncio
async def test_grouped_by_beneficiary_key():
    session = make_session(make_result(rows=[("b-1", 1)]))
    items = await deliveries_grouped(
        session, make_access(Unrestricted(), roles=("SuperAdmin",)), RequestFilters(), "beneficiary_id"
    )
    assert items == [{"beneficiaryId": "b-1", "count": 1}]
