# This project was developed with assistance from AI tools.
"""Tests for JWT authentication and the per-request access context."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import jwt
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pms_db import get_db
from pms_db.enums import EntityType

from pms_api.core.config import settings
from pms_api.middleware.auth import Access, CurrentUser
from pms_api.schemas.auth import ByEntityIds, Unrestricted

SECRET = "test-secret"


def _token(**claims) -> str:
    claims.setdefault("exp", datetime.now(UTC) + timedelta(minutes=5))
    return jwt.encode(claims, SECRET, algorithm="HS256")


@pytest.fixture
def auth_on(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_DISABLED", False)
    monkeypatch.setattr(settings, "JWT_SECRET", SECRET)
    monkeypatch.setattr(settings, "JWT_ALGORITHM", "HS256")


def _me_app() -> FastAPI:
    app = FastAPI()

    @app.get("/me")
    async def me(user: CurrentUser):
        return {"user_id": user.user_id, "roles": list(user.roles)}

    return app


# ---------------------------------------------------------------------------
# AUTH_DISABLED bypass
# ---------------------------------------------------------------------------


def test_auth_disabled_returns_dev_super_admin(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_DISABLED", True)
    resp = TestClient(_me_app()).get("/me")
    assert resp.status_code == 200
    assert resp.json()["roles"] == ["SuperAdmin"]


# ---------------------------------------------------------------------------
# Token validation
# ---------------------------------------------------------------------------


def test_missing_token_returns_401(auth_on):
    resp = TestClient(_me_app()).get("/me")
    assert resp.status_code == 401
    assert "Missing authentication token" in resp.json()["detail"]
    assert resp.headers["www-authenticate"] == "Bearer"


def test_valid_token_with_role_claim(auth_on):
    token = _token(sub="u-1", roles=[{"name": "Program Manager"}, "Field Operator"])
    resp = TestClient(_me_app()).get("/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    assert resp.json() == {"user_id": "u-1", "roles": ["Field Operator", "Program Manager"]}


def test_id_claim_used_when_sub_missing(auth_on):
    token = _token(id="u-2")
    resp = TestClient(_me_app()).get("/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.json()["user_id"] == "u-2"


def test_expired_token(auth_on):
    token = _token(sub="u-1", exp=datetime.now(UTC) - timedelta(minutes=1))
    resp = TestClient(_me_app()).get("/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token has expired"


def test_wrong_signature(auth_on):
    token = jwt.encode(
        {"sub": "u-1", "exp": datetime.now(UTC) + timedelta(minutes=5)}, "other-secret", algorithm="HS256"
    )
    resp = TestClient(_me_app()).get("/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token"


def test_token_without_principal(auth_on):
    resp = TestClient(_me_app()).get("/me", headers={"Authorization": f"Bearer {_token(email='x@y')}"})
    assert resp.status_code == 401


def test_token_without_exp_rejected(auth_on):
    token = jwt.encode({"sub": "u-1"}, SECRET, algorithm="HS256")
    resp = TestClient(_me_app()).get("/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Access context
# ---------------------------------------------------------------------------


def _access_app() -> FastAPI:
    app = FastAPI()

    @app.get("/access")
    async def access_view(access: Access):
        return {
            "roles": sorted(access.role_names),
            "scope": access.entity_filter.kind,
            "can_decrypt": access.can_decrypt,
        }

    app.dependency_overrides[get_db] = lambda: AsyncMock()
    return app


@patch("pms_api.middleware.auth.compute_scope", new_callable=AsyncMock)
@patch("pms_api.middleware.auth.resolve_roles", new_callable=AsyncMock)
def test_access_context_for_admin(mock_roles, mock_scope, monkeypatch):
    monkeypatch.setattr(settings, "AUTH_DISABLED", True)
    mock_roles.return_value = frozenset({"SuperAdmin"})
    mock_scope.return_value = Unrestricted()

    resp = TestClient(_access_app()).get("/access")

    assert resp.json() == {"roles": ["SuperAdmin"], "scope": "unrestricted", "can_decrypt": True}
    assert mock_roles.await_args.args[2] == ("SuperAdmin",)


@patch("pms_api.middleware.auth.compute_scope", new_callable=AsyncMock)
@patch("pms_api.middleware.auth.resolve_roles", new_callable=AsyncMock)
def test_access_context_for_manager(mock_roles, mock_scope, auth_on):
    mock_roles.return_value = frozenset({"Program Manager"})
    mock_scope.return_value = ByEntityIds(ids=frozenset({"P1"}), level=EntityType.PROJECT)
    token = _token(sub="pm-1")

    resp = TestClient(_access_app()).get("/access", headers={"Authorization": f"Bearer {token}"})

    assert resp.json() == {"roles": ["Program Manager"], "scope": "by_entity_ids", "can_decrypt": False}
    assert mock_scope.await_args.args[1] == "pm-1"
