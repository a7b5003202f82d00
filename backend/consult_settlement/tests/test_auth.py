"""
Tests for bearer token authentication of the endpoints.
"""
from datetime import timedelta
from conftest import ADMIN_EMAIL, ADMIN_ID, bearer
from consult_settlement.core.errors import Code
from consult_settlement.core.security import ROLE_ADMIN, create_access_token, decode_access_token


def test_health(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_token_round_trip():
    token = create_access_token({"sub": "1", "role": ROLE_ADMIN, "email": ADMIN_EMAIL})
    payload = decode_access_token(token)
    assert payload["sub"] == "1"
    assert payload["role"] == ROLE_ADMIN


def test_expired_token_is_rejected():
    token = create_access_token({"sub": "1"}, expires_delta=timedelta(seconds=-1))
    assert decode_access_token(token) is None


def test_missing_token(client):
    response = client.get("/api/admin/settlement", params={"consultation_id": 1})
    assert response.status_code == 401
    assert response.json() == {"code": Code.UNAUTHORIZED}


def test_invalid_token(client):
    response = client.get(
        "/api/admin/settlement",
        params={"consultation_id": 1},
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert response.status_code == 401
    assert response.json() == {"code": Code.UNAUTHORIZED}


def test_token_without_claims(client):
    token = create_access_token({"sub": "1"})
    response = client.get(
        "/api/admin/settlement",
        params={"consultation_id": 1},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 401


def test_user_cannot_use_admin_endpoints(client, user_headers):
    response = client.post("/api/admin/make-payment-req", json={"settlement_id": 1}, headers=user_headers)
    assert response.status_code == 403
    assert response.json() == {"code": Code.ACCESS_DENIED}


def test_admin_cannot_rate(client):
    response = client.post(
        "/api/rating/user-rating",
        json={"consultation_id": 1, "rating": 5},
        headers=bearer(ADMIN_ID, ROLE_ADMIN, ADMIN_EMAIL),
    )
    assert response.status_code == 403
    assert response.json() == {"code": Code.ACCESS_DENIED}
