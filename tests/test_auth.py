import pytest

from app.main import app
from app.core.auth.dependencies import get_current_user
from app.core.auth.service import AuthService
from app.shared.database.models import User
from tests.factories import STORE_ID

BASE = "/api/v1/auth"


@pytest.fixture
def real_auth_client(client):
    app.dependency_overrides.pop(get_current_user, None)
    return client


@pytest.fixture
def repositor(db_session, store):
    user = User(
        email="repositor@loja.com",
        password_hash=AuthService.get_password_hash("repositor123"),
        first_name="João",
        last_name="Repositor",
        role="repositor",
        store_id=STORE_ID,
        is_active=True
    )
    db_session.add(user)
    db_session.commit()
    return user


class TestLogin:
    def test_login_json(self, real_auth_client, repositor):
        response = real_auth_client.post(
            f"{BASE}/login-json", json={"email": "repositor@loja.com", "password": "repositor123"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["user"]["role"] == "repositor"
        assert data["user"]["store_name"] == "Loja Centro"

        payload = AuthService.verify_token(data["access_token"])
        assert payload["user_id"] == repositor.id

    def test_login_form(self, real_auth_client, repositor):
        response = real_auth_client.post(
            f"{BASE}/login", data={"username": "repositor@loja.com", "password": "repositor123"}
        )

        assert response.status_code == 200

    def test_wrong_password(self, real_auth_client, repositor):
        response = real_auth_client.post(
            f"{BASE}/login-json", json={"email": "repositor@loja.com", "password": "errada123"}
        )

        assert response.status_code == 401


class TestCurrentUser:
    def test_me_with_token(self, real_auth_client, repositor):
        token = AuthService.create_access_token({"user_id": repositor.id})

        response = real_auth_client.get(f"{BASE}/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json()["email"] == "repositor@loja.com"

    def test_invalid_token(self, real_auth_client, repositor):
        response = real_auth_client.get(f"{BASE}/me", headers={"Authorization": "Bearer invalido"})

        assert response.status_code == 401

    def test_protected_endpoint_requires_token(self, real_auth_client, store):
        response = real_auth_client.post("/api/v1/volumetria/leituras", json={
            "store_id": STORE_ID, "slot_id": "SLOT-A", "current_quantity": 3
        })

        assert response.status_code in (401, 403)

    def test_token_requires_user_id(self):
        with pytest.raises(ValueError):
            AuthService.create_access_token({"email": "x@loja.com"})
