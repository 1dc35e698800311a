from datetime import datetime, timedelta

from barbershop import config
from barbershop.models import RefreshToken
from barbershop.security_utils import _encode, hash_token
from barbershop.token_blacklist import cleanup_expired_tokens, is_refresh_token_active, store_refresh_token

from conftest import PASSWORD, auth_headers

REGISTRATION = {
    "dni": "40123456",
    "nombre": "María",
    "apellido": "González",
    "telefono": "+54 11 1234-5678",
    "email": "Maria@Example.com",
    "contraseña": PASSWORD,
}


def _login(client, email, password=PASSWORD):
    return client.post("/auth/login", json={"email": email, "contrasena": password})


def test_register_creates_client_with_inicial_tier(client, categories):
    response = client.post("/auth/register", json=REGISTRATION)

    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "maria@example.com"
    assert body["tipoUsuario"] == "client"
    assert body["cuil"] is None

    tokens = _login(client, "maria@example.com").json()
    profile = client.get("/auth/me", headers={"Authorization": f"Bearer {tokens['accessToken']}"})
    assert profile.json()["categoria"]["nombreCategoria"] == "Inicial"


def test_register_duplicate_email(client, categories):
    client.post("/auth/register", json=REGISTRATION)

    response = client.post("/auth/register", json=dict(REGISTRATION, dni="40123457"))

    assert response.status_code == 409


def test_register_rejects_weak_password(client):
    response = client.post("/auth/register", json=dict(REGISTRATION, contraseña="corta"))

    assert response.status_code == 422


def test_register_rejects_bad_dni(client):
    response = client.post("/auth/register", json=dict(REGISTRATION, dni="1234"))

    assert response.status_code == 422


def test_login_wrong_password(client, factory):
    user = factory.client()

    response = _login(client, user.email, "Incorrecta#2024")

    assert response.status_code == 401


def test_login_inactive_user(client, factory):
    user = factory.client(is_active=False)

    response = _login(client, user.email)

    assert response.status_code == 401


def test_refresh_rotates_tokens(client, factory):
    user = factory.client()
    tokens = _login(client, user.email).json()

    rotated = client.post("/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    replayed = client.post("/auth/refresh", json={"refreshToken": tokens["refreshToken"]})

    assert rotated.status_code == 200
    assert rotated.json()["refreshToken"] != tokens["refreshToken"]
    assert replayed.status_code == 401


def test_access_token_is_not_a_refresh_token(client, factory):
    user = factory.client()
    tokens = _login(client, user.email).json()

    response = client.post("/auth/refresh", json={"refreshToken": tokens["accessToken"]})

    assert response.status_code == 401


def test_logout_revokes_refresh_token(client, factory):
    user = factory.client()
    tokens = _login(client, user.email).json()

    logout = client.post("/auth/logout", json={"refreshToken": tokens["refreshToken"]})
    refresh = client.post("/auth/refresh", json={"refreshToken": tokens["refreshToken"]})

    assert logout.status_code == 200
    assert refresh.status_code == 401


def test_expired_access_token(client, factory):
    user = factory.client()
    token = _encode(
        {"userId": user.id, "userType": "client", "version": config.TOKEN_VERSION, "type": "access"},
        config.JWT_ACCESS_SECRET,
        timedelta(minutes=-1),
    )

    response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.headers["X-Token-Expired"] == "true"
    assert response.json()["detail"]["code"] == "TOKEN_EXPIRED"


def test_tampered_token(client, factory):
    headers = auth_headers(factory.client())
    headers["Authorization"] += "x"

    response = client.get("/auth/me", headers=headers)

    assert response.status_code == 401


def test_missing_token(client):
    assert client.get("/auth/me").status_code == 401


def test_change_password_closes_sessions(client, factory):
    user = factory.client()
    tokens = _login(client, user.email).json()

    response = client.post(
        "/auth/change-password",
        json={"contrasenaActual": PASSWORD, "contrasenaNueva": "OtraClave#2025"},
        headers=auth_headers(user),
    )

    assert response.status_code == 200
    assert client.post("/auth/refresh", json={"refreshToken": tokens["refreshToken"]}).status_code == 401
    assert _login(client, user.email).status_code == 401
    assert _login(client, user.email, "OtraClave#2025").status_code == 200


def test_change_password_requires_current_password(client, factory):
    user = factory.client()

    response = client.post(
        "/auth/change-password",
        json={"contrasenaActual": "Incorrecta#2024", "contrasenaNueva": "OtraClave#2025"},
        headers=auth_headers(user),
    )

    assert response.status_code == 401


def test_deactivated_user_token_stops_working(client, factory):
    user = factory.client()
    admin = factory.admin()

    deleted = client.delete(f"/users/{user.id}", headers=auth_headers(admin))
    me = client.get("/auth/me", headers=auth_headers(user))

    assert deleted.status_code == 200
    assert deleted.json()["activo"] is False
    assert me.status_code == 401


def test_admin_cannot_deactivate_self(client, factory):
    admin = factory.admin()

    response = client.delete(f"/users/{admin.id}", headers=auth_headers(admin))

    assert response.status_code == 400


def test_update_user_is_self_or_admin(client, factory):
    user = factory.client()
    other = factory.client()

    own = client.put(f"/users/{user.id}", json={"telefono": "11 2222-3333"}, headers=auth_headers(user))
    foreign = client.put(f"/users/{other.id}", json={"telefono": "11 2222-3333"}, headers=auth_headers(user))
    by_admin = client.put(
        f"/users/{other.id}", json={"telefono": "11 4444-5555"}, headers=auth_headers(factory.admin())
    )

    assert own.status_code == 200
    assert own.json()["telefono"] == "11 2222-3333"
    assert foreign.status_code == 403
    assert by_admin.status_code == 200


def test_refresh_tokens_are_stored_hashed(client, db, factory):
    user = factory.client()
    tokens = _login(client, user.email).json()

    record = db.query(RefreshToken).filter(RefreshToken.user_id == user.id).one()

    assert record.token_hash == hash_token(tokens["refreshToken"])
    assert not hasattr(record, "token")


def test_cleanup_expired_tokens(db, factory):
    user = factory.client()
    store_refresh_token(db, user.id, "expired-token", datetime.utcnow() - timedelta(days=1))
    store_refresh_token(db, user.id, "live-token", datetime.utcnow() + timedelta(days=1))

    assert cleanup_expired_tokens(db) == 1
    assert is_refresh_token_active(db, "live-token")
    assert db.query(RefreshToken).count() == 1
