from tests.conftest import API, auth_headers


async def test_register_login_and_me(client):
    response = await client.post(
        f"{API}/auth/register",
        json={"email": "alice@example.com", "password": "s3cret-pass", "full_name": "Alice"},
    )
    assert response.status_code == 201, response.text
    assert response.json()["email"] == "alice@example.com"

    response = await client.post(f"{API}/auth/login", json={"email": "alice@example.com", "password": "s3cret-pass"})
    assert response.status_code == 200
    token = response.json()["access_token"]

    response = await client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["full_name"] == "Alice"


async def test_duplicate_registration_conflicts(client, make_user):
    await make_user(email="bob@example.com")
    response = await client.post(f"{API}/auth/register", json={"email": "bob@example.com", "password": "another-pass"})
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "CONFLICT"


async def test_wrong_password_is_unauthorized(client, make_user):
    await make_user(email="carol@example.com")
    response = await client.post(f"{API}/auth/login", json={"email": "carol@example.com", "password": "nope"})
    assert response.status_code == 401


async def test_me_requires_token(client):
    response = await client.get(f"{API}/auth/me")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


async def test_garbage_token_rejected(client):
    response = await client.get(f"{API}/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


async def test_update_profile(client, make_user):
    user = await make_user()
    response = await client.patch(f"{API}/auth/me", json={"language": "zh-TW"}, headers=auth_headers(user))
    assert response.status_code == 200
    assert response.json()["language"] == "zh-TW"
