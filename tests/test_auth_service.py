import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from services.auth_service import (
    EMAIL_EXISTS, GENERIC_ERROR, INVALID_CREDENTIALS, INVALID_EMAIL, NETWORK_ERROR, AuthError, AuthService,
    error_code,
)
from services.project_service import ProjectService
from services.user_data_service import UserDataService

API_KEY = "test-key"

def provider_error(message: str) -> web.Response:
    return web.json_response({'error': {'code': 400, 'message': message}}, status=400)

@pytest.fixture
async def provider():
    """Минимальный REST-провайдер аккаунтов"""
    accounts = {}

    async def handle(request):
        if request.query.get('key') != API_KEY:
            return provider_error("API_KEY_INVALID")

        body = await request.json()
        email, password = body['email'], body['password']
        action = request.match_info['action']

        if action == "accounts:signUp":
            if email in accounts:
                return provider_error("EMAIL_EXISTS")
            if password == "password":
                return provider_error("WEAK_PASSWORD : Password should be stronger")
            accounts[email] = password
        elif action == "accounts:signInWithPassword":
            if accounts.get(email) != password:
                return provider_error("INVALID_LOGIN_CREDENTIALS")
        else:
            return web.Response(status=404)

        return web.json_response({
            'localId': f"uid_{email.split('@')[0]}_000000000000",
            'email': email,
            'idToken': "id-token",
            'refreshToken': "refresh-token",
            'expiresIn': "3600",
        })

    app = web.Application()
    app.router.add_post("/{action}", handle)

    server = TestServer(app)
    await server.start_server()
    yield f"http://{server.host}:{server.port}"
    await server.close()

@pytest.fixture
async def auth(provider, store):
    service = AuthService(
        API_KEY,
        base_url=provider,
        user_data=UserDataService(store),
        projects=ProjectService(store)
    )
    yield service
    await service.close()

def test_error_code():
    assert error_code({'error': {'message': "WEAK_PASSWORD : too short"}}) == "WEAK_PASSWORD"
    assert error_code({'error': {'message': "EMAIL_EXISTS"}}) == "EMAIL_EXISTS"
    assert error_code({}) == ""

async def test_sign_up_and_sign_in(auth):
    created = await auth.sign_up("alice@example.com", "secret1")

    assert created.user_id == "uid_alice_000000000000"
    assert created.id_token == "id-token"

    signed_in = await auth.sign_in("alice@example.com", "secret1")
    assert signed_in.user_id == created.user_id
    assert signed_in.refresh_token == "refresh-token"
    assert signed_in.expires_at >= created.expires_at

async def test_sign_up_error_messages(auth):
    await auth.sign_up("alice@example.com", "secret1")

    with pytest.raises(AuthError) as exists:
        await auth.sign_up("alice@example.com", "secret2")
    assert exists.value.message == EMAIL_EXISTS

    with pytest.raises(AuthError) as weak:
        await auth.sign_up("bob@example.com", "password")
    assert weak.value.code == "WEAK_PASSWORD"
    assert "6" in weak.value.message

async def test_sign_up_validates_locally(auth):
    with pytest.raises(AuthError) as bad_email:
        await auth.sign_up("not-an-email", "secret1")
    assert bad_email.value.message == INVALID_EMAIL

    with pytest.raises(AuthError) as short:
        await auth.sign_up("bob@example.com", "123")
    assert short.value.code == "WEAK_PASSWORD"

async def test_sign_in_hides_failure_reason(auth):
    await auth.sign_up("alice@example.com", "secret1")

    for email, password in (("alice@example.com", "wrong"), ("nobody@example.com", "secret1")):
        with pytest.raises(AuthError) as failed:
            await auth.sign_in(email, password)
        assert failed.value.message == INVALID_CREDENTIALS

async def test_missing_api_key(provider):
    service = AuthService(None, base_url=provider)

    with pytest.raises(AuthError) as failed:
        await service.sign_up("alice@example.com", "secret1")

    assert failed.value.message == GENERIC_ERROR
    assert failed.value.code == "MISSING_API_KEY"
    await service.close()

async def test_network_error_is_reported():
    service = AuthService(API_KEY, base_url="http://127.0.0.1:1", timeout=2)

    with pytest.raises(AuthError) as failed:
        await service.sign_in("alice@example.com", "secret1")

    assert failed.value.message == NETWORK_ERROR
    await service.close()

async def test_create_account_writes_user_and_default_project(auth, store):
    result = await auth.create_account("alice@example.com", "secret1", "Alice", username="Alice")

    user = await store.get(f"users/{result.user_id}")
    assert user.get('fullName') == "Alice"
    assert user.get('username') == "alice"
    assert user.get('onboardingCompleted') is True
    assert (await store.get(f"users/{result.user_id}/projects/unset")).exists

@pytest.fixture
async def broken_gateway():
    async def bad_gateway(request):
        return web.Response(status=502, text="<html>Bad Gateway</html>", content_type="text/html")

    app = web.Application()
    app.router.add_post("/{action}", bad_gateway)

    server = TestServer(app)
    await server.start_server()
    yield f"http://{server.host}:{server.port}"
    await server.close()

async def test_non_json_error_body_gives_generic_message(broken_gateway, store):
    service = AuthService(API_KEY, base_url=broken_gateway, user_data=UserDataService(store))

    for call in (service.sign_in("alice@example.com", "secret1"),
                 service.sign_up("alice@example.com", "secret1"),
                 service.create_account("alice@example.com", "secret1", "Alice")):
        with pytest.raises(AuthError) as failed:
            await call
        assert failed.value.message == GENERIC_ERROR
        assert failed.value.code == "INVALID_RESPONSE"

    assert store.paths() == []
    await service.close()
