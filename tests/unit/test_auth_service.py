import json

import httpx
import pytest

from nexus_crm.services.auth_service import AuthError, LocalAuthProvider, SupabaseAuthClient
from nexus_crm.services.local_storage import SESSION_KEY


@pytest.mark.asyncio
async def test_local_admin_maps_to_default_user(storage, fake_redis):
    auth = LocalAuthProvider(storage)

    session = await auth.sign_in("admin@nexus.com", "")

    assert session.user_id == "default-user"
    assert json.loads(fake_redis.store[SESSION_KEY])["email"] == "admin@nexus.com"


@pytest.mark.asyncio
async def test_local_other_email_gets_generated_id(storage):
    session = await LocalAuthProvider(storage).sign_in("someone@example.com", "secret")

    assert session.user_id.startswith("user_")
    assert session.user_id != "default-user"


@pytest.mark.asyncio
async def test_restore_and_sign_out(storage, fake_redis):
    await LocalAuthProvider(storage).sign_in("admin@nexus.com", "")

    auth = LocalAuthProvider(storage)
    restored = await auth.restore()
    assert restored.user_id == "default-user"

    await auth.sign_out()
    assert auth.current_session is None
    assert SESSION_KEY not in fake_redis.store


@pytest.mark.asyncio
async def test_listeners_notified(storage):
    seen = []

    async def listener(session):
        seen.append(session.user_id if session else None)

    auth = LocalAuthProvider(storage)
    auth.on_session_change(listener)
    await auth.sign_in("admin@nexus.com", "")
    await auth.sign_out()

    assert seen == ["default-user", None]


def _supabase(storage, handler) -> SupabaseAuthClient:
    return SupabaseAuthClient(
        storage, "https://proj.supabase.co", "anon-key", transport=httpx.MockTransport(handler)
    )


@pytest.mark.asyncio
async def test_supabase_sign_in(storage):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={
                "access_token": "at",
                "refresh_token": "rt",
                "user": {"id": "uuid-1", "email": "joao@example.com"},
            },
        )

    auth = _supabase(storage, handler)
    session = await auth.sign_in("joao@example.com", "pw")
    await auth.close()

    assert session.user_id == "uuid-1"
    assert session.access_token == "at"
    assert requests[0].url.path == "/auth/v1/token"
    assert requests[0].url.params["grant_type"] == "password"
    assert requests[0].headers["apikey"] == "anon-key"


@pytest.mark.asyncio
async def test_supabase_rejected_credentials(storage):
    def handler(request):
        return httpx.Response(400, json={"error_description": "Invalid login credentials"})

    auth = _supabase(storage, handler)
    with pytest.raises(AuthError, match="Invalid login credentials") as exc:
        await auth.sign_in("joao@example.com", "wrong")
    await auth.close()

    assert exc.value.status_code == 400
    assert auth.current_session is None


@pytest.mark.asyncio
async def test_supabase_sign_up_pending_confirmation(storage):
    def handler(request):
        return httpx.Response(200, json={"id": "uuid-2", "email": "new@example.com"})

    auth = _supabase(storage, handler)
    with pytest.raises(AuthError):
        await auth.sign_up("new@example.com", "pw")
    await auth.close()


@pytest.mark.asyncio
async def test_supabase_sign_out_drops_session_when_revoke_fails(storage):
    def handler(request):
        if request.url.path.endswith("/logout"):
            return httpx.Response(500, json={"msg": "boom"})
        return httpx.Response(200, json={"access_token": "at", "user": {"id": "uuid-1", "email": "a@b.c"}})

    auth = _supabase(storage, handler)
    await auth.sign_in("a@b.c", "pw")
    await auth.sign_out()
    await auth.close()

    assert auth.current_session is None
