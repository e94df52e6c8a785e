"""
Tests for item stores.

Tests cover:
- MemoryItemStore list/create/update/delete and error statuses
- RemoteItemStore against an in-process vault API (aiohttp test server)
- Error mapping: HTTP status and API error code to StoreError
- SessionVault over the REST store, end to end
"""
import uuid

import aiohttp
import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from navigator_vault.config import VaultConfig
from navigator_vault.exceptions import StoreError
from navigator_vault.records import VaultRecord
from navigator_vault.store import MemoryItemStore, RemoteItemStore, StoredItem
from navigator_vault.vault import SessionVault

TOKEN = "session-token"


def make_app() -> web.Application:
    """Minimal vault API keeping items in memory."""
    items: dict[str, dict] = {}

    def authorized(request: web.Request) -> bool:
        return request.cookies.get("token") == TOKEN

    async def me(request):
        if not authorized(request):
            return web.json_response({"error": "unauthenticated"}, status=401)
        return web.json_response({"email": "alice@example.com", "encryptedVMK": "s:i:c"})

    async def list_items(request):
        return web.json_response(list(items.values()))

    async def create_item(request):
        body = await request.json()
        if not body.get("encryptedBlob"):
            return web.json_response({"error": "missing_encryptedBlob"}, status=400)
        item_id = uuid.uuid4().hex
        items[item_id] = {
            "id": item_id,
            "encryptedBlob": body["encryptedBlob"],
            "createdAt": "2024-05-01T12:00:00.000Z",
            "updatedAt": "2024-05-01T12:00:00.000Z",
        }
        return web.json_response(items[item_id], status=201)

    async def update_item(request):
        item_id = request.match_info["item_id"]
        if item_id not in items:
            return web.json_response({"error": "not_found"}, status=404)
        body = await request.json()
        items[item_id]["encryptedBlob"] = body["encryptedBlob"]
        items[item_id]["updatedAt"] = "2024-05-02T12:00:00.000Z"
        return web.json_response(items[item_id])

    async def delete_item(request):
        if items.pop(request.match_info["item_id"], None) is None:
            return web.json_response({"error": "not_found"}, status=404)
        return web.Response(status=204)

    async def crash(request):
        return web.Response(status=500, text="boom")

    app = web.Application()
    app.router.add_get("/api/auth/me", me)
    app.router.add_get("/api/vault", list_items)
    app.router.add_post("/api/vault", create_item)
    app.router.add_put("/api/vault/{item_id}", update_item)
    app.router.add_delete("/api/vault/{item_id}", delete_item)
    app.router.add_get("/api/crash", crash)
    return app


@pytest_asyncio.fixture
async def server():
    server = TestServer(make_app())
    await server.start_server()
    yield server
    await server.close()


@pytest_asyncio.fixture
async def remote(server):
    store = RemoteItemStore(str(server.make_url("/")))
    yield store
    await store.close()


class TestMemoryItemStore:
    """In-process store."""

    @pytest.mark.asyncio
    async def test_create_assigns_id_and_timestamps(self, store):
        item = await store.create_item("iv:ct")
        assert item.id
        assert item.created_at is not None
        assert item.created_at == item.updated_at

    @pytest.mark.asyncio
    async def test_list_preserves_insertion_order(self, store):
        first = await store.create_item("a:a")
        second = await store.create_item("b:b")
        assert [i.id for i in await store.list_items()] == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_returned_items_are_copies(self, store):
        item = await store.create_item("a:a")
        item.encrypted_blob = "changed"
        [stored] = await store.list_items()
        assert stored.encrypted_blob == "a:a"

    @pytest.mark.asyncio
    async def test_update(self, store):
        item = await store.create_item("a:a")
        updated = await store.update_item(item.id, "b:b")
        assert updated.encrypted_blob == "b:b"
        assert updated.updated_at >= item.updated_at

    @pytest.mark.asyncio
    async def test_update_missing(self, store):
        with pytest.raises(StoreError) as exc:
            await store.update_item("nope", "b:b")
        assert exc.value.status == 404

    @pytest.mark.asyncio
    async def test_delete(self, store):
        item = await store.create_item("a:a")
        await store.delete_item(item.id)
        assert len(store) == 0
        with pytest.raises(StoreError):
            await store.delete_item(item.id)

    @pytest.mark.asyncio
    async def test_empty_blob_rejected(self, store):
        with pytest.raises(StoreError) as exc:
            await store.create_item("")
        assert exc.value.status == 400

    @pytest.mark.asyncio
    async def test_encrypted_vmk(self):
        assert await MemoryItemStore().get_encrypted_vmk() is None
        assert await MemoryItemStore(encrypted_vmk="s:i:c").get_encrypted_vmk() == "s:i:c"

    def test_stored_item_wire_names(self):
        item = StoredItem.model_validate({"id": "x", "encryptedBlob": "iv:ct"})
        assert item.to_wire() == {
            "id": "x", "encryptedBlob": "iv:ct", "createdAt": None, "updatedAt": None,
        }


class TestRemoteItemStore:
    """REST client against a live in-process API."""

    @pytest.mark.asyncio
    async def test_create_and_list(self, remote):
        created = await remote.create_item("iv:ct")
        assert created.encrypted_blob == "iv:ct"
        assert created.created_at.year == 2024
        items = await remote.list_items()
        assert [i.id for i in items] == [created.id]

    @pytest.mark.asyncio
    async def test_update_and_delete(self, remote):
        created = await remote.create_item("iv:ct")
        updated = await remote.update_item(created.id, "iv2:ct2")
        assert updated.encrypted_blob == "iv2:ct2"
        await remote.delete_item(created.id)
        assert await remote.list_items() == []

    @pytest.mark.asyncio
    async def test_api_error_code_is_kept(self, remote):
        with pytest.raises(StoreError) as exc:
            await remote.delete_item("missing")
        assert exc.value.status == 404
        assert str(exc.value) == "not_found"

    @pytest.mark.asyncio
    async def test_non_json_error_body(self, remote):
        with pytest.raises(StoreError) as exc:
            await remote._request("GET", "/api/crash")
        assert exc.value.status == 500
        assert str(exc.value) == "HTTP 500"

    @pytest.mark.asyncio
    async def test_me_requires_cookie(self, remote):
        with pytest.raises(StoreError) as exc:
            await remote.get_encrypted_vmk()
        assert exc.value.status == 401

    @pytest.mark.asyncio
    async def test_me_with_session_cookie(self, server):
        async with aiohttp.ClientSession(headers={"Cookie": f"token={TOKEN}"}) as client:
            store = RemoteItemStore(str(server.make_url("/")), session=client)
            assert await store.get_encrypted_vmk() == "s:i:c"
            await store.close()
            assert not client.closed

    @pytest.mark.asyncio
    async def test_unreachable_api(self):
        config = VaultConfig(api_url="http://127.0.0.1:1", request_timeout=2)
        async with RemoteItemStore(config=config) as store:
            with pytest.raises(StoreError) as exc:
                await store.list_items()
        assert exc.value.status is None

    @pytest.mark.asyncio
    async def test_session_vault_over_rest(self, remote, session):
        vault = SessionVault(session, remote)
        await vault.add(VaultRecord(title="GitHub", username="alice", password="pw"))
        [stored] = await remote.list_items()
        assert "alice" not in stored.encrypted_blob
        records = await SessionVault(session, remote).load()
        assert records[0].username == "alice"
