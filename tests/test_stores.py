import asyncio
import json

import httpx
import pytest

from lonelyserver.config import Settings
from lonelyserver.policy import ConfigError, ConfigStoreError
from lonelyserver.stores import YamlConfigStore, build_config_store
from lonelyserver.supabase import SupabaseConfigStore


def _supabase_settings() -> Settings:
    return Settings(supabase_url="https://example.supabase.co", supabase_service_role_key="secret", config_key="lonely")


def _mocked_store(handler) -> SupabaseConfigStore:
    store = SupabaseConfigStore(_supabase_settings())
    store._client = httpx.AsyncClient(base_url="https://example.supabase.co", transport=httpx.MockTransport(handler))
    return store


def test_yaml_store_missing_file_reads_as_absent(tmp_path):
    store = YamlConfigStore(tmp_path / "config.yml")
    assert asyncio.run(store.fetch_document()) is None


def test_yaml_store_roundtrip_creates_parent_dir(tmp_path):
    store = YamlConfigStore(tmp_path / "plugins" / "config.yml")
    document = {"styleTag": "GOLD", "thresholdHours": 4, "messageTemplates": ["hi $CURPLAYER"]}
    asyncio.run(store.save_document(document))
    assert asyncio.run(store.fetch_document()) == document


def test_yaml_store_empty_file_is_empty_document(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("", encoding="utf-8")
    assert asyncio.run(YamlConfigStore(path).fetch_document()) == {}


def test_yaml_store_bad_markup_raises_config_error(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("messageTemplates: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        asyncio.run(YamlConfigStore(path).fetch_document())


def test_yaml_store_write_failure_raises_store_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    store = YamlConfigStore(blocker / "config.yml")
    with pytest.raises(ConfigStoreError):
        asyncio.run(store.save_document({"thresholdHours": 1}))


def test_build_config_store_prefers_supabase(tmp_path):
    assert isinstance(build_config_store(_supabase_settings()), SupabaseConfigStore)
    local = build_config_store(Settings(config_path=str(tmp_path / "c.yml")))
    assert isinstance(local, YamlConfigStore)


def test_supabase_store_in_memory_fallback():
    store = SupabaseConfigStore(Settings())

    async def scenario():
        assert await store.fetch_document() is None
        await store.save_document({"thresholdHours": 2, "messageTemplates": ["a"]})
        document = await store.fetch_document()
        document["messageTemplates"].append("mutated")
        assert await store.fetch_document() == {"thresholdHours": 2, "messageTemplates": ["a"]}

    asyncio.run(scenario())


def test_supabase_store_fetch_decodes_payload():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"payload": json.dumps({"styleTag": "RED"})}])

    store = _mocked_store(handler)
    assert asyncio.run(store.fetch_document()) == {"styleTag": "RED"}
    assert seen[0].url.path == "/rest/v1/plugin_configs"
    assert seen[0].url.params["name"] == "eq.lonely"


def test_supabase_store_missing_row_is_absent():
    store = _mocked_store(lambda request: httpx.Response(200, json=[]))
    assert asyncio.run(store.fetch_document()) is None


def test_supabase_store_http_error_raises_store_error():
    store = _mocked_store(lambda request: httpx.Response(503))
    with pytest.raises(ConfigStoreError):
        asyncio.run(store.fetch_document())


def test_supabase_store_save_upserts_document():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201)

    store = _mocked_store(handler)
    asyncio.run(store.save_document({"thresholdHours": 6}))
    request = seen[0]
    assert request.method == "POST"
    assert request.headers["Prefer"] == "resolution=merge-duplicates"
    assert json.loads(request.content) == {"name": "lonely", "payload": {"thresholdHours": 6}}


def test_yaml_store_undecodable_bytes_raise_config_error(tmp_path):
    path = tmp_path / "config.yml"
    path.write_bytes(b"styleTag: GOLD\nmessageTemplates: ['\xff\xfe']\n")
    with pytest.raises(ConfigError):
        asyncio.run(YamlConfigStore(path).fetch_document())


@pytest.mark.parametrize("body", [{"payload": {"styleTag": "RED"}}, ["not a row"], [3]])
def test_supabase_store_unexpected_response_shape_raises_store_error(body):
    store = _mocked_store(lambda request: httpx.Response(200, json=body))
    with pytest.raises(ConfigStoreError):
        asyncio.run(store.fetch_document())


def test_supabase_store_save_http_error_raises_store_error():
    store = _mocked_store(lambda request: httpx.Response(401, json={"message": "bad key"}))
    with pytest.raises(ConfigStoreError):
        asyncio.run(store.save_document({"thresholdHours": 6}))
