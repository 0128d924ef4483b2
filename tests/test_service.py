import pytest

from rebac_server.config import Settings, StoreBackend
from rebac_server.exceptions import ConfigError
from rebac_server.rebac import InMemoryTupleStore, SqlTupleStore, UsersetRules
from rebac_server.services import AccessService, create_store
from tests.conftest import USERSETS


@pytest.fixture
def service():
    return AccessService(InMemoryTupleStore(), UsersetRules.load(USERSETS))


def _write(service, *lines):
    import asyncio

    return asyncio.run(service.importer.import_lines(lines))


def test_check_access_is_synchronous(service):
    assert service.check_access(2, 1, "doc", "viewer") is False
    _write(service, "doc:1#owner@2")
    assert service.check_access(2, 1, "doc", "viewer") is True


def test_reference_scenario(service):
    _write(service, "group:5#member@2", "doc:1#viewer@group:5#member")
    assert service.check_access(2, 1, "doc", "viewer") is True
    assert service.check_access(2, 1, "doc", "owner") is False


def test_reload_rules_swaps_whole_table(service):
    _write(service, "doc:1#commenter@2")
    assert service.check_access(2, 1, "doc", "viewer") is False
    old_version = service.rules.version

    rules = service.reload_rules({"doc": {"viewer": "commenter"}})
    assert service.rules is rules
    assert rules.version > old_version
    assert service.check_access(2, 1, "doc", "viewer") is True
    assert service.rules.lookup("group", "member") == frozenset()


def test_failed_reload_keeps_previous_table(service):
    before = service.rules
    with pytest.raises(ConfigError):
        service.reload_rules({"doc": {"viewer": 5}})
    assert service.rules is before


def test_reload_rules_file(service, tmp_path):
    path = tmp_path / "usersets.yaml"
    path.write_text("doc:\n  viewer: commenter\n", encoding="utf-8")
    service.reload_rules_file(path)
    assert service.rules.lookup("doc", "viewer") == {"commenter"}


async def test_async_check_and_seed(service, tmp_path):
    path = tmp_path / "seed.txt"
    path.write_text("doc:1#editor@4\n", encoding="utf-8")
    report = await service.seed(path)
    assert report.created == 1
    assert await service.acheck_access(4, 1, "doc", "viewer") is True
    result = await service.explain(4, 1, "doc", "viewer")
    assert result.phase == "direct"


def test_from_settings_memory(tmp_path):
    usersets = tmp_path / "usersets.yaml"
    usersets.write_text("doc:\n  viewer: viewer, owner\n", encoding="utf-8")
    settings = Settings(usersets_path=usersets, usersets_delimiter=",", max_depth=4)

    service = AccessService.from_settings(settings)
    assert isinstance(service.store, InMemoryTupleStore)
    assert service.rules.lookup("doc", "viewer") == {"viewer", "owner"}
    assert service.checker.max_depth == 4


def test_from_settings_without_usersets_denies_everything():
    service = AccessService.from_settings(Settings())
    _write(service, "doc:1#owner@2")
    assert len(service.rules) == 0
    assert service.check_access(2, 1, "doc", "owner") is False


def test_create_sql_store(tmp_path):
    settings = Settings(store_backend=StoreBackend.SQL, db_url=f"sqlite:///{tmp_path / 'r.db'}")
    store = create_store(settings)
    assert isinstance(store, SqlTupleStore)
    assert store.timeout == settings.store_timeout


def test_create_sql_store_requires_url():
    with pytest.raises(ConfigError):
        create_store(Settings(store_backend=StoreBackend.SQL))


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("REBAC_STORE_TIMEOUT", "1.5")
    monkeypatch.setenv("REBAC_MAX_CONCURRENCY", "4")
    settings = Settings()
    assert settings.store_timeout == 1.5
    assert settings.max_concurrency == 4
    assert settings.store_backend == StoreBackend.MEMORY
