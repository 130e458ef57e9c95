from conftest import ctx_for
from hotel_api import create_app
from hotel_api.extensions import cache
from hotel_api.services.establishment_service import EstablishmentService


def test_simple_cache_is_the_default(monkeypatch):
    monkeypatch.delenv("REDIS_URL", raising=False)
    monkeypatch.setenv("ESTABLISHMENT_CACHE_TTL", "42")
    app = create_app(test_config={"TESTING": True, "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:"})
    assert app.config["CACHE_TYPE"] == "SimpleCache"
    assert app.config["CACHE_DEFAULT_TIMEOUT"] == 42


def test_redis_url_selects_redis_backend(monkeypatch):
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/3")
    app = create_app(test_config={"TESTING": True, "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:"})
    assert app.config["CACHE_TYPE"] == "RedisCache"
    assert app.config["CACHE_REDIS_URL"] == "redis://localhost:6379/3"


def test_active_listing_is_stored_under_its_key(two_hotels):
    assert cache.get("establishments:active") is None
    rows = EstablishmentService.get_active()
    assert cache.get("establishments:active") == rows

    cache.delete("establishments:active")
    EstablishmentService.toggle_active(two_hotels["b"].id)
    assert [e["name"] for e in EstablishmentService.get_active()] == ["Hotel A"]


def test_selector_keys_are_per_establishment(two_hotels):
    EstablishmentService.list_for_selector(ctx_for("staff", two_hotels["a"]))
    EstablishmentService.list_for_selector(ctx_for("admin"))
    assert cache.get(f"establishments:selector:{two_hotels['a'].id}") == [
        {"id": two_hotels["a"].id, "name": "Hotel A", "city": "Lyon"}
    ]
    assert len(cache.get("establishments:selector:all")) == 2
