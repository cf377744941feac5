from __future__ import annotations

import redis

from app.services.cache_service import CacheService


class BrokenRedis:
    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise redis.ConnectionError("connection refused")

        return fail


def test_disabled_cache_is_a_no_op():
    service = CacheService()

    assert service.enabled is False
    assert service.get("k") is None
    assert service.set("k", {"a": 1}, 60) is False
    assert service.delete("k") is False
    assert service.delete_pattern("*") == 0
    assert service.exists("k") is False
    assert service.flush() == 0
    assert service.stats() is None
    assert service.get_or_set("k", lambda: {"fresh": True}) == {"fresh": True}


def test_set_get_with_prefix_and_ttl(fake_redis):
    fake = fake_redis
    service = CacheService(client=fake, key_prefix="oms")

    assert service.set("order-tracking:summary:1", {"total_orders": 3}, ttl=180)
    assert fake.ttls == {"oms:order-tracking:summary:1": 180}
    assert service.get("order-tracking:summary:1") == {"total_orders": 3}
    assert service.exists("order-tracking:summary:1")


def test_get_or_set_fetches_once(fake_redis):
    service = CacheService(client=fake_redis)
    calls = []

    def fetch():
        calls.append(1)
        return ["value"]

    assert service.get_or_set("key", fetch, ttl=30) == ["value"]
    assert service.get_or_set("key", fetch, ttl=30) == ["value"]
    assert len(calls) == 1


def test_invalidate_matches_pattern_only(fake_redis):
    fake = fake_redis
    service = CacheService(client=fake, key_prefix="oms")
    service.set("order-tracking:list:1:abc", [1])
    service.set("order-tracking:list:2:def", [2])
    service.set("order-tracking:detail:5:1", {"id": 5})
    fake.set("other-app:order-tracking:list:1:abc", "[]")

    assert service.invalidate("order-tracking:list:*") == 2
    assert service.get("order-tracking:detail:5:1") == {"id": 5}
    assert "other-app:order-tracking:list:1:abc" in fake.store


def test_flush_with_prefix_leaves_foreign_keys(fake_redis):
    fake = fake_redis
    service = CacheService(client=fake, key_prefix="oms")
    service.set("a", 1)
    service.set("b", 2)
    fake.set("foreign", "x")

    assert service.stats() == {"connected": True, "keys": 2, "prefix": "oms"}
    assert service.flush() == 2
    assert list(fake.store) == ["foreign"]


def test_flush_without_prefix_leaves_database_alone(fake_redis):
    fake = fake_redis
    service = CacheService(client=fake)
    service.set("a", 1)
    fake.set("foreign", "x")

    assert service.flush() == 0
    assert set(fake.store) == {"a", "foreign"}


def test_undecodable_entry_is_a_miss(fake_redis):
    fake = fake_redis
    service = CacheService(client=fake)
    fake.set("bad", "{not json")

    assert service.get("bad") is None


def test_redis_errors_degrade_gracefully():
    service = CacheService(client=BrokenRedis(), key_prefix="oms")

    assert service.enabled is True
    assert service.get("k") is None
    assert service.set("k", 1, 10) is False
    assert service.delete("k") is False
    assert service.invalidate("order-tracking:*") == 0
    assert service.exists("k") is False
    assert service.stats() == {"connected": False, "keys": 0}
    assert service.get_or_set("k", lambda: 42) == 42


def test_init_app_reads_redis_url(app):
    service = CacheService()
    app.config["REDIS_URL"] = "redis://localhost:6379/0"

    service.init_app(app)

    assert service.enabled is True
    assert service.key_prefix == "test"
    assert app.extensions["oms_cache"] is service


def test_init_app_without_url_disables(app):
    service = CacheService()
    app.config["REDIS_URL"] = ""

    service.init_app(app)

    assert service.enabled is False


def test_routes_work_when_redis_is_down(app, client, ops_headers):
    from app.extensions import cache

    cache.init_app(app, client=BrokenRedis())
    response = client.get("/api/v1/order-tracking", headers=ops_headers)

    assert response.status_code == 200
    assert response.headers["X-Cache"] == "MISS"
