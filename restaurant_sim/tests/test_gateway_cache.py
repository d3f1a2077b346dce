import httpx

from restaurant_sim.app.api.deps import get_remote_gateway
from restaurant_sim.app.config import Settings
from restaurant_sim.app.integrations import close_gateway, get_gateway
from restaurant_sim.app.integrations.cache import (
    CachingGateway,
    MemoryKeyValueCache,
    SqlKeyValueCache,
    cache_key,
)
from restaurant_sim.app.integrations.clover import CloverClient, CloverGateway
from restaurant_sim.app.integrations.memory_stub import InMemoryGateway


def test_memory_cache_evicts_least_recently_used():
    cache = MemoryKeyValueCache(max_items=2)
    cache.put("a", {"v": 1})
    cache.put("b", {"v": 2})
    cache.get("a")
    cache.put("c", {"v": 3})

    assert cache.get("b") is None
    assert cache.get("a") == {"v": 1}
    assert cache.get("c") == {"v": 3}


def test_cache_key_is_stable_and_scoped_by_type():
    args = {"limit": 100, "offset": 0, "filter": {"b": 1, "a": 2}}

    assert cache_key("role", "list", args) == cache_key("role", "list", dict(reversed(list(args.items()))))
    assert cache_key("role", "list", args).startswith("role:")
    assert cache_key("role", "list", args) != cache_key("role", "get", args)


def test_reads_are_cached_until_a_write_to_the_same_type(gateway):
    cached = CachingGateway(gateway, MemoryKeyValueCache())
    gateway.seed("role", [{"name": "Manager"}])

    cached.list("role")
    cached.list("role")
    assert gateway.calls[("list", "role")] == 1

    cached.create("role", {"name": "Server"})
    assert len(cached.list("role")["elements"]) == 2
    assert gateway.calls[("list", "role")] == 2


def test_writes_do_not_drop_other_types(gateway):
    cached = CachingGateway(gateway, MemoryKeyValueCache())
    cached.list("role")

    cached.create("category", {"name": "Drinks"})
    cached.list("role")

    assert gateway.calls[("list", "role")] == 1


def test_tip_write_drops_cached_payments(gateway):
    cached = CachingGateway(gateway, MemoryKeyValueCache())
    payment = gateway.create("payment", {"order": {"id": "O1"}, "amount": 1000})
    cached.get("payment", payment["id"])

    cached.create("tip", {"payment": {"id": payment["id"]}, "tipAmount": 150})

    assert cached.get("payment", payment["id"])["tipAmount"] == 150


def test_sql_cache_round_trip_and_prefix_invalidation(sqlite_session):
    cache = SqlKeyValueCache(sqlite_session, ttl_seconds=300)
    cache.put("role:1", {"elements": []})
    cache.put("role:2", {"elements": [{"id": "R1"}]})
    cache.put("category:1", {"elements": []})

    assert cache.get("role:2") == {"elements": [{"id": "R1"}]}
    assert cache.invalidate("role:") == 2
    assert cache.get("role:1") is None
    assert cache.get("category:1") == {"elements": []}


def test_sql_cache_entries_expire(sqlite_session):
    cache = SqlKeyValueCache(sqlite_session, ttl_seconds=-1)
    cache.put("role:1", {"elements": []})

    assert cache.get("role:1") is None


def test_get_gateway_wraps_when_cache_enabled(sqlite_session):
    plain = get_gateway(Settings(use_stub_gateway=True))
    wrapped = get_gateway(Settings(use_stub_gateway=True, cache_enabled=True), sqlite_session)
    bypassed = get_gateway(Settings(use_stub_gateway=True, cache_enabled=True, force_refresh=True))

    assert isinstance(plain, InMemoryGateway)
    assert isinstance(wrapped, CachingGateway)
    assert isinstance(wrapped.cache, SqlKeyValueCache)
    assert wrapped.inner is plain
    assert isinstance(bypassed, InMemoryGateway)


def _clover(client):
    return CloverGateway(
        CloverClient(base_url="https://sandbox.dev.clover.com/", merchant_id="MID1", api_token="t", client=client)
    )


def test_close_gateway_closes_http_client_behind_cache():
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})))

    close_gateway(CachingGateway(_clover(client), MemoryKeyValueCache()))

    assert client.is_closed


def test_close_gateway_leaves_stub_usable(gateway):
    close_gateway(gateway)
    close_gateway(CachingGateway(gateway, MemoryKeyValueCache()))

    assert gateway.create("role", {"name": "Server"})["name"] == "Server"


def test_request_scoped_gateway_is_closed_after_use():
    dependency = get_remote_gateway(settings=Settings(merchant_id="MID1", api_token="t"), db=None)

    gateway = next(dependency)
    assert isinstance(gateway, CloverGateway)
    assert not gateway.client._client.is_closed

    dependency.close()

    assert gateway.client._client.is_closed
