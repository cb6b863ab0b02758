import pytest

from talkback.realtime.registry import ConnectionRegistry

pytestmark = pytest.mark.anyio


async def test_lookup_returns_latest_connection(make_connection):
    registry = ConnectionRegistry()
    first, second = make_connection("alice"), make_connection("alice")

    await registry.register("alice", first)
    replaced = await registry.register("alice", second)

    assert replaced is first
    assert registry.lookup("alice") is second
    assert registry.online_users() == ["alice"]


async def test_lookup_unknown_user_is_none():
    assert ConnectionRegistry().lookup("nobody") is None


async def test_stale_unregister_leaves_newer_connection(make_connection):
    registry = ConnectionRegistry()
    old, new = make_connection("alice"), make_connection("alice")
    await registry.register("alice", old)
    await registry.register("alice", new)

    assert await registry.unregister("alice", old) is False
    assert registry.lookup("alice") is new

    assert await registry.unregister("alice", new) is True
    assert registry.lookup("alice") is None


async def test_online_users_after_connects_and_disconnects(make_connection):
    registry = ConnectionRegistry()
    connections = {user: make_connection(user) for user in ["u1", "u2", "u3", "u4", "u5"]}
    for user, connection in connections.items():
        await registry.register(user, connection)
    for user in ["u2", "u4"]:
        await registry.unregister(user, connections[user])

    assert registry.online_users() == ["u1", "u3", "u5"]
    assert len(registry) == 3
    assert "u2" not in registry


async def test_every_effective_mutation_notifies(make_connection):
    calls = []
    registry = ConnectionRegistry(on_change=lambda: calls.append(len(calls)))
    alice = make_connection("alice")

    await registry.register("alice", alice)
    await registry.unregister("alice", make_connection("alice"))  # stale, no change
    await registry.unregister("alice", alice)

    assert len(calls) == 2
