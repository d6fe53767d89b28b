import asyncio
import json
import uuid

import pytest

from emitrpc.config.schema import RpcConfig
from emitrpc.errors import ApplicationError
from emitrpc.server.admission import Rejection
from emitrpc.server.app import RpcApp
from emitrpc.server.connection import ConnectionState
from emitrpc.server.params_codec import Base64JsonCodec


@pytest.mark.asyncio
async def test_default_admission_assigns_random_id(rpc_app, channel, eventually):
    rpc_app.method("whoami", lambda params, client_id: client_id)
    task = asyncio.create_task(rpc_app.serve_channel(channel))
    await eventually(lambda: len(rpc_app.clients) == 1)

    (client_id,) = rpc_app.clients.client_ids()
    uuid.UUID(client_id)

    channel.feed(json.dumps({"method": "whoami", "id": 1}))
    await eventually(lambda: channel.sent)
    assert channel.frames == [[{"jsonrpc": "2.0", "id": 1, "result": client_id}]]

    channel.disconnect()
    connection = await asyncio.wait_for(task, timeout=1)
    assert connection.state is ConnectionState.CLOSED
    assert len(rpc_app.clients) == 0


@pytest.mark.asyncio
async def test_admission_hook_receives_decoded_params(rpc_config, channel, eventually):
    seen = []

    async def client_added(params, chan):
        seen.append((params, chan))
        return params["user"]

    rpc_app = RpcApp(rpc_config, client_added=client_added)
    header = Base64JsonCodec().encode({"user": "bob"})
    task = asyncio.create_task(rpc_app.serve_channel(channel, header))
    await eventually(lambda: "bob" in rpc_app.clients)

    assert seen == [({"user": "bob"}, channel)]
    channel.disconnect()
    await asyncio.wait_for(task, timeout=1)


@pytest.mark.asyncio
async def test_undecodable_header_yields_empty_params(rpc_config, channel, eventually):
    seen = []
    rpc_app = RpcApp(rpc_config, client_added=lambda params, chan: seen.append(params) or "x")
    task = asyncio.create_task(rpc_app.serve_channel(channel, "%%%not-base64%%%"))
    await eventually(lambda: "x" in rpc_app.clients)

    assert seen == [{}]
    channel.disconnect()
    await asyncio.wait_for(task, timeout=1)


@pytest.mark.asyncio
async def test_hook_without_identifier_falls_back_to_random_id(rpc_config, channel, eventually):
    rpc_app = RpcApp(rpc_config, client_added=lambda params, chan: None)
    task = asyncio.create_task(rpc_app.serve_channel(channel))
    await eventually(lambda: len(rpc_app.clients) == 1)

    uuid.UUID(rpc_app.clients.client_ids()[0])
    channel.disconnect()
    await asyncio.wait_for(task, timeout=1)


@pytest.mark.asyncio
async def test_rejection_sends_one_error_frame_and_never_registers(rpc_config, channel):
    removed = []
    rpc_app = RpcApp(
        rpc_config,
        client_added=lambda params, chan: {"error": {"code": 4001, "message": "nope"}},
        client_removed=removed.append,
    )

    result = await asyncio.wait_for(rpc_app.serve_channel(channel), timeout=1)

    assert result is None
    assert channel.frames == [{"jsonrpc": "2.0", "id": None, "error": {"code": 4001, "message": "nope"}}]
    assert channel.closed is True
    assert len(rpc_app.clients) == 0
    assert removed == []


@pytest.mark.asyncio
async def test_rejection_object_and_raised_application_error(rpc_config, make_channel):
    async def reject(params, chan):
        return Rejection.from_error(4003, "forbidden")

    def refuse(params, chan):
        raise ApplicationError(4004, "banned")

    first, second = make_channel(), make_channel()
    await RpcApp(rpc_config, client_added=reject).serve_channel(first)
    await RpcApp(rpc_config, client_added=refuse).serve_channel(second)

    assert first.frames[0]["error"] == {"code": 4003, "message": "forbidden"}
    assert second.frames[0]["error"] == {"code": 4004, "message": "banned"}


@pytest.mark.asyncio
async def test_lifetime_ceiling_removes_client_and_runs_cleanup_once(channel):
    removed = []

    async def client_removed(client_id):
        removed.append(client_id)

    rpc_app = RpcApp(RpcConfig(timeout=50), client_added=lambda p, c: "c1", client_removed=client_removed)

    connection = await asyncio.wait_for(rpc_app.serve_channel(channel), timeout=2)

    assert connection.state is ConnectionState.CLOSED
    assert removed == ["c1"]
    assert "c1" not in rpc_app.clients
    assert channel.closed is True
    assert await rpc_app.send("c1", {"ping": True}) is False
    assert channel.sent == []


@pytest.mark.asyncio
async def test_send_pushes_to_live_client(rpc_config, channel, eventually):
    rpc_app = RpcApp(rpc_config, client_added=lambda p, c: "live")
    task = asyncio.create_task(rpc_app.serve_channel(channel))
    await eventually(lambda: "live" in rpc_app.clients)

    assert await rpc_app.send("live", {"id": None, "result": "hello"}) is True
    assert await rpc_app.send("ghost", {"id": None}) is False
    assert channel.frames == [{"id": None, "result": "hello"}]

    channel.disconnect()
    await asyncio.wait_for(task, timeout=1)


def test_decorator_registration(rpc_app):
    @rpc_app.method("add")
    async def add(params, client_id):
        return sum(params)

    @rpc_app.emitter("feed:")
    async def feed(params, emit, client_id):
        await emit(1)

    assert rpc_app.handlers.get_method("add") is add
    assert rpc_app.handlers.get_emitter("feed") is feed


def test_configure_validates_and_resets_asgi(rpc_app):
    first = rpc_app.asgi
    config = rpc_app.configure(path="rpc", timeout=1000)
    assert config.path == "/rpc"
    assert config.timeout_seconds == 1.0
    assert rpc_app.asgi is not first
    with pytest.raises(ValueError):
        rpc_app.configure(timeout=0)
