import uuid

import pytest

from emitrpc.errors import ApplicationError
from emitrpc.server.admission import Rejection, admit, as_rejection


@pytest.mark.asyncio
async def test_no_hook_generates_uuid(channel):
    client_id = await admit(None, {}, channel)
    assert str(uuid.UUID(client_id)) == client_id


@pytest.mark.asyncio
async def test_sync_and_async_hooks_supply_identifier(channel):
    async def by_token(params, chan):
        return f"user-{params['token']}"

    assert await admit(lambda params, chan: "fixed", {}, channel) == "fixed"
    assert await admit(by_token, {"token": "7"}, channel) == "user-7"
    assert await admit(lambda params, chan: 42, {}, channel) == "42"


@pytest.mark.asyncio
async def test_empty_outcome_falls_back_to_uuid(channel):
    for outcome in (None, ""):
        client_id = await admit(lambda params, chan, value=outcome: value, {}, channel)
        uuid.UUID(client_id)


@pytest.mark.asyncio
async def test_mapping_with_error_rejects(channel):
    outcome = await admit(lambda p, c: {"error": {"code": 4001, "message": "unauthorized"}}, {}, channel)
    assert outcome == Rejection(error={"code": 4001, "message": "unauthorized"})


@pytest.mark.asyncio
async def test_raised_application_error_rejects_with_its_error(channel):
    def hook(params, chan):
        raise ApplicationError(4002, "expired", data={"at": 1})

    outcome = await admit(hook, {}, channel)
    assert outcome.error == {"code": 4002, "message": "expired", "data": {"at": 1}}


@pytest.mark.asyncio
async def test_unexpected_hook_failure_rejects_with_internal_error(channel):
    async def hook(params, chan):
        raise KeyError("token")

    outcome = await admit(hook, {}, channel)
    assert isinstance(outcome, Rejection)
    assert outcome.error == {"code": -32603, "message": "Internal error"}


def test_as_rejection_shapes():
    assert as_rejection("alice") is None
    assert as_rejection(None) is None
    assert as_rejection({}).error == {"code": -32000, "message": "Connection rejected"}
    assert as_rejection(ApplicationError(-32001, "x")).error == {"code": -32001, "message": "x"}
    assert as_rejection(Rejection.from_error(4000)).error["code"] == 4000
