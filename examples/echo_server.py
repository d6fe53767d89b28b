"""Minimal emitrpc server.

Run with ``emitrpc serve echo_server:rpc --app-dir examples``.
"""

import asyncio

from emitrpc import ApplicationError, RpcApp

rpc = RpcApp()


@rpc.method("echo")
def echo(params, client_id):
    return params


@rpc.method("divide")
async def divide(params, client_id):
    a, b = params
    if b == 0:
        raise ApplicationError(-32001, "Division by zero")
    return a / b


@rpc.emitter("countdown:")
async def countdown(params, emit, client_id):
    n = params[0] if params else 3
    while n >= 0 and not emit.closed:
        await emit(n)
        n -= 1
        await asyncio.sleep(1)
