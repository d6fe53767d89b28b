from emitrpc.rpc.registry import HandlerRegistry


def test_methods_and_emitters_are_independent():
    registry = HandlerRegistry()

    def add(params, client_id):
        return sum(params)

    def ticks(params, emit, client_id):
        return None

    registry.add_method("ticks", add)
    registry.add_emitter("ticks", ticks)
    assert registry.get_method("ticks") is add
    assert registry.get_emitter("ticks") is ticks
    assert registry.get_method("missing") is None


def test_reregistration_is_last_write_wins():
    registry = HandlerRegistry()
    registry.add_method("m", lambda p, c: 1)
    second = lambda p, c: 2  # noqa: E731
    registry.add_method("m", second)
    assert registry.get_method("m") is second
    assert registry.method_names() == ["m"]


def test_emitter_marker_is_stripped_on_registration():
    registry = HandlerRegistry()

    @registry.emitter("feed:")
    async def feed(params, emit, client_id):
        await emit(1)

    assert registry.get_emitter("feed") is feed
    assert registry.emitter_names() == ["feed"]


def test_decorator_returns_original_function():
    registry = HandlerRegistry()

    @registry.method("echo")
    async def echo(params, client_id):
        return params

    assert registry.get_method("echo") is echo
