import functools

import pytest

from middleware_stack import (
    EVENT_NAME,
    InMemoryTelemetrySink,
    InstrumentationProxy,
    Middleware,
    TelemetryPublisher,
    same_middleware,
)


class Echo:
    def __init__(self, app, prefix="", block=None):
        self.app = app
        self.prefix = prefix
        self.block = block

    def __call__(self, request):
        return self.prefix + self.app(request)


class Other(Echo):
    pass


class Boom:
    def __init__(self, app):
        self.app = app

    def __call__(self, request):
        raise RuntimeError("boom")


def _app(request):
    return request


def test_same_middleware_ignores_arguments():
    first = Middleware(Echo, ("a",))
    second = Middleware(Echo, ("b",), {"prefix": "x"}, block=len)

    assert same_middleware(first, second)
    assert first.matches(second)
    assert first.matches(Echo)
    assert same_middleware(Echo, first)


def test_same_middleware_rejects_other_factories():
    entry = Middleware(Echo)

    assert not entry.matches(Other)
    assert not entry.matches(Middleware(Other))
    assert not entry.matches(0)
    assert not entry.matches(None)
    assert not entry.matches("Echo")


def test_default_equality_is_identity():
    assert Middleware(Echo) != Middleware(Echo)


def test_registration_is_immutable():
    entry = Middleware(Echo, ["a"], {"prefix": "b"})

    assert entry.args == ("a",)
    with pytest.raises(AttributeError):
        entry.klass = Other
    with pytest.raises(TypeError):
        entry.kwargs["prefix"] = "c"


def test_build_passes_app_then_arguments():
    handler = Middleware(Echo, (">",)).build(_app)

    assert isinstance(handler, Echo)
    assert handler.app is _app
    assert handler("hi") == ">hi"


def test_build_forwards_keyword_arguments_and_block():
    def block():
        return "configured"

    handler = Middleware(Echo, (), {"prefix": "!"}, block=block).build(_app)

    assert handler.prefix == "!"
    assert handler.block is block


def test_build_propagates_factory_errors():
    def factory(app):
        raise KeyError("missing setting")

    with pytest.raises(KeyError):
        Middleware(factory).build(_app)


def test_names_for_classes():
    entry = Middleware(Echo)

    assert entry.name == "Echo"
    assert entry.display_name() == f"{__name__}.Echo"
    assert repr(entry) == f"{__name__}.Echo"


def test_names_for_non_class_factories():
    def make_echo(app):
        return Echo(app)

    partial = functools.partial(Echo, prefix="-")

    assert Middleware(make_echo).name == "make_echo"
    assert Middleware(make_echo).display_name() == "function"
    assert Middleware(partial).name is None
    assert Middleware(partial).display_name() == "functools.partial"


def test_build_instrumented_wraps_in_proxy():
    publisher = TelemetryPublisher(random_fn=lambda: 0.0)
    sink = InMemoryTelemetrySink()
    publisher.subscribe(sink)

    proxy = Middleware(Echo, (">",)).build_instrumented(_app, publisher)

    assert isinstance(proxy, InstrumentationProxy)
    assert isinstance(proxy.middleware, Echo)
    assert proxy.payload == {"middleware": f"{__name__}.Echo"}
    assert proxy("hi") == ">hi"
    assert [event.event for event in sink.events] == [EVENT_NAME]
    assert sink.events[0].payload == {"middleware": f"{__name__}.Echo"}
    assert sink.events[0].error is None


def test_proxy_propagates_errors_and_still_reports():
    publisher = TelemetryPublisher(random_fn=lambda: 0.0)
    sink = InMemoryTelemetrySink()
    publisher.subscribe(sink)
    proxy = Middleware(Boom).build_instrumented(_app, publisher, "custom.event")

    with pytest.raises(RuntimeError, match="boom"):
        proxy("request")

    assert len(sink.events) == 1
    event = sink.events[0]
    assert event.event == "custom.event"
    assert event.failed
    assert "boom" in event.error


def test_display_name_distinguishes_modules():
    first = type("Auth", (), {"__module__": "billing.middleware"})
    second = type("Auth", (), {"__module__": "accounts.middleware"})

    assert Middleware(first).display_name() == "billing.middleware.Auth"
    assert Middleware(second).display_name() == "accounts.middleware.Auth"
