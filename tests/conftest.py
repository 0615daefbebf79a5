import inspect

import pytest

from pagebridge.config import PageConfig
from pagebridge.host import Target
from pagebridge.page import Page
from pagebridge.page_scripts import PAGE_RUNTIME_JS

NOT_FOUND = object()


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "browser: drives a real Chromium; skipped unless it launches, "
        "failed instead when PAGEBRIDGE_REQUIRE_BROWSER=1",
    )


class FakeInjector:
    """Records every request; answers with `handler(request)` as the only frame result."""

    def __init__(self, handler=None):
        self.requests = []
        self.handler = handler or (lambda request: None)

    async def inject(self, target, request):
        self.requests.append(request)
        value = self.handler(request)
        if inspect.isawaitable(value):
            value = await value
        return [value]


class PageRuntimeStub:
    """Plays the page runtime script: maps each op to a Python callable."""

    def __init__(self, **ops):
        self.ops = ops
        self.messages = []
        self.worlds = []

    def __call__(self, request):
        assert request.function == PAGE_RUNTIME_JS
        message = request.args[0]
        self.messages.append(message)
        self.worlds.append(request.world)
        handler = self.ops.get(message["op"])
        if handler is None:
            raise AssertionError(f"unexpected page operation {message['op']!r}")
        value = handler(message)
        if value is NOT_FOUND:
            return {"ok": False, "error": "not_found"}
        return {"ok": True, "value": value}

    def ops_called(self):
        return [message["op"] for message in self.messages]


class RecordingSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def target():
    return Target(document_target_id="doc-1", container_target_id="ctx-1")


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def make_page(target, sleep):
    def factory(stub=None, **kwargs):
        stub = stub if stub is not None else PageRuntimeStub()
        injector = FakeInjector(stub)
        kwargs.setdefault("config", PageConfig())
        page = Page(target, injector, sleep=sleep, **kwargs)
        return page, stub, injector

    return factory
