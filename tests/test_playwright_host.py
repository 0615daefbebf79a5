import pytest

from pagebridge.bridge import EvaluationRequest, EvaluationScope, ExecutionWorld
from pagebridge.errors import InjectionError
from pagebridge.host import BLANK_URL, Clip
from pagebridge.playwright_host import (
    CDPScriptInjector,
    PlaywrightScreenCapture,
    PlaywrightTabHost,
    RouteBlobStager,
    _select_frames,
    _walk_frame_tree,
)

FRAME_TREE = {
    "frameTree": {
        "frame": {"id": "main", "loaderId": "L-main", "url": "https://example.test/"},
        "childFrames": [
            {"frame": {"id": "child-1", "parentId": "main", "loaderId": "L-1"}},
            {
                "frame": {"id": "child-2", "parentId": "main", "loaderId": "L-2"},
                "childFrames": [{"frame": {"id": "grandchild", "parentId": "child-2", "loaderId": "L-3"}}],
            },
        ],
    }
}


class FakeCDPSession:
    def __init__(self, responses=None):
        self.listeners = {}
        self.sent = []
        self.responses = responses or {}
        self.next_context_id = 100

    def on(self, event, handler):
        self.listeners.setdefault(event, []).append(handler)

    def emit(self, event, params=None):
        for handler in self.listeners.get(event, []):
            handler(params or {})

    async def send(self, method, params=None):
        self.sent.append((method, params))
        if method == "Page.getFrameTree":
            return FRAME_TREE
        if method == "Page.createIsolatedWorld":
            self.next_context_id += 1
            return {"executionContextId": self.next_context_id}
        response = self.responses.get(method, {})
        return response(params) if callable(response) else response

    def methods(self):
        return [method for method, _ in self.sent]


def frames():
    return list(_walk_frame_tree(FRAME_TREE["frameTree"]))


def test_frame_tree_is_walked_depth_first():
    assert [frame["id"] for frame in frames()] == ["main", "child-1", "child-2", "grandchild"]


def test_frame_selection():
    ids = lambda selected: [frame["id"] for frame in selected]
    assert ids(_select_frames(frames(), EvaluationScope())) == ["main"]
    assert ids(_select_frames(frames(), EvaluationScope(all_frames=True))) == [
        "main",
        "child-1",
        "child-2",
        "grandchild",
    ]
    assert ids(_select_frames(frames(), EvaluationScope(frame_ids=("child-2", "main")))) == [
        "main",
        "child-2",
    ]
    assert ids(
        _select_frames(frames(), EvaluationScope(frame_ids=("child-1", "child-2"), document_ids=("L-2",)))
    ) == ["child-2"]


@pytest.mark.asyncio
async def test_isolated_world_is_created_once_per_frame(target):
    session = FakeCDPSession({"Runtime.callFunctionOn": {"result": {"value": 7}}})
    injector = CDPScriptInjector(session)
    request = EvaluationRequest(function="(a) => a", args=(7,))

    assert await injector.inject(target, request) == [7]
    assert await injector.inject(target, request) == [7]

    assert session.methods().count("Runtime.enable") == 1
    assert session.methods().count("Page.createIsolatedWorld") == 1
    create = dict(session.sent)["Page.createIsolatedWorld"]
    assert create == {"frameId": "main", "worldName": "pagebridge", "grantUniveralAccess": True}
    call = [params for method, params in session.sent if method == "Runtime.callFunctionOn"][0]
    assert call == {
        "functionDeclaration": "(a) => a",
        "executionContextId": 101,
        "arguments": [{"value": 7}],
        "returnByValue": True,
        "awaitPromise": True,
    }


@pytest.mark.asyncio
async def test_page_world_uses_tracked_default_contexts(target):
    session = FakeCDPSession({"Runtime.callFunctionOn": lambda params: {"result": {"value": params["executionContextId"]}}})
    injector = CDPScriptInjector(session)
    page_request = EvaluationRequest(function="() => 1", world=ExecutionWorld.PAGE, scope=EvaluationScope(all_frames=True))

    with pytest.raises(InjectionError):
        await injector.inject(target, page_request)

    for number, frame in enumerate(frames(), start=1):
        session.emit(
            "Runtime.executionContextCreated",
            {"context": {"id": number, "auxData": {"frameId": frame["id"], "isDefault": True}}},
        )
    assert await injector.inject(target, page_request) == [1, 2, 3, 4]

    session.emit("Runtime.executionContextDestroyed", {"executionContextId": 3})
    with pytest.raises(InjectionError):
        await injector.inject(target, page_request)

    session.emit("Runtime.executionContextsCleared")
    assert injector._contexts == {}


@pytest.mark.asyncio
async def test_isolated_context_events_are_reused(target):
    session = FakeCDPSession({"Runtime.callFunctionOn": lambda params: {"result": {"value": params["executionContextId"]}}})
    injector = CDPScriptInjector(session)
    await injector.inject(target, EvaluationRequest(function="() => 0"))
    session.emit(
        "Runtime.executionContextCreated",
        {"context": {"id": 55, "name": "pagebridge", "auxData": {"frameId": "main", "isDefault": False}}},
    )

    assert await injector.inject(target, EvaluationRequest(function="() => 0")) == [55]


@pytest.mark.asyncio
async def test_exceptions_in_the_page_become_injection_errors(target):
    session = FakeCDPSession(
        {
            "Runtime.callFunctionOn": {
                "result": {"type": "object"},
                "exceptionDetails": {"text": "Uncaught", "exception": {"description": "TypeError: x is undefined"}},
            }
        }
    )
    injector = CDPScriptInjector(session)

    with pytest.raises(InjectionError, match="x is undefined") as excinfo:
        await injector.inject(target, EvaluationRequest(function="() => x.y"))
    assert excinfo.value.details["text"] == "Uncaught"


@pytest.mark.asyncio
async def test_script_files_receive_arguments_and_return_last_value(target, tmp_path):
    first = tmp_path / "first.js"
    second = tmp_path / "second.js"
    first.write_text("globalThis.seen = pageBridgeArguments;", encoding="utf-8")
    second.write_text("pageBridgeArguments[0] * 2", encoding="utf-8")
    values = iter([{"result": {}}, {"result": {"value": 42}}])
    session = FakeCDPSession(
        {"Runtime.evaluate": lambda params: next(values), "Runtime.callFunctionOn": {"result": {}}}
    )
    injector = CDPScriptInjector(session)

    result = await injector.inject(
        target, EvaluationRequest(files=(str(first), str(second)), args=(21,))
    )

    assert result == [42]
    set_args = [params for method, params in session.sent if method == "Runtime.callFunctionOn"][0]
    assert set_args["arguments"] == [{"value": [21]}]
    expressions = [params["expression"] for method, params in session.sent if method == "Runtime.evaluate"]
    assert expressions == [first.read_text(encoding="utf-8"), second.read_text(encoding="utf-8")]


class FakePlaywrightPage:
    def __init__(self):
        self.url = BLANK_URL
        self.routes = []
        self.unrouted = []
        self.screenshots = []

    async def route(self, url, handler):
        self.routes.append((url, handler))

    async def unroute(self, url, handler):
        self.unrouted.append((url, handler))

    async def screenshot(self, **kwargs):
        self.screenshots.append(kwargs)
        return b"png"


@pytest.mark.asyncio
async def test_tab_host_tracks_navigation_events(target):
    session = FakeCDPSession({"Page.navigate": {"frameId": "main", "loaderId": "L-new"}})
    tabs = PlaywrightTabHost(FakePlaywrightPage(), session)

    await tabs.navigate(target, "https://example.test/next")
    info = await tabs.get_info(target)
    assert (info.url, info.pending_url, info.status) == (BLANK_URL, "https://example.test/next", "loading")

    session.emit("Page.frameNavigated", {"frame": {"id": "child-1", "parentId": "main", "url": "https://ads.test/"}})
    session.emit("Page.frameNavigated", {"frame": {"id": "main", "url": "https://example.test/next"}})
    info = await tabs.get_info(target)
    assert (info.url, info.pending_url, info.status) == ("https://example.test/next", None, "loading")

    session.emit("Page.domContentEventFired", {"timestamp": 1})
    assert (await tabs.get_info(target)).status == "interactive"
    session.emit("Page.loadEventFired", {"timestamp": 2})
    assert (await tabs.get_info(target)).status == "complete"

    session.emit("Page.navigatedWithinDocument", {"frameId": "main", "url": "https://example.test/next#top"})
    assert (await tabs.get_info(target)).url == "https://example.test/next#top"
    assert session.methods().count("Page.enable") == 1


@pytest.mark.asyncio
async def test_tab_host_same_document_and_failed_navigation(target):
    responses = iter([{"frameId": "main"}, {"frameId": "main", "errorText": "net::ERR_NAME_NOT_RESOLVED"}])
    session = FakeCDPSession({"Page.navigate": lambda params: next(responses)})
    tabs = PlaywrightTabHost(FakePlaywrightPage(), session)

    await tabs.navigate(target, "about:blank#anchor")
    info = await tabs.get_info(target)
    assert (info.url, info.pending_url, info.status) == ("about:blank#anchor", None, "complete")

    await tabs.navigate(target, "https://nowhere.invalid/")
    info = await tabs.get_info(target)
    assert info.pending_url is None
    assert info.url == "about:blank#anchor"


@pytest.mark.asyncio
async def test_screen_capture_and_blob_stager(target):
    page = FakePlaywrightPage()

    assert await PlaywrightScreenCapture(page).capture(target, Clip(1, 2, 3, 4)) == b"png"
    assert page.screenshots == [{"type": "png", "clip": {"x": 1, "y": 2, "width": 3, "height": 4}}]

    stager = RouteBlobStager(page)
    url = await stager.stage(b"data", "text/plain")
    assert url.startswith("https://pagebridge.invalid/blob/")
    assert page.routes[0][0] == url

    await stager.revoke(url)
    await stager.revoke(url)
    assert page.unrouted == [page.routes[0]]
