import re

import pytest

from pagebridge.bridge import EvaluationBridge, ExecutionWorld
from pagebridge.errors import ElementNotFoundError, EvaluationError, LocatorSyntaxError
from pagebridge.page_scripts import PAGE_RUNTIME_JS, REGISTRY_LIMIT, SESSION_GLOBAL
from pagebridge.runtime import PageCall, PageOperation, PageRuntime

from conftest import FakeInjector


def make_runtime(target, envelope):
    injector = FakeInjector(lambda request: envelope)
    return PageRuntime(EvaluationBridge(target, injector)), injector


def test_runtime_script_is_fully_rendered():
    assert re.search(r"__[A-Z_]+__", PAGE_RUNTIME_JS) is None
    assert f'"{SESSION_GLOBAL}"' in PAGE_RUNTIME_JS
    assert f"const REGISTRY_LIMIT = {REGISTRY_LIMIT};" in PAGE_RUNTIME_JS
    for op in PageOperation:
        assert op.value in PAGE_RUNTIME_JS


def test_page_call_dumps_plain_json():
    message = PageCall(op=PageOperation.INPUT, locator="#q", args=["hello"])
    assert message.model_dump(mode="json") == {
        "op": "input",
        "path": None,
        "locator": "#q",
        "index": -1,
        "caught": None,
        "args": ["hello"],
        "scroll": None,
    }


def test_page_call_describes_its_target():
    assert PageCall(op=PageOperation.CLICK, caught=2).describe_target() == "<caught #2>"
    assert PageCall(op=PageOperation.CLICK, path="a⟮0⟯").describe_target() == "a⟮0⟯"
    assert (
        PageCall(op=PageOperation.LIST, path="ul⟮-1⟯", locator="li").describe_target()
        == "li"
    )


@pytest.mark.asyncio
async def test_call_ships_message_and_unwraps_value(target):
    runtime, injector = make_runtime(target, {"ok": True, "value": "Hello"})

    value = await runtime.call(
        PageOperation.GET_TEXT, path="#title⟮-1⟯", world=ExecutionWorld.PAGE
    )

    assert value == "Hello"
    (request,) = injector.requests
    assert request.function == PAGE_RUNTIME_JS
    assert request.world is ExecutionWorld.PAGE
    assert request.args[0]["op"] == "get_text"
    assert request.args[0]["path"] == "#title⟮-1⟯"
    assert request.locator == "#title⟮-1⟯"


@pytest.mark.asyncio
async def test_not_found_by_path_reports_last_segment(target):
    runtime, _ = make_runtime(target, {"ok": False, "error": "not_found"})

    with pytest.raises(ElementNotFoundError) as excinfo:
        await runtime.call(PageOperation.CLICK, path="form⟮0⟯→button⟮2⟯")

    error = excinfo.value
    assert error.operation == "click"
    assert error.locator == "button"
    assert error.index == 2
    assert error.path == "form⟮0⟯→button⟮2⟯"


@pytest.mark.asyncio
async def test_not_found_by_locator_and_by_caught_index(target):
    runtime, _ = make_runtime(target, {"ok": False, "error": "not_found"})

    with pytest.raises(ElementNotFoundError) as excinfo:
        await runtime.call(PageOperation.FOCUS, locator="#missing", index=3)
    assert (excinfo.value.locator, excinfo.value.index) == ("#missing", 3)

    with pytest.raises(ElementNotFoundError) as excinfo:
        await runtime.call(PageOperation.FILES_COMMIT, 0, caught=4)
    assert (excinfo.value.locator, excinfo.value.index) == (None, 4)


@pytest.mark.asyncio
async def test_locator_syntax_envelope_raises_locator_syntax_error(target):
    runtime, _ = make_runtime(
        target, {"ok": False, "error": "locator_syntax", "message": "'##' is not a valid selector"}
    )

    with pytest.raises(LocatorSyntaxError, match="not a valid selector") as excinfo:
        await runtime.call(PageOperation.EXISTS, locator="##")
    assert isinstance(excinfo.value, ValueError)
    assert excinfo.value.locator == "##"


@pytest.mark.asyncio
@pytest.mark.parametrize("envelope", [None, "text", {"value": 1}])
async def test_malformed_envelope_is_an_evaluation_error(target, envelope):
    runtime, _ = make_runtime(target, envelope)

    with pytest.raises(EvaluationError):
        await runtime.call(PageOperation.EXISTS, locator="div")


@pytest.mark.asyncio
async def test_unknown_page_error_is_an_evaluation_error(target):
    runtime, _ = make_runtime(target, {"ok": False, "error": "weird", "message": "?"})

    with pytest.raises(EvaluationError, match="weird"):
        await runtime.call(PageOperation.EXISTS, locator="div")
