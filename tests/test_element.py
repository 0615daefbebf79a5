import pytest

from pagebridge.element import RemoteElement
from pagebridge.errors import ElementNotFoundError

from conftest import NOT_FOUND, PageRuntimeStub


@pytest.mark.asyncio
async def test_operations_address_the_element_by_path(make_page):
    stub = PageRuntimeStub(
        get_text=lambda m: "Sign in",
        get_attribute=lambda m: {"href": "/login"}[m["args"][0]],
        set_attribute=lambda m: None,
    )
    page, _, _ = make_page(stub)
    element = RemoteElement(page, "a.login⟮-1⟯", "A")

    assert await element.get_text() == "Sign in"
    assert await element.get_attribute("href") == "/login"
    await element.set_attribute("target", "_blank")

    assert [m["path"] for m in stub.messages] == ["a.login⟮-1⟯"] * 3
    assert stub.messages[-1]["args"] == ["target", "_blank"]


@pytest.mark.asyncio
async def test_tag_name_is_fetched_once(make_page):
    stub = PageRuntimeStub(get_tag_name=lambda m: "DIV")
    page, _, _ = make_page(stub)
    element = RemoteElement(page, "div⟮0⟯")

    assert await element.get_tag_name() == "DIV"
    assert await element.get_tag_name() == "DIV"
    assert stub.ops_called() == ["get_tag_name"]


@pytest.mark.asyncio
async def test_only_actions_scroll_first(make_page):
    stub = PageRuntimeStub(click=lambda m: None, focus=lambda m: None, input=lambda m: None)
    page, _, _ = make_page(stub)
    element = RemoteElement(page, "#q⟮-1⟯", "INPUT")

    await element.focus()
    await element.click()
    await element.input("pagebridge")

    focus, click, typed = stub.messages
    assert focus["scroll"] is None
    assert click["scroll"] == {"behavior": "smooth", "block": "center"}
    assert typed["scroll"] == click["scroll"]
    assert typed["args"] == ["pagebridge"]


@pytest.mark.asyncio
async def test_scroll_can_be_switched_off(make_page):
    stub = PageRuntimeStub(click=lambda m: None)
    page, _, _ = make_page(stub, scroll_before_action=False)

    await RemoteElement(page, "button⟮-1⟯").click()
    assert stub.messages[0]["scroll"] is None


@pytest.mark.asyncio
async def test_nested_lookups_extend_the_path(make_page):
    stub = PageRuntimeStub(
        describe=lambda m: {"tagName": "INPUT"},
        list=lambda m: ["LI", "LI"],
    )
    page, _, _ = make_page(stub)
    form = RemoteElement(page, "form⟮-1⟯", "FORM")

    field = await form.get_element(".//input", 1)
    items = await form.get_elements("li")

    assert field.path == "form⟮-1⟯→.//input⟮1⟯"
    assert field.tag_name == "INPUT"
    assert [item.path for item in items] == ["form⟮-1⟯→li⟮0⟯", "form⟮-1⟯→li⟮1⟯"]
    assert stub.messages[1]["path"] == "form⟮-1⟯"
    assert stub.messages[1]["locator"] == "li"


@pytest.mark.asyncio
async def test_dangling_handle_raises_not_found(make_page):
    stub = PageRuntimeStub(get_html=lambda m: NOT_FOUND)
    page, _, _ = make_page(stub)

    with pytest.raises(ElementNotFoundError) as excinfo:
        await RemoteElement(page, "ul⟮0⟯→li⟮7⟯").get_html()
    assert excinfo.value.path == "ul⟮0⟯→li⟮7⟯"
    assert excinfo.value.index == 7


def test_handles_compare_by_page_and_path(make_page):
    page, _, _ = make_page()
    other, _, _ = make_page()

    assert RemoteElement(page, "a⟮0⟯") == RemoteElement(page, "a⟮0⟯", "A")
    assert RemoteElement(page, "a⟮0⟯") != RemoteElement(other, "a⟮0⟯")
    assert len({RemoteElement(page, "a⟮0⟯"), RemoteElement(page, "a⟮0⟯")}) == 1
