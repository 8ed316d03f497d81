import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError

from mapscraper.driver import PlaywrightDriver, _block_heavy_resources, open_page
from mapscraper.errors import PageLoadError


class DummyPage:
    def __init__(self, *, goto_error: Exception | None = None, evaluate_result=None) -> None:
        self.url = "about:blank"
        self.goto_error = goto_error
        self.evaluate_result = evaluate_result
        self.closed = False
        self.evaluated: list[tuple] = []

    async def goto(self, url, wait_until=None, timeout=None):
        if self.goto_error is not None:
            raise self.goto_error
        self.url = url

    async def evaluate(self, script, arg=None):
        self.evaluated.append((script, arg))
        if isinstance(self.evaluate_result, Exception):
            raise self.evaluate_result
        return self.evaluate_result

    async def query_selector(self, selector):
        return None

    async def close(self):
        self.closed = True


class DummyContext:
    def __init__(self, page: DummyPage) -> None:
        self.page = page
        self.routes: list[str] = []
        self.nav_timeout = None
        self.closed = False

    def set_default_navigation_timeout(self, timeout):
        self.nav_timeout = timeout

    async def route(self, pattern, handler):
        self.routes.append(pattern)

    async def new_page(self):
        return self.page

    async def close(self):
        self.closed = True


class DummyBrowser:
    def __init__(self, context: DummyContext) -> None:
        self.context = context
        self.context_options: dict = {}

    async def new_context(self, **kwargs):
        self.context_options = kwargs
        return self.context


def test_goto_wraps_playwright_errors_with_url() -> None:
    page = DummyPage(goto_error=PlaywrightError("net::ERR_CONNECTION_RESET at https://x"))
    driver = PlaywrightDriver(page)

    with pytest.raises(PageLoadError) as excinfo:
        asyncio.run(driver.goto("https://x", timeout_ms=1000))

    assert "ERR_CONNECTION_RESET" in str(excinfo.value)
    assert excinfo.value.url == "https://x"


def test_dom_reads_swallow_evaluation_errors() -> None:
    driver = PlaywrightDriver(DummyPage(evaluate_result=RuntimeError("detached")))

    assert asyncio.run(driver.scroll_to_bottom("#feed")) is None
    assert asyncio.run(driver.scroll_height("#feed")) == 0
    assert asyncio.run(driver.snapshot_elements("a")) == []
    assert asyncio.run(driver.body_text()) == ""
    assert asyncio.run(driver.element_text("h1")) is None
    assert asyncio.run(driver.click_first("button")) is False


def test_scroll_to_bottom_passes_fallbacks_to_page() -> None:
    page = DummyPage(evaluate_result=1234)
    driver = PlaywrightDriver(page)

    assert asyncio.run(driver.scroll_to_bottom("#feed", ("#alt",))) == 1234
    assert page.evaluated[0][1][:2] == ["#feed", ["#alt"]]


def test_open_page_sets_up_and_closes_context() -> None:
    page = DummyPage()
    context = DummyContext(page)
    browser = DummyBrowser(context)

    async def scenario() -> None:
        async with open_page(browser, block_resources=True, nav_timeout_ms=1500) as driver:
            assert driver.page is page

    asyncio.run(scenario())

    assert context.nav_timeout == 1500
    assert context.routes == ["**/*"]
    assert "user_agent" in browser.context_options
    assert page.closed and context.closed


def test_open_page_closes_context_when_body_fails() -> None:
    page = DummyPage()
    context = DummyContext(page)

    async def scenario() -> None:
        async with open_page(DummyBrowser(context), block_resources=False):
            raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        asyncio.run(scenario())
    assert context.routes == []
    assert page.closed and context.closed


def test_heavy_resources_are_aborted() -> None:
    class Request:
        def __init__(self, resource_type: str) -> None:
            self.resource_type = resource_type

    class Route:
        def __init__(self, resource_type: str) -> None:
            self.request = Request(resource_type)
            self.action = None

        async def abort(self):
            self.action = "abort"

        async def continue_(self):
            self.action = "continue"

    image, document = Route("image"), Route("document")
    asyncio.run(_block_heavy_resources(image))
    asyncio.run(_block_heavy_resources(document))
    assert image.action == "abort"
    assert document.action == "continue"
