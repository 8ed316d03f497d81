import asyncio

from mapscraper.browser import BrowserSupervisor
from fakes import recording_sleep


class FakeBrowser:
    def __init__(self, ident: int) -> None:
        self.ident = ident
        self.connected = True
        self.closed = False
        self.handlers: dict[str, list] = {}

    def is_connected(self) -> bool:
        return self.connected

    def on(self, event, handler) -> None:
        self.handlers.setdefault(event, []).append(handler)

    def disconnect(self) -> None:
        self.connected = False
        for handler in self.handlers.get("disconnected", []):
            handler(self)

    async def close(self) -> None:
        self.closed = True
        self.connected = False


def _launcher(failures: int = 0):
    launched: list[FakeBrowser] = []
    state = {"failures": failures}

    async def launch() -> FakeBrowser:
        if state["failures"]:
            state["failures"] -= 1
            raise RuntimeError("chromium failed to start")
        browser = FakeBrowser(len(launched) + 1)
        launched.append(browser)
        return browser

    return launch, launched


def test_acquire_reuses_live_browser() -> None:
    launch, launched = _launcher()

    async def scenario():
        supervisor = BrowserSupervisor(launch)
        first = await supervisor.acquire()
        second = await supervisor.acquire()
        return supervisor, first, second

    supervisor, first, second = asyncio.run(scenario())
    assert first is second
    assert supervisor.launch_count == 1
    assert len(launched) == 1


def test_disconnect_triggers_background_relaunch() -> None:
    launch, launched = _launcher()

    async def scenario():
        supervisor = BrowserSupervisor(launch)
        first = await supervisor.acquire()
        first.disconnect()
        for _ in range(5):
            await asyncio.sleep(0)
        relaunched = supervisor.launch_count
        current = await supervisor.acquire()
        await supervisor.close()
        return first, current, relaunched

    first, current, relaunched = asyncio.run(scenario())
    assert relaunched == 2
    assert current is launched[1]
    assert first.closed
    assert current.closed


def test_launch_failures_retry_with_fixed_delay() -> None:
    launch, launched = _launcher(failures=2)
    delays: list[float] = []

    async def scenario():
        supervisor = BrowserSupervisor(launch, relaunch_delay=10.0, sleep=recording_sleep(delays))
        return await supervisor.acquire()

    browser = asyncio.run(scenario())
    assert browser is launched[0]
    assert delays == [10.0, 10.0]


def test_disconnect_during_close_does_not_relaunch() -> None:
    launch, launched = _launcher()

    async def scenario():
        supervisor = BrowserSupervisor(launch)
        browser = await supervisor.acquire()
        await supervisor.close()
        browser.disconnect()
        await asyncio.sleep(0)
        return supervisor

    supervisor = asyncio.run(scenario())
    assert supervisor.launch_count == 1
    assert len(launched) == 1
