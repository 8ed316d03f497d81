import asyncio

from mapscraper import playwright_env
from mapscraper.extractors import dom_utils


def test_launch_kwargs_honours_env_overrides(monkeypatch) -> None:
    monkeypatch.setenv("MAPSCRAPER_HEADLESS", "1")
    monkeypatch.setenv("MAPSCRAPER_PROXY", "proxy.local:8080")
    monkeypatch.setenv("MAPSCRAPER_CHROMIUM_ARGS", "--lang=fa-IR --mute-audio")
    monkeypatch.setenv("MAPSCRAPER_BROWSER_CHANNEL", "chrome")
    monkeypatch.setenv("MAPSCRAPER_SLOW_MO_MS", "50")

    kwargs = playwright_env.launch_kwargs(headless=False)

    assert kwargs["headless"] is False
    assert kwargs["proxy"] == {"server": "http://proxy.local:8080"}
    assert kwargs["args"][-2:] == ["--lang=fa-IR", "--mute-audio"]
    assert kwargs["channel"] == "chrome"
    assert kwargs["slow_mo"] == 50


def test_launch_kwargs_defaults(monkeypatch) -> None:
    for name in (
        "MAPSCRAPER_HEADLESS",
        "MAPSCRAPER_PROXY",
        "MAPSCRAPER_CHROMIUM_ARGS",
        "MAPSCRAPER_BROWSER_CHANNEL",
        "MAPSCRAPER_SLOW_MO_MS",
    ):
        monkeypatch.delenv(name, raising=False)

    kwargs = playwright_env.launch_kwargs(headless=True)

    assert kwargs["headless"] is True
    assert "proxy" not in kwargs
    assert "channel" not in kwargs
    assert "--disable-blink-features=AutomationControlled" in kwargs["args"]


def test_random_context_options_bounds() -> None:
    for _ in range(20):
        options = playwright_env.random_context_options()
        assert options["user_agent"] in playwright_env.USER_AGENTS
        assert 1366 <= options["viewport"]["width"] < 1466
        assert 768 <= options["viewport"]["height"] < 868


def test_wait_policy_multiplier(monkeypatch) -> None:
    monkeypatch.setenv("MAPSCRAPER_WAIT_MULTIPLIER", "0.5")
    monkeypatch.delenv("MAPSCRAPER_WAIT_MIN_MS", raising=False)
    monkeypatch.delenv("MAPSCRAPER_WAIT_MAX_MS", raising=False)
    assert playwright_env.apply_wait_policy(400, 1000) == (200, 500)


def test_human_wait_stays_within_bounds(monkeypatch) -> None:
    slept: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        slept.append(seconds)

    monkeypatch.setenv("MAPSCRAPER_WAIT_MULTIPLIER", "0")
    monkeypatch.delenv("MAPSCRAPER_WAIT_MIN_MS", raising=False)
    monkeypatch.delenv("MAPSCRAPER_WAIT_MAX_MS", raising=False)

    assert asyncio.run(dom_utils.human_wait(200, 600, sleep=fake_sleep)) == 0
    delay_ms = asyncio.run(dom_utils.human_wait(200, 600, obey_policy=False, sleep=fake_sleep))

    assert slept[0] == 0
    assert 200 <= delay_ms <= 600
    assert slept[1] == delay_ms / 1000


def test_pick_delay_ms_clamps_inverted_bounds() -> None:
    assert dom_utils.pick_delay_ms(-50, -100, obey_policy=False) == 0
    assert dom_utils.pick_delay_ms(500, 100, obey_policy=False) == 500
