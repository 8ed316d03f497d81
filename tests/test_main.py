import logging

import pytest

from mapscraper import main as cli
from mapscraper import playwright_env
from mapscraper.logging_config import configure_logging
from mapscraper.settings import ScraperSettings


def test_parse_args_splits_comma_lists() -> None:
    args = cli.parse_args(["--keywords", "cafe, bakery,", "--regions", "Tehran,Qom", "--workers", "3"])
    assert args.keywords == ["cafe", "bakery"]
    assert args.regions == ["Tehran", "Qom"]
    assert args.workers == 3
    assert args.concurrency is None
    assert args.merge_only is False


def test_parse_args_rejects_non_positive_pool_sizes() -> None:
    with pytest.raises(SystemExit):
        cli.parse_args(["--concurrency", "0"])
    with pytest.raises(SystemExit):
        cli.parse_args(["--pan-steps", "-1"])


def test_resolve_settings_applies_overrides(monkeypatch) -> None:
    monkeypatch.delenv("MAPSCRAPER_HEADLESS", raising=False)
    args = cli.parse_args(
        ["--keywords", "cafe", "--regions", "Qom", "--concurrency", "4", "--pan-steps", "0", "--headful"]
    )

    settings = cli.resolve_settings(args)

    assert settings.keywords == ("cafe",)
    assert settings.regions == ("Qom",)
    assert settings.searchers == 4
    assert settings.pan_steps == 0
    assert settings.headless is False


def test_resolve_settings_reads_headless_env(monkeypatch) -> None:
    monkeypatch.setenv("MAPSCRAPER_HEADLESS", "0")
    settings = cli.resolve_settings(cli.parse_args([]))
    assert settings.headless is False
    assert settings.keywords == ("مبلمان",)


def test_merge_only_exports_existing_batches(tmp_path, monkeypatch) -> None:
    from mapscraper.extractors.schemas import DetailRecord
    from mapscraper.storage.batches import BatchStore

    temp_dir = tmp_path / "temp"
    out_dir = tmp_path / "out"
    BatchStore(temp_dir).write_batch(
        [DetailRecord(keyword="k", region="r", maps_url="https://www.google.com/maps/place/A")], "k_r", 1
    )
    monkeypatch.setattr(
        cli,
        "load_settings",
        lambda path=None: ScraperSettings(output_dir=str(out_dir), temp_dir=str(temp_dir)),
    )

    cli.main(["--merge-only"])

    assert len(list(out_dir.glob("results_*.json"))) == 1
    assert len(list(out_dir.glob("results_*.csv"))) == 1


def test_missing_queries_exit_with_config_error(monkeypatch) -> None:
    monkeypatch.setattr(cli, "load_settings", lambda path=None: ScraperSettings())
    with pytest.raises(SystemExit) as excinfo:
        cli.main([])
    assert excinfo.value.code == 2


def test_parse_args_accepts_log_level() -> None:
    assert cli.parse_args(["--log-level", "debug"]).log_level == "debug"
    assert cli.parse_args([]).log_level is None


def test_headful_flag_beats_headless_env_at_launch(monkeypatch) -> None:
    monkeypatch.setenv("MAPSCRAPER_HEADLESS", "1")

    settings = cli.resolve_settings(cli.parse_args(["--headful"]))

    assert settings.headless is False
    assert playwright_env.launch_kwargs(settings.headless)["headless"] is False


def test_log_level_from_dotenv_applies_to_package_logger(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.setattr(
        cli,
        "load_settings",
        lambda path=None: ScraperSettings(output_dir=str(tmp_path / "out"), temp_dir=str(tmp_path / "temp")),
    )
    monkeypatch.setattr(cli, "load_dotenv", lambda: monkeypatch.setenv("LOG_LEVEL", "DEBUG"))

    try:
        cli.main(["--merge-only"])
        assert logging.getLogger("mapscraper").level == logging.DEBUG
    finally:
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        configure_logging()
