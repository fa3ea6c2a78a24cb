import logging

import pytest

from whm_alert import main as main_module
from whm_alert.main import build_arg_parser, config_from_args, main


def test_missing_sinks_exits_with_error(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.ERROR)
    code = main(["-p", "github", "-t", "t", "-o", "octo", "-r", "app"])
    assert code == 1
    assert "no_sinks_configured" in caplog.text


def test_flags_build_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WHM_ALERT_TOKEN", "from-env")
    args = build_arg_parser().parse_args(
        ["-p", "gitlab", "-o", "g", "-r", "p", "-s", "https://hooks.slack.com/a", "-w", "https://e/1", "-w", "https://e/2", "-i", "15", "--watch"]
    )
    config = config_from_args(args)
    assert config.platform == "gitlab"
    assert config.token == "from-env"
    assert config.slack_webhooks == ("https://hooks.slack.com/a",)
    assert config.webhook_urls == ("https://e/1", "https://e/2")
    assert config.poll_interval_seconds == 15
    assert config.watch is True


def test_once_mode_runs_single_cycle(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[bool] = []

    class _FakeRunner:
        sinks = ()

        def run(self, *, watch, stop=None):  # noqa: ANN001, ANN202, ARG002
            calls.append(watch)
            return 1

    monkeypatch.setattr(main_module, "build_runner", lambda config: _FakeRunner())
    code = main(["-p", "github", "-t", "t", "-o", "octo", "-r", "app", "-w", "https://example.com/h"])
    assert code == 0
    assert calls == [False]
