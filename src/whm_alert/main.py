from __future__ import annotations

import argparse
import dataclasses
import logging
import os
import signal
import threading

from .config import AlertConfig, load_config
from .errors import ConfigError
from .fetchers import SUPPORTED_PLATFORMS
from .runner import build_runner


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="whm-alert", description="CI/CD pipeline alerting system")
    p.add_argument("--config", default=None, help="Path to JSON config file (flags below are ignored when set)")
    p.add_argument("-p", "--platform", choices=SUPPORTED_PLATFORMS, help="CI/CD platform")
    p.add_argument("-t", "--token", default=None, help="API token. Defaults to env WHM_ALERT_TOKEN")
    p.add_argument("-o", "--owner", help="Repository owner")
    p.add_argument("-r", "--repo", help="Repository name")
    p.add_argument("-w", "--webhook", action="append", default=[], help="Generic webhook URL (repeatable)")
    p.add_argument("-s", "--slack", action="append", default=[], help="Slack webhook URL (repeatable)")
    p.add_argument("--discord", action="append", default=[], help="Discord webhook URL (repeatable)")
    p.add_argument("-i", "--interval", type=int, default=60, help="Check interval in seconds")
    p.add_argument("--api-url", default=None, help="API base URL (GitHub Enterprise / self-hosted GitLab)")
    p.add_argument("--watch", action="store_true", help="Enable continuous monitoring")
    p.add_argument(
        "--log-level",
        default=None,
        help="Log level (DEBUG/INFO/WARNING/ERROR). Defaults to env WHM_ALERT_LOG_LEVEL or INFO",
    )
    return p


def _resolve_log_level(value: str | None) -> int:
    v = (value or "").strip().upper()
    if not v:
        return logging.INFO
    level = logging.getLevelNamesMapping().get(v)
    if isinstance(level, int):
        return level
    return logging.INFO


def config_from_args(args: argparse.Namespace) -> AlertConfig:
    if args.config:
        config = load_config(args.config)
        if args.watch and not config.watch:
            config = dataclasses.replace(config, watch=True)
        return config

    return AlertConfig(
        platform=(args.platform or "").lower(),
        token=args.token or os.environ.get("WHM_ALERT_TOKEN"),
        owner=args.owner or "",
        repo=args.repo or "",
        slack_webhooks=tuple(args.slack),
        webhook_urls=tuple(args.webhook),
        discord_webhooks=tuple(args.discord),
        poll_interval_seconds=args.interval,
        watch=bool(args.watch),
        api_url=args.api_url,
    )


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    env_log_level = os.environ.get("WHM_ALERT_LOG_LEVEL")
    logging.basicConfig(
        level=_resolve_log_level(args.log_level or env_log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger = logging.getLogger("whm_alert")

    try:
        config = config_from_args(args)
        runner = build_runner(config)
    except ConfigError as e:
        logger.error("config error: %s", e)
        return 1

    logger.info(
        "whm-alert start: repository=%s platform=%s mode=%s interval_seconds=%d",
        config.repository,
        config.platform,
        "watch" if config.watch else "once",
        config.poll_interval_seconds,
    )
    logger.info("sinks: %s", "; ".join(f"{type(s).__name__}({s.channel()})" for s in runner.sinks))

    stop = threading.Event()
    if config.watch:

        def _request_stop(signum: int, _frame: object) -> None:
            logger.info("received signal %s; stopping after current cycle", signal.Signals(signum).name)
            stop.set()

        signal.signal(signal.SIGINT, _request_stop)
        signal.signal(signal.SIGTERM, _request_stop)
        logger.info("Watching for changes... (Ctrl+C to stop)")

    runner.run(watch=config.watch, stop=stop)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
