import argparse
import asyncio
import signal
import sys
from contextlib import suppress
from typing import List, Optional

from loguru import logger

from announcement_monitor.config.loader import AppConfig
from announcement_monitor.core.models import ConfigError, DEFAULT_POLL_INTERVAL
from announcement_monitor.notifiers.base import EventSink
from announcement_monitor.notifiers.log_sink import LogSink
from announcement_monitor.notifiers.telegram import TelegramNotifier
from announcement_monitor.orchestrator import run_until_stopped
from announcement_monitor.utils.logger import setup_logging


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="announcement-monitor",
        description="Poll exchange announcement feeds and report new token listings",
    )
    p.add_argument("-e", "--exchanges", default=None,
                   help="Comma separated exchange ids to monitor (default: all)")
    p.add_argument("-i", "--interval", type=float, default=None,
                   help=f"Default polling interval in seconds (default: {DEFAULT_POLL_INTERVAL:g})")
    p.add_argument("--exchange-intervals", default=None,
                   help="Per-exchange intervals, e.g. binance:60,okx:120")
    p.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    p.add_argument("--env-file", default=None, help="Path to a .env file")
    p.add_argument("--config", default=None, help="Path to the YAML config (default: config/monitor.yaml)")
    p.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines")
    p.add_argument("--seed", action="store_true",
                   help="Record the current announcements on the first poll without reporting them")
    return p


def build_sinks(config: AppConfig) -> List[EventSink]:
    sinks: List[EventSink] = [LogSink()]
    if config.telegram.enabled:
        sinks.append(TelegramNotifier(
            config.telegram.bot_token,
            config.telegram.chat_id,
            config.telegram.thread_id,
            config.telegram.listings_only,
        ))
    return sinks


async def run(config: AppConfig):
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _set_stop():
        if not stop_event.is_set():
            logger.info("Termination signal received.")
            stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        with suppress(NotImplementedError):
            loop.add_signal_handler(sig, _set_stop)

    await run_until_stopped(config, build_sinks(config), stop_event)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = AppConfig.load(
            config_path=args.config,
            env_file=args.env_file,
            exchanges=args.exchanges,
            interval=args.interval,
            exchange_intervals=args.exchange_intervals,
            log_level=args.log_level,
            json_logs=args.json_logs,
            seed=args.seed,
        )
        monitor_configs = config.monitor_configs()
    except ConfigError as e:
        sys.stderr.write(f"Configuration error: {e}\n")
        return 2

    setup_logging(config.general.log_level, config.general.json_logs, config.general.log_dir)
    enabled = [c.exchange_id.display_name for c in monitor_configs if c.enabled]
    logger.info(f"🚀 Starting announcement monitor | {', '.join(enabled) or 'no exchanges'}")

    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    logger.info("✅ Shutdown complete")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
