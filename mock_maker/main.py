#!/usr/bin/env python3
"""Mock market maker entry point: load settings, self-test the signer, run the scheduler."""

import argparse
import asyncio
import dataclasses
import os
import sys
from typing import List, Optional, Sequence

import aiohttp

from .alerts import TelegramNotifier
from .config import Settings, configure_logging, get_logger, load_env
from .cycle_engine import PairCycleEngine
from .exchange_client import ExchangeClient
from .price_oracle import PriceOracle
from .protocol import ConfigError, SignerError
from .scheduler import CycleScheduler
from .signer import RequestSigner

logger = get_logger("market_maker")

EXIT_STARTUP_FAILURE = 1


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Mock market maker: periodic order ladders and self-crossing trades")
    parser.add_argument("--env-file", default=None, help="Path to .env file (default: ./.env if present)")
    parser.add_argument("--log-level", default=None, help="Log level (overrides LOG_LEVEL)")
    parser.add_argument("--levels", type=int, default=None, help="Ladder depth per side (overrides LEVELS)")
    parser.add_argument("--interval-ms", type=int, default=None, help="Cycle interval in ms (overrides INTERVAL_MS)")
    parser.add_argument("--max-errors", type=int, default=None, help="Consecutive-error threshold (overrides MAX_ERRORS)")
    return parser.parse_args(argv)


def apply_runtime_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    overrides = {
        name: value
        for name, value in (
            ("levels", args.levels),
            ("interval_ms", args.interval_ms),
            ("max_errors", args.max_errors),
        )
        if value is not None
    }
    # replace() re-runs Settings validation
    return dataclasses.replace(settings, **overrides) if overrides else settings


def log_banner(settings: Settings, signer: RequestSigner) -> None:
    logger.info("=" * 50)
    logger.info("  Mock Market Maker (Multi-Pairs)")
    logger.info("=" * 50)
    logger.info("  Backend   : %s", settings.backend_url)
    logger.info("  Pairs     : %s", ", ".join(p.symbol for p in settings.pairs))
    logger.info("  Levels    : %d per side", settings.levels)
    logger.info("  Interval  : %.0fs", settings.interval_seconds)
    logger.info("  Max errors: %d  |  Telegram: %s", settings.max_errors, "✓" if settings.telegram_enabled else "✗")
    logger.info("  API Key   : %s...", settings.api_key[:8])
    logger.info("  Public key: %s", signer.public_key_hex)
    logger.info("=" * 50)


def build_engines(
    settings: Settings,
    client: ExchangeClient,
    oracle: PriceOracle,
    notifier: TelegramNotifier,
) -> List[PairCycleEngine]:
    return [
        PairCycleEngine(
            pair,
            client,
            oracle,
            notifier,
            levels=settings.levels,
            max_errors=settings.max_errors,
            price_decimals=settings.price_decimals,
            qty_decimals=settings.qty_decimals,
        )
        for pair in settings.pairs
    ]


async def run_market_maker(settings: Settings, signer: RequestSigner) -> int:
    timeout = aiohttp.ClientTimeout(total=settings.request_timeout)
    async with aiohttp.ClientSession(timeout=timeout) as session:
        client = ExchangeClient(settings.backend_url, settings.api_key, signer, session, settings.request_timeout)
        oracle = PriceOracle(session, settings.backend_url, settings.reference_url, settings.request_timeout)
        notifier = TelegramNotifier(
            session,
            settings.telegram_bot_token,
            settings.telegram_chat_id,
            tz_name=settings.alert_timezone,
        )
        scheduler = CycleScheduler(build_engines(settings, client, oracle, notifier), settings.interval_seconds)
        logger.info("🚀 Starting, Ctrl+C to stop")
        return await scheduler.run()


async def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        load_env(args.env_file)
        configure_logging(args.log_level or os.getenv("LOG_LEVEL", "INFO"))
        settings = apply_runtime_overrides(Settings.from_env(), args)
    except ConfigError as exc:
        configure_logging(args.log_level or "INFO")
        logger.error("❌ %s", exc)
        return EXIT_STARTUP_FAILURE

    # Verify signing works before starting
    try:
        signer = RequestSigner(settings.private_key_hex)
        signer.self_test()
    except SignerError as exc:
        logger.error("❌ Signing failed: %s", exc)
        return EXIT_STARTUP_FAILURE
    logger.info("✅ Signing OK")

    log_banner(settings, signer)
    return await run_market_maker(settings, signer)


def run() -> None:
    try:
        code = asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Received interrupt, shutting down")
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    run()
