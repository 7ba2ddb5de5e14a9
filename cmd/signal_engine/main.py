from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

from market_data import BinanceClient, BinanceClientConfig, BinanceMarketFeed
from market_structure import TimeRange
from signal_engine import (
    ALLOWED_STRATEGIES,
    DEFAULT_SYMBOLS,
    EngineConfig,
    InMemoryContinuityStore,
    SignalOrchestrator,
    SignalWatcher,
    SignalWatcherSettings,
    result_to_dict,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Score Binance symbols and report BUY/SELL/WAIT/EXIT signals with trade setups.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--timeframe", default="15m", help="Binance interval, e.g. 5m, 15m, 1h.")
    parser.add_argument("--strategy", default="classic", choices=ALLOWED_STRATEGIES, help="Scoring variant.")
    parser.add_argument("--symbols", default=",".join(DEFAULT_SYMBOLS), help="Comma-separated list of symbols.")
    parser.add_argument("--lookback-bars", type=int, default=200, help="Candles fetched per symbol.")
    parser.add_argument("--swing-neighbors", type=int, default=3, help="Bars on each side confirming a swing.")
    parser.add_argument("--liquidity-tolerance", type=float, default=0.3, help="Level clustering tolerance in percent.")
    parser.add_argument("--min-confidence", type=int, default=40, help="Minimum confidence for an actionable signal.")
    parser.add_argument(
        "--kill-zone",
        action="append",
        dest="kill_zones",
        help="Kill zone as name=HH:MM-HH:MM in UTC (repeatable; replaces the defaults).",
    )
    parser.add_argument("--higher-timeframe", help="Optional slower interval used as a trend filter.")
    parser.add_argument("--max-workers", type=int, default=8, help="Parallel instrument evaluations.")
    parser.add_argument("--no-live-price", action="store_true", help="Score on the last candle close only.")
    parser.add_argument("--age-decay", action="store_true", help="Lower confidence of long-standing signals.")

    parser.add_argument("--watch", action="store_true", help="Keep evaluating after every candle close.")
    parser.add_argument(
        "--epsilon-minutes",
        type=float,
        default=0.1,
        help="Extra minutes to wait after the candle close before evaluating again.",
    )
    parser.add_argument("--snapshot-file", type=Path, help="Write the latest batch as JSON to this path.")
    parser.add_argument("--actionable-only", action="store_true", help="Print only actionable signals.")

    # Network configuration
    parser.add_argument("--http-proxy", dest="http_proxy", help="HTTP proxy for Binance.")
    parser.add_argument("--https-proxy", dest="https_proxy", help="HTTPS proxy for Binance.")
    parser.add_argument("--proxy", dest="proxy", help="Shortcut to set both HTTP/HTTPS proxies.")

    parser.add_argument("--log-level", default="INFO", help="Logging level.")
    return parser


def load_env_config() -> Dict[str, str]:
    env = os.getenv
    return {
        "timeframe": env("SIGNAL_TIMEFRAME", ""),
        "strategy": env("SIGNAL_STRATEGY", ""),
        "symbols": env("SIGNAL_SYMBOLS", ""),
        "lookback_bars": env("SIGNAL_LOOKBACK_BARS", ""),
        "min_confidence": env("SIGNAL_MIN_CONFIDENCE", ""),
        "higher_timeframe": env("SIGNAL_HIGHER_TIMEFRAME", ""),
        "snapshot_file": env("SIGNAL_SNAPSHOT_FILE", ""),
        "proxy": env("BINANCE_PROXY", ""),
    }


def apply_env_defaults(args: argparse.Namespace, config: Dict[str, str]) -> argparse.Namespace:
    if config["timeframe"]:
        args.timeframe = config["timeframe"]
    if config["strategy"]:
        args.strategy = config["strategy"]
    if config["symbols"]:
        args.symbols = config["symbols"]
    if config["lookback_bars"]:
        args.lookback_bars = int(config["lookback_bars"])
    if config["min_confidence"]:
        args.min_confidence = int(config["min_confidence"])
    if config["higher_timeframe"]:
        args.higher_timeframe = config["higher_timeframe"]
    if config["snapshot_file"]:
        args.snapshot_file = Path(config["snapshot_file"])
    if config["proxy"] and not args.proxy:
        args.proxy = config["proxy"]
    return args


def resolve_symbols_argument(value: Optional[str]) -> List[str]:
    if not value:
        return list(DEFAULT_SYMBOLS)
    return [token.strip().upper() for token in value.split(",") if token.strip()]


def build_engine_config(args: argparse.Namespace) -> EngineConfig:
    kwargs = dict(
        timeframe=args.timeframe,
        strategy=args.strategy,
        lookback_bars=args.lookback_bars,
        swing_neighbor_count=args.swing_neighbors,
        liquidity_tolerance_pct=args.liquidity_tolerance,
        min_confidence_to_act=args.min_confidence,
        higher_timeframe=args.higher_timeframe or None,
        max_workers=args.max_workers,
        use_live_price=not args.no_live_price,
        confidence_age_decay=args.age_decay,
    )
    if args.kill_zones:
        kwargs["kill_zones"] = tuple(TimeRange.parse(item) for item in args.kill_zones)
    return EngineConfig(**kwargs)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logger = logging.getLogger("signal_engine")

    args = apply_env_defaults(args, load_env_config())
    try:
        config = build_engine_config(args)
    except ValueError as exc:
        parser.error(str(exc))

    proxy_map: Dict[str, str] = {}
    if args.proxy:
        proxy_map["http"] = args.proxy
        proxy_map["https"] = args.proxy
    if args.http_proxy:
        proxy_map["http"] = args.http_proxy
    if args.https_proxy:
        proxy_map["https"] = args.https_proxy

    binance_client = BinanceClient(
        BinanceClientConfig(proxies=proxy_map or None),
        logger=logging.getLogger("signal_engine.binance"),
    )
    feed = BinanceMarketFeed(binance_client)
    orchestrator = SignalOrchestrator(
        feed,
        price_feed=feed,
        store=InMemoryContinuityStore(),
        config=config,
        logger=logger,
    )
    settings = SignalWatcherSettings(
        symbols=resolve_symbols_argument(args.symbols),
        poll_epsilon_minutes=args.epsilon_minutes,
        snapshot_file=args.snapshot_file,
    )
    watcher = SignalWatcher(orchestrator, settings, logger=logger)

    try:
        if args.watch:
            watcher.run()
        else:
            result = watcher.run_once()
            print(json.dumps(result_to_dict(result, actionable_only=args.actionable_only), indent=2))
    finally:
        binance_client.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
