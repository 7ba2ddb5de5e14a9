from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Dict, List, Optional

import uvicorn

# Fields passed through ``extra=`` by the engine and the Binance client.
CONTEXT_FIELDS = ("symbol", "timeframe", "strategy", "action", "symbols", "path", "status")

# CLI option -> environment variable read by ``webserver.app`` at import time.
ENGINE_ENV = {
    "timeframe": "SIGNAL_TIMEFRAME",
    "strategy": "SIGNAL_STRATEGY",
    "symbols": "SIGNAL_SYMBOLS",
    "min_confidence": "SIGNAL_MIN_CONFIDENCE",
}


class ContextFormatter(logging.Formatter):
    """Appends the known ``extra`` context of a record as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        pairs = [f"{name}={getattr(record, name)}" for name in CONTEXT_FIELDS if hasattr(record, name)]
        return f"{line} | {' '.join(pairs)}" if pairs else line


def configure_logging(level: str) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(ContextFormatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), handlers=[handler])


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Serve the signal engine HTTP API.")
    parser.add_argument("--host", default=os.getenv("WEB_HOST", "0.0.0.0"), help="Bind address (default: 0.0.0.0)")
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("WEB_PORT", "9092")),
        help="Port to listen on (default: 9092)",
    )
    parser.add_argument("--reload", action="store_true", help="Reload on source changes")
    parser.add_argument("--log-level", default=os.getenv("WEB_LOG_LEVEL", "info"), help="Log level for app and uvicorn")
    parser.add_argument(
        "--local",
        action="store_true",
        help="Bind to loopback only and serve plain HTTP to localhost",
    )
    parser.add_argument("--timeframe", help="Default signal timeframe (SIGNAL_TIMEFRAME)")
    parser.add_argument("--strategy", help="Default scoring variant (SIGNAL_STRATEGY)")
    parser.add_argument("--symbols", help="Default comma-separated universe (SIGNAL_SYMBOLS)")
    parser.add_argument("--min-confidence", type=int, help="Minimum confidence to act (SIGNAL_MIN_CONFIDENCE)")
    return parser


def engine_environment(args: argparse.Namespace) -> Dict[str, str]:
    """Environment overrides for the app, derived from the parsed options."""
    env = {
        variable: str(getattr(args, option))
        for option, variable in ENGINE_ENV.items()
        if getattr(args, option) is not None
    }
    if args.local:
        env["WEB_FORCE_HTTPS"] = "false"
        env.setdefault("WEB_TRUSTED_HOSTS", os.getenv("WEB_TRUSTED_HOSTS", "localhost,127.0.0.1"))
    return env


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    host = "127.0.0.1" if args.local else args.host

    os.environ.update(engine_environment(args))
    configure_logging(args.log_level)

    server = uvicorn.Server(
        uvicorn.Config(
            "webserver.app:app",
            host=host,
            port=args.port,
            reload=args.reload,
            log_level=args.log_level,
            log_config=None,
        )
    )
    logging.getLogger("signal_engine.web").info(f"Serving signal API on {host}:{args.port}")
    try:
        server.run()
    except KeyboardInterrupt:
        logging.getLogger("signal_engine.web").info("Web server interrupted by user.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
