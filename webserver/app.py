from __future__ import annotations

import logging
import os
from collections import Counter
from dataclasses import replace
from datetime import datetime, timezone
from typing import Awaitable, Callable

from fastapi import FastAPI, HTTPException, Query, Request  # type: ignore[import-not-found]
from fastapi.concurrency import run_in_threadpool  # type: ignore[import-not-found]
from fastapi.middleware.cors import CORSMiddleware  # type: ignore[import-not-found]
from fastapi.middleware.httpsredirect import HTTPSRedirectMiddleware  # type: ignore[import-not-found]
from fastapi.middleware.trustedhost import TrustedHostMiddleware  # type: ignore[import-not-found]

from market_data import BinanceClient, BinanceMarketFeed
from signal_engine import DEFAULT_SYMBOLS, Action, EngineConfig, SignalOrchestrator, result_to_dict

from .models import HealthResponse, SignalsResponse


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _list_env(name: str, default: str) -> list[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


logger = logging.getLogger("signalweb")


def engine_config_from_env() -> EngineConfig:
    higher = os.getenv("SIGNAL_HIGHER_TIMEFRAME") or None
    return EngineConfig(
        timeframe=os.getenv("SIGNAL_TIMEFRAME", "15m"),
        strategy=os.getenv("SIGNAL_STRATEGY", "classic"),
        lookback_bars=int(os.getenv("SIGNAL_LOOKBACK_BARS", "200")),
        min_confidence_to_act=int(os.getenv("SIGNAL_MIN_CONFIDENCE", "40")),
        higher_timeframe=higher,
        confidence_age_decay=_bool_env("SIGNAL_AGE_DECAY", False),
    )


def _default_orchestrator() -> SignalOrchestrator:
    feed = BinanceMarketFeed(BinanceClient())
    return SignalOrchestrator(feed, price_feed=feed, config=engine_config_from_env())


def create_app(
    orchestrator: SignalOrchestrator | None = None,
    *,
    default_symbols: list[str] | None = None,
    trusted_hosts: list[str] | None = None,
    allowed_origins: list[str] | None = None,
    force_https: bool | None = None,
) -> FastAPI:
    """Build the signals API around ``orchestrator`` (Binance-backed when omitted)."""
    engine = orchestrator or _default_orchestrator()
    symbols_default = default_symbols or _list_env("SIGNAL_SYMBOLS", ",".join(DEFAULT_SYMBOLS))
    hosts = trusted_hosts if trusted_hosts is not None else _list_env("WEB_TRUSTED_HOSTS", "localhost,127.0.0.1")
    origins = (
        allowed_origins
        if allowed_origins is not None
        else _list_env("WEB_ALLOWED_ORIGINS", "http://localhost:9092,http://127.0.0.1:9092")
    )
    https_only = force_https if force_https is not None else _bool_env("WEB_FORCE_HTTPS", True)

    app = FastAPI(title="Signal Engine", version="1.0.0")
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=hosts)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=False,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    if https_only:
        app.add_middleware(HTTPSRedirectMiddleware)

    @app.middleware("http")
    async def security_headers(request: Request, call_next: Callable[[Request], Awaitable]):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        response.headers.setdefault("Cache-Control", "no-store")
        return response

    @app.get("/api/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(
            timeframe=engine.config.timeframe,
            strategy=engine.config.strategy,
            server_time=datetime.now(timezone.utc),
        )

    @app.get("/api/signals", response_model=SignalsResponse)
    async def get_signals(
        timeframe: str | None = Query(default=None),
        strategy: str | None = Query(default=None),
        symbols: str | None = Query(default=None, description="Comma-separated symbols"),
        actionable_only: bool = Query(default=False),
    ) -> SignalsResponse:
        try:
            config = replace(
                engine.config,
                timeframe=timeframe or engine.config.timeframe,
                strategy=strategy or engine.config.strategy,
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        requested = [item.strip() for item in symbols.split(",") if item.strip()] if symbols else symbols_default
        if not requested:
            raise HTTPException(status_code=400, detail="No symbols requested")

        logger.info(
            "Evaluating signals",
            extra={"timeframe": config.timeframe, "strategy": config.strategy, "symbols": len(requested)},
        )
        result = await run_in_threadpool(engine.evaluate, requested, config)

        payload = result_to_dict(result, actionable_only=actionable_only)
        counts = Counter(signal.action.value for signal in result.signals)
        payload["counts"] = {action.value: counts.get(action.value, 0) for action in Action}
        return SignalsResponse.model_validate(payload)

    return app


app = create_app()
