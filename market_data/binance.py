from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import ProxyHandler, Request, build_opener

from .models import Candle, normalize_symbol

BINANCE_BASE_URL = "https://api.binance.com"
MAX_KLINES = 1000


def interval_to_milliseconds(interval: str) -> int:
    """Translate Binance interval strings into millisecond durations."""
    normalized = interval.strip()
    mapping = {
        "1m": 60_000,
        "3m": 180_000,
        "5m": 300_000,
        "15m": 900_000,
        "30m": 1_800_000,
        "1h": 3_600_000,
        "2h": 7_200_000,
        "4h": 14_400_000,
        "6h": 21_600_000,
        "8h": 28_800_000,
        "12h": 43_200_000,
        "1d": 86_400_000,
        "3d": 259_200_000,
        "1w": 604_800_000,
    }
    if normalized not in mapping:
        raise ValueError(f"Unsupported interval: {interval}")
    return mapping[normalized]


@dataclass(frozen=True)
class BinanceClientConfig:
    base_url: str = BINANCE_BASE_URL
    timeout: float = 10.0
    proxies: Dict[str, str] | None = None
    max_retries: int = 3
    initial_retry_delay: float = 0.5  # seconds
    max_retry_delay: float = 10.0  # seconds
    retry_backoff_multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.max_retries <= 0:
            raise ValueError("max_retries must be positive")


class BinanceClient:
    """Binance spot REST client for recent klines and last-trade prices.

    Transient failures (5xx, 408, 429, connection errors, timeouts) are retried
    with exponential backoff; everything else fails fast with ``RuntimeError``.
    """

    def __init__(self, config: BinanceClientConfig | None = None, logger: logging.Logger | None = None) -> None:
        config = config or BinanceClientConfig()
        self._base_url = config.base_url.rstrip("/")
        self._timeout = config.timeout
        self._max_retries = config.max_retries
        self._initial_retry_delay = config.initial_retry_delay
        self._max_retry_delay = config.max_retry_delay
        self._retry_backoff_multiplier = config.retry_backoff_multiplier
        self._log = logger or logging.getLogger(__name__)
        handlers = []
        if config.proxies:
            handlers.append(ProxyHandler(config.proxies))
        self._opener = build_opener(*handlers)

    def fetch_recent_klines(self, *, symbol: str, interval: str, limit: int) -> List[Candle]:
        """Return the most recent ``limit`` klines, oldest first."""
        if limit <= 0 or limit > MAX_KLINES:
            raise ValueError(f"limit must be in 1..{MAX_KLINES}")
        interval_to_milliseconds(interval)
        symbol = normalize_symbol(symbol)
        payload = self._get_json(
            "/api/v3/klines",
            {"symbol": symbol, "interval": interval, "limit": limit},
        )
        if not isinstance(payload, list):
            raise RuntimeError(f"Unexpected klines payload for {symbol}")
        return [Candle.from_binance(symbol, interval, kline) for kline in payload]

    def fetch_last_price(self, symbol: str) -> float:
        symbol = normalize_symbol(symbol)
        payload = self._get_json("/api/v3/ticker/price", {"symbol": symbol})
        try:
            return float(payload["price"])
        except (KeyError, TypeError, ValueError) as exc:
            raise RuntimeError(f"Unexpected ticker payload for {symbol}: {payload!r}") from exc

    def close(self) -> None:
        # urllib opener does not require explicit closing; kept for symmetry.
        return

    # ------------------------------------------------------------------ #
    # Transport
    # ------------------------------------------------------------------ #

    def _get_json(self, path: str, params: Dict[str, str | int]) -> Any:
        request = Request(f"{self._base_url}{path}?{urlencode(params)}")
        context = {"path": path, "symbol": params.get("symbol")}

        last_exception: Exception | None = None
        delay = self._initial_retry_delay

        for attempt in range(self._max_retries):
            try:
                with self._opener.open(request, timeout=self._timeout) as response:
                    body = response.read()
                return json.loads(body)

            except HTTPError as exc:
                # Client errors are final except 429 (rate limit) and 408 (timeout)
                if 400 <= exc.code < 500 and exc.code not in (429, 408):
                    raise RuntimeError(f"Binance request failed with status {exc.code}: {exc.reason}") from exc

                last_exception = exc
                if attempt < self._max_retries - 1:
                    self._log.warning(
                        f"HTTP error {exc.code} on attempt {attempt + 1}/{self._max_retries}, "
                        f"retrying in {delay:.1f}s...",
                        extra={**context, "status": exc.code},
                    )
                else:
                    raise RuntimeError(
                        f"Binance request failed after {self._max_retries} attempts with status {exc.code}: {exc.reason}"
                    ) from exc

            except URLError as exc:
                last_exception = exc
                error_msg = str(exc.reason) if exc.reason else str(exc)
                if attempt < self._max_retries - 1:
                    self._log.warning(
                        f"Connection error on attempt {attempt + 1}/{self._max_retries}, "
                        f"retrying in {delay:.1f}s: {error_msg}",
                        extra=context,
                    )
                else:
                    raise RuntimeError(
                        f"Binance request failed after {self._max_retries} attempts: {error_msg}"
                    ) from exc

            except (TimeoutError, OSError) as exc:
                last_exception = exc
                if attempt < self._max_retries - 1:
                    self._log.warning(
                        f"Timeout/OS error on attempt {attempt + 1}/{self._max_retries}, "
                        f"retrying in {delay:.1f}s: {exc}",
                        extra=context,
                    )
                else:
                    raise RuntimeError(
                        f"Binance request failed after {self._max_retries} attempts: {exc}"
                    ) from exc

            except json.JSONDecodeError as exc:
                raise RuntimeError(f"Binance returned invalid JSON for {path}") from exc

            if attempt < self._max_retries - 1:
                time.sleep(delay)
                delay = min(delay * self._retry_backoff_multiplier, self._max_retry_delay)

        if last_exception:
            raise RuntimeError(f"Binance request failed after {self._max_retries} attempts") from last_exception
        raise RuntimeError("Binance request failed for unknown reason")
