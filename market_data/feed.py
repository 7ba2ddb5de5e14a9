from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List

from .binance import MAX_KLINES, BinanceClient
from .models import Candle


class CandleFeed(ABC):
    """Source of chronologically ordered candles."""

    @abstractmethod
    def get_candles(self, symbol: str, timeframe: str, limit: int) -> List[Candle]:
        """Return up to ``limit`` most recent candles, oldest first."""


class PriceFeed(ABC):
    """Source of last-trade prices."""

    @abstractmethod
    def get_last_price(self, symbol: str) -> float:
        """Return the latest trade price for ``symbol``."""


class BinanceMarketFeed(CandleFeed, PriceFeed):
    """Candle and price feed backed by the Binance REST API."""

    def __init__(self, client: BinanceClient, logger: logging.Logger | None = None) -> None:
        self._client = client
        self._log = logger or logging.getLogger(__name__)

    def get_candles(self, symbol: str, timeframe: str, limit: int) -> List[Candle]:
        limit = min(limit, MAX_KLINES)
        candles = self._client.fetch_recent_klines(symbol=symbol, interval=timeframe, limit=limit)
        self._log.debug("Fetched %s %s candles for %s", len(candles), timeframe, symbol)
        return candles

    def get_last_price(self, symbol: str) -> float:
        return self._client.fetch_last_price(symbol)
