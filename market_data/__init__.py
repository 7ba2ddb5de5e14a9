"""Market data models and collaborators."""

from .binance import BinanceClient, BinanceClientConfig, interval_to_milliseconds
from .feed import BinanceMarketFeed, CandleFeed, PriceFeed
from .models import Candle, normalize_symbol, to_datetime, to_milliseconds

__all__ = [
    "BinanceClient",
    "BinanceClientConfig",
    "BinanceMarketFeed",
    "Candle",
    "CandleFeed",
    "PriceFeed",
    "interval_to_milliseconds",
    "normalize_symbol",
    "to_datetime",
    "to_milliseconds",
]
