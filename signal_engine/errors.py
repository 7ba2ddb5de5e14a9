from __future__ import annotations


class SignalEngineError(Exception):
    """Base class for per-instrument evaluation failures."""

    def __init__(self, message: str, *, symbol: str | None = None) -> None:
        super().__init__(message)
        self.symbol = symbol


class InsufficientDataError(SignalEngineError):
    """Fewer bars than the widest indicator window needs."""

    def __init__(self, message: str, *, symbol: str | None = None, available: int = 0, required: int = 0) -> None:
        super().__init__(message, symbol=symbol)
        self.available = available
        self.required = required


class MalformedDataError(SignalEngineError, ValueError):
    """Candles that violate OHLCV invariants or ordering."""


class FetchError(SignalEngineError):
    """The market-data collaborator failed for one instrument."""


class ComputationError(SignalEngineError):
    """Unexpected failure while computing a signal from well-formed candles."""
