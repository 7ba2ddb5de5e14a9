"""Signal scoring, trade setups and the multi-instrument orchestrator."""

from .bollinger_strategy import BollingerStrategy, BollingerStrategyConfig
from .classic_strategy import ClassicStrategy, ClassicStrategyConfig
from .config import ALLOWED_STRATEGIES, ALLOWED_TIMEFRAMES, DEFAULT_SYMBOLS, EngineConfig
from .continuity import ContinuityKey, ContinuityRecord, ContinuityStore, InMemoryContinuityStore
from .errors import (
    ComputationError,
    FetchError,
    InsufficientDataError,
    MalformedDataError,
    SignalEngineError,
)
from .ict_strategy import IctStrategy, IctStrategyConfig
from .models import (
    Action,
    EvaluationResult,
    Signal,
    SignalQuality,
    SignalScore,
    SkippedInstrument,
    SkipReason,
    TradeSetup,
)
from .orchestrator import SignalOrchestrator
from .reasons import ReasonCode, describe
from .registry import build_strategy
from .serialization import result_to_dict, signal_to_dict
from .smc_strategy import SmcStrategy, SmcStrategyConfig
from .strategy import SignalStrategy
from .trade_setup import TradeSetupSettings, atr_trade_setup, price_precision, structure_trade_setup
from .validation import validate_candles
from .watcher import SignalWatcher, SignalWatcherSettings

__all__ = [
    "ALLOWED_STRATEGIES",
    "ALLOWED_TIMEFRAMES",
    "Action",
    "BollingerStrategy",
    "BollingerStrategyConfig",
    "ClassicStrategy",
    "ClassicStrategyConfig",
    "ComputationError",
    "ContinuityKey",
    "ContinuityRecord",
    "ContinuityStore",
    "DEFAULT_SYMBOLS",
    "EngineConfig",
    "EvaluationResult",
    "FetchError",
    "IctStrategy",
    "IctStrategyConfig",
    "InMemoryContinuityStore",
    "InsufficientDataError",
    "MalformedDataError",
    "ReasonCode",
    "Signal",
    "SignalEngineError",
    "SignalOrchestrator",
    "SignalQuality",
    "SignalScore",
    "SignalStrategy",
    "SignalWatcher",
    "SignalWatcherSettings",
    "SkipReason",
    "SkippedInstrument",
    "SmcStrategy",
    "SmcStrategyConfig",
    "TradeSetup",
    "TradeSetupSettings",
    "atr_trade_setup",
    "build_strategy",
    "describe",
    "price_precision",
    "result_to_dict",
    "signal_to_dict",
    "structure_trade_setup",
    "validate_candles",
]
