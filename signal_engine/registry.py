from __future__ import annotations

from typing import Callable, Dict

from .bollinger_strategy import BollingerStrategy
from .classic_strategy import ClassicStrategy
from .ict_strategy import IctStrategy
from .smc_strategy import SmcStrategy
from .strategy import SignalStrategy

STRATEGIES: Dict[str, Callable[[], SignalStrategy]] = {
    ClassicStrategy.name: ClassicStrategy,
    SmcStrategy.name: SmcStrategy,
    IctStrategy.name: IctStrategy,
    BollingerStrategy.name: BollingerStrategy,
}


def build_strategy(name: str) -> SignalStrategy:
    try:
        factory = STRATEGIES[name]
    except KeyError as exc:
        raise ValueError(f"Unknown strategy: {name}. Choose from {', '.join(STRATEGIES)}") from exc
    return factory()
