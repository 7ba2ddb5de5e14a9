"""Entry, stop-loss and targets for an actionable decision."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .models import Action, TradeSetup


@dataclass(frozen=True)
class TradeSetupSettings:
    stop_atr_multiple: float = 1.0
    target1_atr_multiple: float = 1.5
    target2_atr_multiple: float = 2.5
    structure_buffer_atr: float = 0.2
    max_stop_atr: float = 3.0
    max_target_atr: float = 6.0
    min_reward_ratio: float = 1.0
    atr_fallback_pct: float = 1.0

    def __post_init__(self) -> None:
        if self.stop_atr_multiple <= 0:
            raise ValueError("stop_atr_multiple must be positive")
        if self.target1_atr_multiple <= self.stop_atr_multiple:
            raise ValueError("target1_atr_multiple must exceed stop_atr_multiple")
        if self.target2_atr_multiple <= self.target1_atr_multiple:
            raise ValueError("target2_atr_multiple must exceed target1_atr_multiple")
        if self.structure_buffer_atr < 0:
            raise ValueError("structure_buffer_atr must be non-negative")
        if self.max_stop_atr <= 0 or self.max_target_atr <= 0:
            raise ValueError("structure distances must be positive")
        if self.min_reward_ratio <= 0:
            raise ValueError("min_reward_ratio must be positive")
        if self.atr_fallback_pct <= 0:
            raise ValueError("atr_fallback_pct must be positive")


def price_precision(price: float) -> int:
    """Decimal places used when quoting ``price``."""
    if price >= 1000:
        return 2
    if price >= 1:
        return 4
    return 6


def _effective_atr(entry: float, atr: Optional[float], settings: TradeSetupSettings) -> float:
    if atr is None or atr <= 0:
        return entry * settings.atr_fallback_pct / 100.0
    return atr


def _finalize(
    action: Action,
    entry: float,
    stop: float,
    target1: float,
    target2: float,
    precision: int,
) -> Optional[TradeSetup]:
    entry = round(entry, precision)
    stop = round(stop, precision)
    target1 = round(target1, precision)
    target2 = round(target2, precision)
    if action is Action.BUY:
        ordered = stop < entry < target1 <= target2
    else:
        ordered = stop > entry > target1 >= target2
    if not ordered:
        return None
    risk_reward = round(abs(target1 - entry) / abs(entry - stop), 2)
    if risk_reward <= 0:
        return None
    return TradeSetup(entry=entry, stop_loss=stop, target1=target1, target2=target2, risk_reward=risk_reward)


def atr_trade_setup(
    action: Action,
    entry: float,
    atr: Optional[float],
    settings: TradeSetupSettings | None = None,
    precision: int | None = None,
) -> Optional[TradeSetup]:
    """Fixed ATR multiples around ``entry``; None for non-entry actions."""
    if not action.is_entry or entry <= 0:
        return None
    settings = settings or TradeSetupSettings()
    precision = price_precision(entry) if precision is None else precision
    atr_value = _effective_atr(entry, atr, settings)
    sign = 1.0 if action is Action.BUY else -1.0
    return _finalize(
        action,
        entry,
        entry - sign * settings.stop_atr_multiple * atr_value,
        entry + sign * settings.target1_atr_multiple * atr_value,
        entry + sign * settings.target2_atr_multiple * atr_value,
        precision,
    )


def structure_trade_setup(
    action: Action,
    entry: float,
    atr: Optional[float],
    *,
    support: Sequence[float] = (),
    resistance: Sequence[float] = (),
    invalidation_level: float | None = None,
    target_levels: Iterable[float] = (),
    settings: TradeSetupSettings | None = None,
    precision: int | None = None,
) -> Optional[TradeSetup]:
    """Stop beyond the nearest invalidating level, targets at the next levels.

    Falls back to ATR distances for the stop when no level lies within
    ``max_stop_atr`` and for targets when no level within ``max_target_atr``
    pays at least ``min_reward_ratio`` times the risk.
    """
    if not action.is_entry or entry <= 0:
        return None
    settings = settings or TradeSetupSettings()
    precision = price_precision(entry) if precision is None else precision
    atr_value = _effective_atr(entry, atr, settings)
    sign = 1.0 if action is Action.BUY else -1.0

    # Distances are measured in the trade direction: positive means "ahead of entry".
    def ahead(level: float) -> float:
        return (level - entry) * sign

    behind = support if action is Action.BUY else resistance
    in_front = resistance if action is Action.BUY else support

    invalidation: Optional[float] = None
    if invalidation_level is not None and ahead(invalidation_level) < 0:
        invalidation = invalidation_level
    else:
        nearest = [lvl for lvl in behind if ahead(lvl) < 0]
        if nearest:
            invalidation = max(nearest, key=ahead)

    if invalidation is not None and -ahead(invalidation) <= settings.max_stop_atr * atr_value:
        stop = invalidation - sign * settings.structure_buffer_atr * atr_value
    else:
        stop = entry - sign * settings.stop_atr_multiple * atr_value
    risk = abs(entry - stop)

    reward_floor = settings.min_reward_ratio * risk
    max_distance = settings.max_target_atr * atr_value
    levels: List[float] = sorted(
        {lvl for lvl in list(in_front) + list(target_levels) if reward_floor <= ahead(lvl) <= max_distance},
        key=ahead,
    )

    r1 = settings.target1_atr_multiple / settings.stop_atr_multiple
    r2 = settings.target2_atr_multiple / settings.stop_atr_multiple
    fallback1 = entry + sign * max(settings.target1_atr_multiple * atr_value, r1 * risk)
    fallback2 = entry + sign * max(settings.target2_atr_multiple * atr_value, r2 * risk)

    target1 = levels[0] if levels else fallback1
    target2 = levels[1] if len(levels) > 1 else fallback2
    if ahead(target2) < ahead(target1):
        target2 = target1
    return _finalize(action, entry, stop, target1, target2, precision)
