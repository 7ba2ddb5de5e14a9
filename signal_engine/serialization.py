"""Plain-dict rendering of signal records for JSON snapshots and HTTP responses."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from indicators.snapshot import IndicatorSnapshot
from market_structure.snapshot import StructureSnapshot

from .models import EvaluationResult, Signal, SkippedInstrument
from .reasons import describe


def _rounded(value: Optional[float], digits: int) -> Optional[float]:
    return None if value is None else round(value, digits)


def indicators_to_dict(ind: IndicatorSnapshot, precision: int) -> Dict[str, Any]:
    return {
        "price": round(ind.price, precision),
        "emas": {str(period): round(value, precision) for period, value in sorted(ind.emas.items())},
        "rsi": round(ind.rsi, 2),
        "macd": {
            "line": round(ind.macd.line, precision),
            "signal": round(ind.macd.signal, precision),
            "histogram": round(ind.macd.histogram, precision),
        },
        "atr": round(ind.atr, precision),
        "bollinger": {
            "upper": round(ind.bollinger.upper, precision),
            "middle": round(ind.bollinger.middle, precision),
            "lower": round(ind.bollinger.lower, precision),
            "width_pct": round(ind.bollinger.width_pct, 2),
            "position_pct": round(ind.bollinger.position_pct, 2),
        },
        "volume": {
            "current": ind.volume.current,
            "average": round(ind.volume.average, 4),
            "ratio": round(ind.volume.ratio, 2),
            "spike": ind.volume.spike,
        },
    }


def structure_to_dict(structure: StructureSnapshot, precision: int) -> Dict[str, Any]:
    return {
        "support": [round(level, precision) for level in structure.support],
        "resistance": [round(level, precision) for level in structure.resistance],
        "bos": {
            "direction": structure.bos.direction.value,
            "level": _rounded(structure.bos.level, precision),
        },
        "pdh": _rounded(structure.pdh, precision),
        "pdl": _rounded(structure.pdl, precision),
        "asian_high": _rounded(structure.asian_high, precision),
        "asian_low": _rounded(structure.asian_low, precision),
        "weekly_high": _rounded(structure.weekly_high, precision),
        "weekly_low": _rounded(structure.weekly_low, precision),
        "vwap": _rounded(structure.vwap, precision),
        "liquidity": [
            {
                "price": round(level.price, precision),
                "kind": level.kind.value,
                "label": level.label.value,
                "swept": level.swept,
                "swept_at": level.swept_at.isoformat() if level.swept_at else None,
            }
            for level in structure.liquidity
        ],
        "displacement": {
            "detected": structure.displacement.detected,
            "direction": structure.displacement.direction.value,
            "strength": structure.displacement.strength_score,
        },
        "exhaustion": {
            "detected": structure.exhaustion.detected,
            "wick_ratio": round(structure.exhaustion.wick_ratio, 2),
            "follow_through": structure.exhaustion.follow_through,
            "volume_slowdown": structure.exhaustion.volume_slowdown,
        },
        "order_blocks": [
            {
                "bias": block.bias.value,
                "top": round(block.top, precision),
                "bottom": round(block.bottom, precision),
                "time": block.time.isoformat(),
                "strength": block.strength,
                "touches": block.touches,
            }
            for block in structure.order_blocks
        ],
        "fair_value_gaps": [
            {
                "bias": gap.bias.value,
                "top": round(gap.top, precision),
                "bottom": round(gap.bottom, precision),
                "time": gap.time.isoformat(),
                "fill_pct": gap.fill_pct,
            }
            for gap in structure.fair_value_gaps
        ],
        "kill_zone": structure.kill_zone,
        "trend": structure.trend.value,
    }


def signal_to_dict(signal: Signal, locale: str = "en") -> Dict[str, Any]:
    score = signal.score
    setup = None
    if signal.setup is not None:
        setup = {
            "entry": signal.setup.entry,
            "stop_loss": signal.setup.stop_loss,
            "target1": signal.setup.target1,
            "target2": signal.setup.target2,
            "risk_reward": signal.setup.risk_reward,
        }
    return {
        "symbol": signal.symbol,
        "timeframe": signal.timeframe,
        "strategy": signal.strategy,
        "price": signal.price,
        "action": signal.action.value,
        "confidence": score.confidence,
        "quality": signal.quality.value,
        "buy_score": score.buy_score,
        "sell_score": score.sell_score,
        "reasons": [code.value for code in score.reasons],
        "reason_labels": [describe(code, locale) for code in score.reasons],
        "cancel_reasons": [code.value for code in score.cancel_reasons],
        "setup": setup,
        "indicators": indicators_to_dict(signal.indicators, signal.precision),
        "structure": structure_to_dict(signal.structure, signal.precision),
        "signal_since": signal.signal_since.isoformat(),
        "signal_age_seconds": signal.signal_age_seconds,
        "evaluated_at": signal.evaluated_at.isoformat(),
    }


def skipped_to_dict(skipped: SkippedInstrument) -> Dict[str, Any]:
    return {"symbol": skipped.symbol, "reason": skipped.reason.value, "detail": skipped.detail}


def result_to_dict(result: EvaluationResult, *, actionable_only: bool = False, locale: str = "en") -> Dict[str, Any]:
    signals: List[Signal] = result.actionable if actionable_only else result.signals
    return {
        "timeframe": result.timeframe,
        "strategy": result.strategy,
        "evaluated_at": result.evaluated_at.isoformat(),
        "signals": [signal_to_dict(signal, locale) for signal in signals],
        "actionable": [signal.symbol for signal in result.actionable],
        "skipped": [skipped_to_dict(item) for item in result.skipped],
    }
