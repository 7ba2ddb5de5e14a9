"""Enumerated reason codes and their display labels.

Strategies only ever emit ``ReasonCode`` members; human-readable text is looked
up at the presentation boundary through :func:`describe`.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict


class ReasonCode(str, Enum):
    # Trend and moving averages
    EMA_FAST_ABOVE_SLOW = "EMA_FAST_ABOVE_SLOW"
    EMA_FAST_BELOW_SLOW = "EMA_FAST_BELOW_SLOW"
    EMA_BULLISH_CROSS = "EMA_BULLISH_CROSS"
    EMA_BEARISH_CROSS = "EMA_BEARISH_CROSS"
    PRICE_ABOVE_TREND_EMA = "PRICE_ABOVE_TREND_EMA"
    PRICE_BELOW_TREND_EMA = "PRICE_BELOW_TREND_EMA"
    PRICE_ABOVE_EMA200 = "PRICE_ABOVE_EMA200"
    PRICE_BELOW_EMA200 = "PRICE_BELOW_EMA200"
    # Oscillators
    RSI_BULLISH_ZONE = "RSI_BULLISH_ZONE"
    RSI_BEARISH_ZONE = "RSI_BEARISH_ZONE"
    RSI_OVERBOUGHT = "RSI_OVERBOUGHT"
    RSI_OVERSOLD = "RSI_OVERSOLD"
    RSI_HIGH = "RSI_HIGH"
    RSI_LOW = "RSI_LOW"
    RSI_TURNING_UP = "RSI_TURNING_UP"
    RSI_TURNING_DOWN = "RSI_TURNING_DOWN"
    MACD_BULLISH = "MACD_BULLISH"
    MACD_BEARISH = "MACD_BEARISH"
    MACD_HISTOGRAM_POSITIVE = "MACD_HISTOGRAM_POSITIVE"
    MACD_HISTOGRAM_NEGATIVE = "MACD_HISTOGRAM_NEGATIVE"
    MOMENTUM_FADING = "MOMENTUM_FADING"
    # Volume and volatility
    VOLUME_SPIKE = "VOLUME_SPIKE"
    AT_UPPER_BAND = "AT_UPPER_BAND"
    AT_LOWER_BAND = "AT_LOWER_BAND"
    CLOSE_ABOVE_UPPER_BAND = "CLOSE_ABOVE_UPPER_BAND"
    CLOSE_BELOW_LOWER_BAND = "CLOSE_BELOW_LOWER_BAND"
    BAND_SQUEEZE = "BAND_SQUEEZE"
    BULLISH_REVERSAL_CANDLE = "BULLISH_REVERSAL_CANDLE"
    BEARISH_REVERSAL_CANDLE = "BEARISH_REVERSAL_CANDLE"
    # Structure
    BOS_BULLISH = "BOS_BULLISH"
    BOS_BEARISH = "BOS_BEARISH"
    CHOCH_BULLISH = "CHOCH_BULLISH"
    CHOCH_BEARISH = "CHOCH_BEARISH"
    NEAR_SUPPORT = "NEAR_SUPPORT"
    NEAR_RESISTANCE = "NEAR_RESISTANCE"
    STRUCTURE_BULLISH = "STRUCTURE_BULLISH"
    STRUCTURE_BEARISH = "STRUCTURE_BEARISH"
    HTF_TREND_BULLISH = "HTF_TREND_BULLISH"
    HTF_TREND_BEARISH = "HTF_TREND_BEARISH"
    AT_BULLISH_ORDER_BLOCK = "AT_BULLISH_ORDER_BLOCK"
    AT_BEARISH_ORDER_BLOCK = "AT_BEARISH_ORDER_BLOCK"
    AT_BULLISH_FVG = "AT_BULLISH_FVG"
    AT_BEARISH_FVG = "AT_BEARISH_FVG"
    # Liquidity and sessions
    LIQUIDITY_SWEEP_LOW = "LIQUIDITY_SWEEP_LOW"
    LIQUIDITY_SWEEP_HIGH = "LIQUIDITY_SWEEP_HIGH"
    AT_LIQUIDITY_LOW = "AT_LIQUIDITY_LOW"
    AT_LIQUIDITY_HIGH = "AT_LIQUIDITY_HIGH"
    DISPLACEMENT_UP = "DISPLACEMENT_UP"
    DISPLACEMENT_DOWN = "DISPLACEMENT_DOWN"
    NO_EXHAUSTION = "NO_EXHAUSTION"
    PDH_BREAK = "PDH_BREAK"
    PDL_BREAK = "PDL_BREAK"
    SESSION_BREAK = "SESSION_BREAK"
    MULTIPLE_TRIGGERS = "MULTIPLE_TRIGGERS"
    IN_KILL_ZONE = "IN_KILL_ZONE"
    # Outcomes and cancellations
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"
    INSUFFICIENT_MOMENTUM = "INSUFFICIENT_MOMENTUM"
    LOW_CONFIDENCE = "LOW_CONFIDENCE"
    HTF_TREND_CONFLICT = "HTF_TREND_CONFLICT"
    NO_VALID_SETUP = "NO_VALID_SETUP"
    NO_TRIGGER = "NO_TRIGGER"
    NO_LIQUIDITY_INTERACTION = "NO_LIQUIDITY_INTERACTION"
    NO_DISPLACEMENT = "NO_DISPLACEMENT"
    CONFLICTING_LIQUIDITY = "CONFLICTING_LIQUIDITY"
    EXHAUSTION_DETECTED = "EXHAUSTION_DETECTED"
    ADVERSE_ENGULFING = "ADVERSE_ENGULFING"
    ADVERSE_VOLUME = "ADVERSE_VOLUME"
    SIGNAL_AGING = "SIGNAL_AGING"


REASON_LABELS: Dict[str, Dict[ReasonCode, str]] = {
    "en": {
        ReasonCode.EMA_FAST_ABOVE_SLOW: "Fast EMA above slow EMA",
        ReasonCode.EMA_FAST_BELOW_SLOW: "Fast EMA below slow EMA",
        ReasonCode.EMA_BULLISH_CROSS: "Fresh bullish EMA cross",
        ReasonCode.EMA_BEARISH_CROSS: "Fresh bearish EMA cross",
        ReasonCode.PRICE_ABOVE_TREND_EMA: "Price above trend EMA",
        ReasonCode.PRICE_BELOW_TREND_EMA: "Price below trend EMA",
        ReasonCode.PRICE_ABOVE_EMA200: "Price above EMA200",
        ReasonCode.PRICE_BELOW_EMA200: "Price below EMA200",
        ReasonCode.RSI_BULLISH_ZONE: "RSI in bullish zone",
        ReasonCode.RSI_BEARISH_ZONE: "RSI in bearish zone",
        ReasonCode.RSI_OVERBOUGHT: "RSI overbought",
        ReasonCode.RSI_OVERSOLD: "RSI oversold",
        ReasonCode.RSI_HIGH: "RSI elevated",
        ReasonCode.RSI_LOW: "RSI depressed",
        ReasonCode.RSI_TURNING_UP: "RSI turning up",
        ReasonCode.RSI_TURNING_DOWN: "RSI turning down",
        ReasonCode.MACD_BULLISH: "MACD bullish above zero",
        ReasonCode.MACD_BEARISH: "MACD bearish below zero",
        ReasonCode.MACD_HISTOGRAM_POSITIVE: "MACD histogram positive",
        ReasonCode.MACD_HISTOGRAM_NEGATIVE: "MACD histogram negative",
        ReasonCode.MOMENTUM_FADING: "Momentum fading",
        ReasonCode.VOLUME_SPIKE: "Volume spike",
        ReasonCode.AT_UPPER_BAND: "Price at upper Bollinger band",
        ReasonCode.AT_LOWER_BAND: "Price at lower Bollinger band",
        ReasonCode.CLOSE_ABOVE_UPPER_BAND: "Close above upper band",
        ReasonCode.CLOSE_BELOW_LOWER_BAND: "Close below lower band",
        ReasonCode.BAND_SQUEEZE: "Bollinger squeeze",
        ReasonCode.BULLISH_REVERSAL_CANDLE: "Bullish reversal candle",
        ReasonCode.BEARISH_REVERSAL_CANDLE: "Bearish reversal candle",
        ReasonCode.BOS_BULLISH: "Bullish break of structure",
        ReasonCode.BOS_BEARISH: "Bearish break of structure",
        ReasonCode.CHOCH_BULLISH: "Bullish change of character",
        ReasonCode.CHOCH_BEARISH: "Bearish change of character",
        ReasonCode.NEAR_SUPPORT: "Price near support",
        ReasonCode.NEAR_RESISTANCE: "Price near resistance",
        ReasonCode.STRUCTURE_BULLISH: "Bullish market structure",
        ReasonCode.STRUCTURE_BEARISH: "Bearish market structure",
        ReasonCode.HTF_TREND_BULLISH: "Higher timeframe bullish",
        ReasonCode.HTF_TREND_BEARISH: "Higher timeframe bearish",
        ReasonCode.AT_BULLISH_ORDER_BLOCK: "At bullish order block",
        ReasonCode.AT_BEARISH_ORDER_BLOCK: "At bearish order block",
        ReasonCode.AT_BULLISH_FVG: "At bullish fair value gap",
        ReasonCode.AT_BEARISH_FVG: "At bearish fair value gap",
        ReasonCode.LIQUIDITY_SWEEP_LOW: "Sell-side liquidity swept",
        ReasonCode.LIQUIDITY_SWEEP_HIGH: "Buy-side liquidity swept",
        ReasonCode.AT_LIQUIDITY_LOW: "Price at sell-side liquidity",
        ReasonCode.AT_LIQUIDITY_HIGH: "Price at buy-side liquidity",
        ReasonCode.DISPLACEMENT_UP: "Bullish displacement",
        ReasonCode.DISPLACEMENT_DOWN: "Bearish displacement",
        ReasonCode.NO_EXHAUSTION: "No exhaustion",
        ReasonCode.PDH_BREAK: "Previous day high taken",
        ReasonCode.PDL_BREAK: "Previous day low taken",
        ReasonCode.SESSION_BREAK: "Asian range broken",
        ReasonCode.MULTIPLE_TRIGGERS: "Multiple triggers",
        ReasonCode.IN_KILL_ZONE: "Inside kill zone",
        ReasonCode.INSUFFICIENT_DATA: "Insufficient data",
        ReasonCode.INSUFFICIENT_MOMENTUM: "Insufficient momentum",
        ReasonCode.LOW_CONFIDENCE: "Confidence below threshold",
        ReasonCode.HTF_TREND_CONFLICT: "Higher timeframe disagrees",
        ReasonCode.NO_VALID_SETUP: "No valid trade setup",
        ReasonCode.NO_TRIGGER: "No trigger",
        ReasonCode.NO_LIQUIDITY_INTERACTION: "No liquidity sweep or test",
        ReasonCode.NO_DISPLACEMENT: "No displacement",
        ReasonCode.CONFLICTING_LIQUIDITY: "Liquidity in play on both sides",
        ReasonCode.EXHAUSTION_DETECTED: "Move looks exhausted",
        ReasonCode.ADVERSE_ENGULFING: "Engulfing candle against the trade",
        ReasonCode.ADVERSE_VOLUME: "Rising volume against the trade",
        ReasonCode.SIGNAL_AGING: "Signal is aging",
    },
}


def describe(code: ReasonCode | str, locale: str = "en") -> str:
    labels = REASON_LABELS.get(locale) or REASON_LABELS["en"]
    try:
        reason = ReasonCode(code)
    except ValueError:
        return str(code)
    return labels.get(reason, reason.value)
