from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field  # type: ignore[import-not-found]


class TradeSetupPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    entry: float
    stop_loss: float
    target1: float
    target2: float
    risk_reward: float = Field(gt=0)


class SignalPayload(BaseModel):
    """One instrument's signal as returned by ``GET /api/signals``."""

    model_config = ConfigDict(extra="ignore")

    symbol: str
    timeframe: str
    strategy: str
    price: float
    action: str
    confidence: int = Field(ge=0, le=100)
    quality: str
    buy_score: float
    sell_score: float
    reasons: List[str] = Field(default_factory=list)
    reason_labels: List[str] = Field(default_factory=list)
    cancel_reasons: List[str] = Field(default_factory=list)
    setup: Optional[TradeSetupPayload] = None
    indicators: Dict[str, Any] = Field(default_factory=dict)
    structure: Dict[str, Any] = Field(default_factory=dict)
    signal_since: datetime
    signal_age_seconds: int = Field(ge=0)
    evaluated_at: datetime


class SkippedPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    symbol: str
    reason: str
    detail: str = ""


class SignalsResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    timeframe: str
    strategy: str
    evaluated_at: datetime
    counts: Dict[str, int] = Field(default_factory=dict)
    signals: List[SignalPayload] = Field(default_factory=list)
    actionable: List[str] = Field(default_factory=list)
    skipped: List[SkippedPayload] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str = "ok"
    timeframe: str
    strategy: str
    server_time: datetime
