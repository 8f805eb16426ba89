"""Signal aggregation: combine indicator suggestions and an ML prediction.

Indicator payloads arrive from the data collaborator as one object per
indicator, e.g. ``{"suggestion": "buy", "confidence": 0.8}``. Entries may be
``None`` or carry an ``error`` key when the indicator failed to compute; those
are treated as absent.
"""

import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

# Aggregate confidence a side must exceed before it becomes a decision
SCORE_THRESHOLD = 2.0

# ML predictions below this confidence are ignored
ML_CONFIDENCE_THRESHOLD = 0.7

SUGGESTIONS = ("buy", "sell", "hold")
DIRECTIONS = ("up", "down")


@dataclass(frozen=True)
class IndicatorSignal:
    """A single indicator's suggestion at one index.

    Attributes:
        suggestion: "buy", "sell", or "hold"
        confidence: 0.0-1.0
    """
    suggestion: str
    confidence: float = 0.0


@dataclass(frozen=True)
class MLSignal:
    """Directional prediction from the ML collaborator."""
    direction: str
    confidence: float = 0.0


@dataclass(frozen=True)
class TradingDecision:
    """Output of the aggregator for one time step."""
    action: str                 # "buy", "sell", or "hold"
    confidence: float
    buy_score: float
    sell_score: float
    hold_score: float = 0.0
    ml_signal: Optional[MLSignal] = None


def parse_indicator_signal(payload) -> Optional[IndicatorSignal]:
    """Parse one indicator payload, returning None when absent or failed."""
    if payload is None:
        return None
    if isinstance(payload, IndicatorSignal):
        return payload
    if not isinstance(payload, dict) or payload.get("error"):
        return None

    suggestion = payload.get("suggestion")
    if not suggestion:
        return None

    try:
        confidence = float(payload.get("confidence") or 0.0)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring indicator signal with bad confidence: {payload!r}")
        return None
    return IndicatorSignal(suggestion=str(suggestion).lower(), confidence=confidence)


def parse_ml_prediction(payload) -> Optional[MLSignal]:
    """Parse ``{"predictions": {"price_direction": ..., "confidence": ...}}``.

    A missing, failed or malformed prediction is the same as no prediction.
    """
    if payload is None:
        return None
    if isinstance(payload, MLSignal):
        return payload
    if not isinstance(payload, dict):
        return None

    predictions = payload.get("predictions")
    if not isinstance(predictions, dict):
        return None

    direction = predictions.get("price_direction")
    if direction not in DIRECTIONS:
        return None

    try:
        confidence = float(predictions.get("confidence") or 0.0)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring ML prediction with bad confidence: {predictions!r}")
        return None
    return MLSignal(direction=direction, confidence=confidence)


def signals_at_index(indicators: Optional[dict], index: int) -> dict[str, Optional[IndicatorSignal]]:
    """Resolve every indicator's signal at ``index``.

    An indicator value may be a single signal object, applied at every index,
    or a sequence with one entry per index. Indices past the end of a
    sequence have no signal.
    """
    resolved = {}
    for name, value in (indicators or {}).items():
        if isinstance(value, (list, tuple)):
            value = value[index] if 0 <= index < len(value) else None
        resolved[name] = parse_indicator_signal(value)
    return resolved


def aggregate_signals(signals: dict[str, Optional[IndicatorSignal]],
                      ml_signal: Optional[MLSignal] = None) -> TradingDecision:
    """Combine indicator signals and an optional ML prediction into a decision.

    Buy and sell confidences are summed separately. A side wins when its score
    beats the other and exceeds SCORE_THRESHOLD. The reported confidence is
    the mean confidence of all valid indicators. A confident ML prediction
    (> ML_CONFIDENCE_THRESHOLD) turns a hold into its own direction and lifts
    the confidence of an agreeing decision, but never flips a technical
    decision: "up" cannot override a sell and "down" cannot override a buy.
    """
    scores = {"buy": 0.0, "sell": 0.0, "hold": 0.0}
    total_confidence = 0.0
    count = 0

    for signal in signals.values():
        if signal is None:
            continue
        count += 1
        total_confidence += signal.confidence
        bucket = signal.suggestion if signal.suggestion in scores else "hold"
        scores[bucket] += signal.confidence

    confidence = total_confidence / count if count > 0 else 0.0
    buy_score = scores["buy"]
    sell_score = scores["sell"]

    action = "hold"
    if buy_score > sell_score and buy_score > SCORE_THRESHOLD:
        action = "buy"
    elif sell_score > buy_score and sell_score > SCORE_THRESHOLD:
        action = "sell"

    if ml_signal is not None and ml_signal.confidence > ML_CONFIDENCE_THRESHOLD:
        if ml_signal.direction == "up" and action != "sell":
            action = "buy"
            confidence = max(confidence, ml_signal.confidence)
        elif ml_signal.direction == "down" and action != "buy":
            action = "sell"
            confidence = max(confidence, ml_signal.confidence)

    return TradingDecision(
        action=action,
        confidence=confidence,
        buy_score=buy_score,
        sell_score=sell_score,
        hold_score=scores["hold"],
        ml_signal=ml_signal,
    )
