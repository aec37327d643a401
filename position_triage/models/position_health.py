"""
Position health evaluator: pure functions from a position snapshot to
categorical health metrics.

Used by the management rule engine, the portfolio triage ranker and the
prompt builders. Never raises: invalid numeric fields are replaced by safe
defaults before classification.
"""

import math
from dataclasses import dataclass
from typing import Optional

from ..config.thresholds import DEFAULT_THRESHOLDS, HealthThresholds
from ..utils.numbers import finite_or, non_negative_or, optional_finite, positive_or
from .position import (
    FundingImpact,
    HealthMetrics,
    HoldTimeStatus,
    PnlSeverity,
    PnlStatus,
    PositionSnapshot,
    ThesisStatus,
)


@dataclass(frozen=True)
class SanitizedInputs:
    pnl_percent: float
    hold_time_hours: float
    entry_price: float
    size: float
    funding_paid: Optional[float]


def sanitize_position(position: PositionSnapshot) -> SanitizedInputs:
    """
    Replace invalid numbers with documented defaults.

    - pnl_percent: finite, else 0
    - hold_time_hours: finite and >= 0, else 0
    - entry_price, size: finite and > 0, else 1
    - funding_paid: finite, else None (unknown)
    """
    return SanitizedInputs(
        pnl_percent=finite_or(getattr(position, "unrealized_pnl_percent", None), 0.0),
        hold_time_hours=non_negative_or(getattr(position, "hold_time_hours", None), 0.0),
        entry_price=positive_or(getattr(position, "entry_price", None), 1.0),
        size=positive_or(getattr(position, "size", None), 1.0),
        funding_paid=optional_finite(getattr(position, "funding_paid", None)),
    )


def classify_pnl(pnl_percent: float, t: HealthThresholds = DEFAULT_THRESHOLDS):
    """Return (PnlStatus, PnlSeverity). Profit severity WARNING means take profits."""
    if pnl_percent > t.profit_pct:
        severity = PnlSeverity.WARNING if pnl_percent > t.profit_warning_pct else PnlSeverity.HEALTHY
        return PnlStatus.PROFIT, severity

    if pnl_percent < t.loss_pct:
        if pnl_percent < t.loss_critical_pct:
            severity = PnlSeverity.CRITICAL
        elif pnl_percent < t.loss_warning_pct:
            severity = PnlSeverity.WARNING
        else:
            severity = PnlSeverity.HEALTHY
        return PnlStatus.LOSS, severity

    return PnlStatus.BREAKEVEN, PnlSeverity.HEALTHY


def classify_hold_time(hold_time_hours: float, t: HealthThresholds = DEFAULT_THRESHOLDS) -> HoldTimeStatus:
    hold_days = hold_time_hours / 24
    if hold_days < t.fresh_days:
        return HoldTimeStatus.FRESH
    if hold_days < t.stale_days:
        return HoldTimeStatus.MATURE
    return HoldTimeStatus.STALE


def classify_funding(
    funding_paid: Optional[float],
    entry_price: float,
    size: float,
    t: HealthThresholds = DEFAULT_THRESHOLDS,
) -> FundingImpact:
    """Cumulative funding as a percent of position value. Unknown funding is NEUTRAL."""
    if funding_paid is None:
        return FundingImpact.NEUTRAL

    position_value = entry_price * size
    if not position_value > 0:
        return FundingImpact.NEUTRAL

    funding_percent = funding_paid / position_value * 100
    if not math.isfinite(funding_percent):
        return FundingImpact.NEUTRAL
    if funding_percent < t.funding_favorable_pct:
        return FundingImpact.FAVORABLE
    if funding_percent > t.funding_adverse_pct:
        return FundingImpact.ADVERSE
    return FundingImpact.NEUTRAL


def classify_thesis(pnl_percent: float, t: HealthThresholds = DEFAULT_THRESHOLDS) -> ThesisStatus:
    # P&L percent is already direction-aware, so no side-specific branch
    if pnl_percent < t.thesis_invalidated_pct:
        return ThesisStatus.INVALIDATED
    if pnl_percent < t.thesis_weakening_pct:
        return ThesisStatus.WEAKENING
    return ThesisStatus.VALID


def assess_position_health(
    position: PositionSnapshot,
    thresholds: Optional[HealthThresholds] = None,
) -> HealthMetrics:
    """
    Classify one position.

    Args:
        position: Raw snapshot; any numeric field may be NaN/inf/out of domain.
        thresholds: Engine constants, DEFAULT_THRESHOLDS when omitted.

    Returns:
        HealthMetrics. Identical inputs always give identical metrics.
    """
    t = thresholds or DEFAULT_THRESHOLDS
    inputs = sanitize_position(position)

    pnl_status, pnl_severity = classify_pnl(inputs.pnl_percent, t)
    return HealthMetrics(
        pnl_status=pnl_status,
        pnl_severity=pnl_severity,
        hold_time_status=classify_hold_time(inputs.hold_time_hours, t),
        funding_impact=classify_funding(inputs.funding_paid, inputs.entry_price, inputs.size, t),
        thesis_status=classify_thesis(inputs.pnl_percent, t),
    )


evaluate = assess_position_health
