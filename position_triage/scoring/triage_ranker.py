"""
Portfolio Triage Ranking
Scores every open position by how urgently it needs attention and returns
them highest priority first.

Weights are additive and independent (a STALE position with ADVERSE
funding scores 40 + 20 = 60); unlike the urgency rules nothing
short-circuits after the first match.
"""

import logging
from collections.abc import Mapping
from typing import Any, Iterable, List, Optional

from ..config.thresholds import DEFAULT_THRESHOLDS, HealthThresholds
from ..models.position import (
    FundingImpact,
    HealthMetrics,
    HoldTimeStatus,
    PnlSeverity,
    PnlStatus,
    PositionSnapshot,
    ThesisStatus,
    TriageRecord,
    is_valid_position,
)
from ..models.position_health import assess_position_health, sanitize_position

logger = logging.getLogger(__name__)


def calculate_priority(
    health: HealthMetrics,
    pnl_percent: float,
    thresholds: Optional[HealthThresholds] = None,
) -> int:
    t = thresholds or DEFAULT_THRESHOLDS
    priority = 0

    if health.pnl_severity == PnlSeverity.CRITICAL:
        priority += t.weight_critical
    if health.pnl_severity == PnlSeverity.WARNING:
        priority += t.weight_warning
    if health.thesis_status == ThesisStatus.INVALIDATED:
        priority += t.weight_invalidated
    if health.thesis_status == ThesisStatus.WEAKENING:
        priority += t.weight_weakening
    if health.hold_time_status == HoldTimeStatus.STALE:
        priority += t.weight_stale
    if health.funding_impact == FundingImpact.ADVERSE:
        priority += t.weight_adverse_funding

    # Profit-taking: below a critical loss, above most other flags
    if health.pnl_status == PnlStatus.PROFIT and pnl_percent > t.profit_warning_pct:
        priority += t.weight_profit_taking

    return int(priority)


def get_priority_label(priority: int, thresholds: Optional[HealthThresholds] = None) -> str:
    t = thresholds or DEFAULT_THRESHOLDS
    if priority >= t.priority_high:
        return "HIGH"
    if priority >= t.priority_medium:
        return "MEDIUM"
    return "LOW"


def _as_snapshot(item: Any) -> Optional[PositionSnapshot]:
    if isinstance(item, PositionSnapshot):
        return item if is_valid_position(item) else None
    if isinstance(item, Mapping):
        return PositionSnapshot.from_dict(item)
    return None


def triage_position(position: PositionSnapshot, thresholds: Optional[HealthThresholds] = None) -> TriageRecord:
    health = assess_position_health(position, thresholds)
    pnl_percent = sanitize_position(position).pnl_percent
    priority = calculate_priority(health, pnl_percent, thresholds)
    return TriageRecord(
        position=position,
        health=health,
        priority=priority,
        priority_label=get_priority_label(priority, thresholds),
    )


def rank_positions(positions: Any, thresholds: Optional[HealthThresholds] = None) -> List[TriageRecord]:
    """
    Rank a portfolio by attention priority.

    Args:
        positions: PositionSnapshot objects and/or raw exchange dicts. Entries
            without a string symbol or a LONG/SHORT side are skipped; the
            caller's sequence is never modified.
        thresholds: Engine constants, DEFAULT_THRESHOLDS when omitted.

    Returns:
        TriageRecords sorted by descending priority. Equal priorities keep
        their input order. Empty for empty, non-sequence or all-invalid input.
    """
    if positions is None or isinstance(positions, (str, bytes, Mapping)):
        return []
    try:
        items: Iterable[Any] = list(positions)
    except TypeError:
        return []

    records = []
    dropped = 0
    for item in items:
        snapshot = _as_snapshot(item)
        if snapshot is None:
            dropped += 1
            continue
        records.append(triage_position(snapshot, thresholds))

    if dropped:
        logger.debug("Skipped %d invalid position(s) during triage", dropped)

    # sorted() is stable, reverse=True included
    ranked = sorted(records, key=lambda r: r.priority, reverse=True)
    if ranked:
        logger.info(
            "Triage ranked %d position(s); top: %s priority=%d",
            len(ranked), ranked[0].position.symbol, ranked[0].priority,
        )
    return ranked


rank = rank_positions
