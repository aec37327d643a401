"""
Management Rule Engine
Turns position health into an urgency level and a suggested action, and
enforces the hard safety rules on any management action before execution.

URGENCY (first match wins):
- CRITICAL loss                      -> HIGH,   CLOSE_FULL
- Thesis INVALIDATED                 -> HIGH,   CLOSE_FULL
- P&L below forced-close limit       -> HIGH,   CLOSE_FULL
- Profit WARNING (take profits)      -> MEDIUM, TAKE_PARTIAL
- Hold time STALE                    -> MEDIUM, CLOSE_FULL
- Otherwise                          -> NORMAL, no action

SAFETY RULES (rejected, never just warned):
- P&L < -7% forces CLOSE_FULL whatever the caller asked for
- ADD_MARGIN needs P&L >= -3%, no prior averaging down, isolated margin
- ADD_MARGIN capped at 50% of position value
- Stops only move toward price, never away from it
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from ..config.thresholds import DEFAULT_THRESHOLDS, HealthThresholds
from ..models.manage_action import ManageActionResponse
from ..models.position import (
    ActionHint,
    HealthMetrics,
    HoldTimeStatus,
    PnlSeverity,
    PnlStatus,
    PositionSnapshot,
    Side,
    ThesisStatus,
    UrgencyLevel,
)
from ..models.position_health import sanitize_position
from ..utils.numbers import finite_or, optional_finite

logger = logging.getLogger(__name__)

FORCED_CLOSE_REASON = "forced closure: P&L below loss limit"


@dataclass(frozen=True)
class ManagementAssessment:
    urgency_level: UrgencyLevel
    urgency_reason: str
    action_hint: ActionHint

    def to_dict(self) -> Dict[str, str]:
        return {
            "urgency_level": self.urgency_level.value,
            "urgency_reason": self.urgency_reason,
            "action_hint": self.action_hint.value,
        }


@dataclass(frozen=True)
class EnforcedAction:
    """Outcome of running a requested action through the safety rules."""
    action: ActionHint
    requested: ActionHint
    rejected: bool = False
    reasons: List[str] = field(default_factory=list)
    new_stop_loss: Optional[float] = None
    margin_amount: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action.value,
            "requested": self.requested.value,
            "rejected": self.rejected,
            "reasons": list(self.reasons),
            "new_stop_loss": self.new_stop_loss,
            "margin_amount": self.margin_amount,
        }


def assess_management(
    health: HealthMetrics,
    pnl_percent: Any,
    thresholds: Optional[HealthThresholds] = None,
) -> ManagementAssessment:
    """
    Urgency and action hint for one position.

    pnl_percent is sanitized like the evaluator does (non-finite -> 0). Below
    the forced-close limit the result is HIGH/CLOSE_FULL even if the health
    metrics passed in disagree.
    """
    t = thresholds or DEFAULT_THRESHOLDS
    pnl = finite_or(pnl_percent, 0.0)

    if health.pnl_severity == PnlSeverity.CRITICAL and health.pnl_status == PnlStatus.LOSS:
        return ManagementAssessment(UrgencyLevel.HIGH, "approaching stop-loss territory", ActionHint.CLOSE_FULL)
    if health.thesis_status == ThesisStatus.INVALIDATED:
        return ManagementAssessment(UrgencyLevel.HIGH, "thesis no longer valid", ActionHint.CLOSE_FULL)
    if pnl < t.forced_close_pct:
        return ManagementAssessment(UrgencyLevel.HIGH, FORCED_CLOSE_REASON, ActionHint.CLOSE_FULL)
    if health.pnl_severity == PnlSeverity.WARNING and health.pnl_status == PnlStatus.PROFIT:
        return ManagementAssessment(UrgencyLevel.MEDIUM, "unrealized profits at risk", ActionHint.TAKE_PARTIAL)
    if health.hold_time_status == HoldTimeStatus.STALE:
        return ManagementAssessment(UrgencyLevel.MEDIUM, "held beyond typical timeframe", ActionHint.CLOSE_FULL)
    return ManagementAssessment(UrgencyLevel.NORMAL, "", ActionHint.NONE)


rule = assess_management


def can_add_margin(position: PositionSnapshot, thresholds: Optional[HealthThresholds] = None) -> bool:
    t = thresholds or DEFAULT_THRESHOLDS
    pnl = sanitize_position(position).pnl_percent
    return (
        pnl >= t.add_margin_min_pct
        and not getattr(position, "averaged_down", False)
        and bool(getattr(position, "isolated_margin", False))
    )


def _stop_tightening_violation(position: PositionSnapshot, new_stop: Optional[float]) -> Optional[str]:
    """None when new_stop moves the stop toward price; otherwise the reason."""
    new_stop = optional_finite(new_stop)
    if new_stop is None or new_stop <= 0:
        return "TIGHTEN_STOP requires a positive stop price"

    side = getattr(position, "side", None)
    if side not in (Side.LONG, Side.SHORT):
        return "cannot place a stop without a LONG/SHORT side"

    current_stop = optional_finite(getattr(position, "stop_loss", None))
    current_price = optional_finite(getattr(position, "current_price", None))
    if current_price is not None and current_price <= 0:
        current_price = None

    if side == Side.LONG:
        if current_stop is not None and new_stop < current_stop:
            return f"stop {new_stop} would widen existing LONG stop {current_stop}"
        if current_price is not None and new_stop >= current_price:
            return f"LONG stop {new_stop} must sit below current price {current_price}"
    else:
        if current_stop is not None and new_stop > current_stop:
            return f"stop {new_stop} would widen existing SHORT stop {current_stop}"
        if current_price is not None and new_stop <= current_price:
            return f"SHORT stop {new_stop} must sit above current price {current_price}"
    return None


def enforce_action(
    requested: Union[ActionHint, str],
    position: PositionSnapshot,
    new_stop_loss: Optional[float] = None,
    margin_amount: Optional[float] = None,
    thresholds: Optional[HealthThresholds] = None,
) -> EnforcedAction:
    """
    Apply the safety rules to a requested action.

    Args:
        requested: Action the caller wants (unknown strings count as NONE).
        position: Snapshot the action targets.
        new_stop_loss: Proposed stop price for TIGHTEN_STOP.
        margin_amount: Proposed top-up for ADD_MARGIN, in quote currency.

    Returns:
        EnforcedAction; rejected=True with reasons when the request was
        replaced by a safer action.
    """
    t = thresholds or DEFAULT_THRESHOLDS
    try:
        requested = ActionHint(requested)
    except (TypeError, ValueError):
        logger.warning("Unknown management action %r treated as NONE", requested)
        requested = ActionHint.NONE

    inputs = sanitize_position(position)
    pnl = inputs.pnl_percent
    symbol = getattr(position, "symbol", "?")

    def reject(action: ActionHint, *reasons: str) -> EnforcedAction:
        logger.warning("%s: %s rejected -> %s (%s)", symbol, requested.value, action.value, "; ".join(reasons))
        return EnforcedAction(action=action, requested=requested, rejected=True, reasons=list(reasons))

    if pnl < t.forced_close_pct:
        if requested == ActionHint.CLOSE_FULL:
            return EnforcedAction(action=ActionHint.CLOSE_FULL, requested=requested)
        return reject(ActionHint.CLOSE_FULL, f"P&L {pnl:.2f}% is below {t.forced_close_pct}%: position must be closed")

    if requested == ActionHint.ADD_MARGIN:
        if pnl < t.add_margin_min_pct:
            return reject(ActionHint.CLOSE_FULL, f"ADD_MARGIN needs P&L >= {t.add_margin_min_pct}% (is {pnl:.2f}%)")
        reasons = []
        if getattr(position, "averaged_down", False):
            reasons.append("position was previously averaged down")
        if not getattr(position, "isolated_margin", False):
            reasons.append("ADD_MARGIN is only allowed on isolated margin")

        amount = optional_finite(margin_amount)
        max_amount = inputs.entry_price * inputs.size * t.max_margin_add_ratio
        if margin_amount is not None and (amount is None or amount <= 0):
            reasons.append("ADD_MARGIN requires a positive margin amount")
        elif amount is not None and amount > max_amount:
            reasons.append(f"margin {amount:.2f} exceeds cap {max_amount:.2f}")
        if reasons:
            return reject(ActionHint.NONE, *reasons)
        return EnforcedAction(action=ActionHint.ADD_MARGIN, requested=requested, margin_amount=amount)

    if requested == ActionHint.TIGHTEN_STOP:
        violation = _stop_tightening_violation(position, new_stop_loss)
        if violation:
            return reject(ActionHint.NONE, violation)
        return EnforcedAction(action=ActionHint.TIGHTEN_STOP, requested=requested,
                              new_stop_loss=optional_finite(new_stop_loss))

    return EnforcedAction(action=requested, requested=requested)


def guard_manage_response(
    response: ManageActionResponse,
    position: PositionSnapshot,
    thresholds: Optional[HealthThresholds] = None,
) -> EnforcedAction:
    """Run a validated MANAGE response through enforce_action."""
    if isinstance(getattr(position, "symbol", None), str) and response.symbol != position.symbol:
        logger.warning("MANAGE response symbol %s differs from position %s", response.symbol, position.symbol)
    return enforce_action(
        response.manage_type,
        position,
        new_stop_loss=response.new_stop_loss,
        margin_amount=response.margin_amount,
        thresholds=thresholds,
    )
