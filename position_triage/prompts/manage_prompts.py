"""
Prompt builders for position management.

Formats health metrics, urgency and triage output into text blocks for the
decision-maker (an LLM risk manager or a human operator). The decision-maker
answers with a MANAGE JSON object, parsed by models.manage_action.

Exports:
  - MANAGE_OPTIONS                 (action menu shown to the decision-maker)
  - MANAGE_DECISION_RULES          (hard rules, mirrors scoring.management_rules)
  - build_position_analysis        (one position, health block)
  - build_manage_decision_prompt   (one position, full MANAGE prompt)
  - build_portfolio_summary        (whole portfolio, ranked)
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional

from ..config.thresholds import DEFAULT_THRESHOLDS, HealthThresholds
from ..models.position import ActionHint, MarketContext, PositionSnapshot, UrgencyLevel, is_valid_position
from ..models.position_health import assess_position_health, sanitize_position
from ..scoring.management_rules import assess_management, can_add_margin
from ..scoring.triage_ranker import rank_positions
from ..utils.numbers import display_symbol, optional_finite, safe_number, safe_percent


MANAGE_OPTIONS = """
## MANAGEMENT OPTIONS
1. CLOSE_FULL - Close entire position at market.
   Use when: thesis invalidated, stop-loss territory, or taking full profits.
2. CLOSE_PARTIAL - Reduce position size (closePercent 1-100).
   Use when: de-risking or reducing exposure.
3. TIGHTEN_STOP - Move stop-loss toward current price (newStopLoss).
   Use when: protecting profits after a favorable move.
4. TAKE_PARTIAL - Close a portion at profit (closePercent 1-100).
   Use when: locking in gains while keeping exposure.
5. ADJUST_TP - Move take-profit (newTakeProfit).
   Use when: conditions suggest a different target.
6. ADD_MARGIN - Add margin to an isolated position (marginAmount).
   Use when: short-term liquidity issue only. Never to average down.
""".strip()


MANAGE_DECISION_RULES = """
## DECISION RULES (SYSTEM ENFORCED)
- P&L below {forced_close:g}%: CLOSE_FULL. Any other action is rejected.
- Thesis INVALIDATED: CLOSE_FULL. Do not hope for recovery.
- P&L above +{profit_warning:g}%: TAKE_PARTIAL (25-50%) or TIGHTEN_STOP to lock in gains.
- Hold time {stale_days:g}+ days: close unless momentum is clearly working.
- ADD_MARGIN only if P&L >= {add_margin_min:g}%, isolated margin, never averaged down,
  and at most {max_margin_pct:g}% of position value.
- Stops only move toward price. A stop that widens risk is rejected.
""".strip()


RESPONSE_CONTRACT = """
## RESPOND WITH JSON
{{
    "symbol": "{symbol}",
    "action": "MANAGE",
    "manageType": "CLOSE_FULL" | "CLOSE_PARTIAL" | "TIGHTEN_STOP" | "TAKE_PARTIAL" | "ADJUST_TP" | "ADD_MARGIN",
    "conviction": 1-10,
    "reason": "One sentence with specific numbers",
    "closePercent": number (if CLOSE_PARTIAL or TAKE_PARTIAL),
    "newStopLoss": number (if TIGHTEN_STOP),
    "newTakeProfit": number (if ADJUST_TP),
    "marginAmount": number (if ADD_MARGIN)
}}
""".strip()


SUMMARY_HINTS = {
    ActionHint.CLOSE_FULL: "-> Consider CLOSE_FULL",
    ActionHint.TAKE_PARTIAL: "-> TAKE_PARTIAL or CLOSE_FULL, secure profits",
}
STALE_HINT = "-> CLOSE_FULL, position too old, free up capital"


def _coerce_position(position: Any) -> Optional[PositionSnapshot]:
    if isinstance(position, PositionSnapshot):
        return position if is_valid_position(position) else None
    if isinstance(position, Mapping):
        return PositionSnapshot.from_dict(position)
    return None


def _side(position: PositionSnapshot) -> str:
    return getattr(position.side, "value", position.side)


def _hold_days(position: PositionSnapshot) -> str:
    return f"{sanitize_position(position).hold_time_hours / 24:.1f}"


def build_position_analysis(position: Any, thresholds: Optional[HealthThresholds] = None) -> str:
    """Health block for one position. Funding line only when funding is known."""
    snapshot = _coerce_position(position)
    if snapshot is None:
        return "Invalid position data"

    health = assess_position_health(snapshot, thresholds)
    pnl_percent = sanitize_position(snapshot).pnl_percent

    lines = [
        f"## POSITION: {display_symbol(snapshot.symbol)} {_side(snapshot)}",
        f"Entry: {safe_number(snapshot.entry_price, 4)} -> Current: {safe_number(snapshot.current_price, 4)}",
        f"Size: {safe_number(snapshot.size, 4)} | P&L: {safe_percent(pnl_percent, 2, include_sign=True)} "
        f"({safe_number(snapshot.unrealized_pnl, 2)} USDT)",
        f"Hold Time: {_hold_days(snapshot)} days",
        "",
        "HEALTH ASSESSMENT:",
        f"- P&L Status: {health.pnl_status.value} ({health.pnl_severity.value})",
        f"- Hold Time: {health.hold_time_status.value}",
        f"- Thesis: {health.thesis_status.value}",
    ]

    funding = optional_finite(snapshot.funding_paid)
    if funding is not None:
        lines.append(f"- Funding Impact: {health.funding_impact.value} ({safe_number(funding, 2)} USDT)")

    stop = optional_finite(snapshot.stop_loss)
    if stop is not None:
        lines.append(f"- Current Stop: {safe_number(stop, 4)}")

    return "\n".join(lines)


def _market_context_section(market_context: MarketContext) -> str:
    lines = ["## MARKET CONTEXT", f"- BTC 24h: {safe_percent(market_context.btc_change_24h, 2, include_sign=True)}"]
    if market_context.funding_rate is not None:
        # funding_rate arrives as a fraction per interval
        lines.append(f"- Funding Rate: {safe_number(market_context.funding_rate * 100, 4)}%")
    if market_context.volatility_24h is not None:
        lines.append(f"- 24h Volatility: {safe_number(market_context.volatility_24h, 2)}%")
    return "\n".join(lines)


def build_manage_decision_prompt(
    position: Any,
    market_context: Any = None,
    thresholds: Optional[HealthThresholds] = None,
) -> str:
    """
    Full MANAGE prompt for one position.

    Args:
        position: PositionSnapshot or raw exchange dict.
        market_context: MarketContext, raw dict, or None (BTC change 0, rest unknown).
        thresholds: Engine constants, DEFAULT_THRESHOLDS when omitted.
    """
    t = thresholds or DEFAULT_THRESHOLDS
    snapshot = _coerce_position(position)
    if snapshot is None:
        return "Invalid position data for MANAGE decision"

    if not isinstance(market_context, MarketContext):
        market_context = MarketContext.from_dict(market_context)

    health = assess_position_health(snapshot, t)
    pnl_percent = sanitize_position(snapshot).pnl_percent
    assessment = assess_management(health, pnl_percent, t)

    side = _side(snapshot)
    urgency = assessment.urgency_level.value
    if assessment.urgency_reason:
        urgency = f"{urgency} - {assessment.urgency_reason}"

    sections = [
        f"# POSITION MANAGEMENT DECISION - {display_symbol(snapshot.symbol)} {side}",
        build_position_analysis(snapshot, t),
        _market_context_section(market_context),
        f"## URGENCY\n{urgency}\nSuggested action: {assessment.action_hint.value}",
        MANAGE_OPTIONS,
        MANAGE_DECISION_RULES.format(
            forced_close=t.forced_close_pct,
            profit_warning=t.profit_warning_pct,
            stale_days=t.stale_days,
            add_margin_min=t.add_margin_min_pct,
            max_margin_pct=t.max_margin_add_ratio * 100,
        ),
    ]

    if not can_add_margin(snapshot, t):
        sections.append("NOTE: ADD_MARGIN is not available for this position.")

    sections.append(RESPONSE_CONTRACT.format(symbol=snapshot.symbol or "unknown"))
    return "\n\n".join(sections)


def build_portfolio_summary(positions: Any, thresholds: Optional[HealthThresholds] = None) -> str:
    """Ranked portfolio summary, highest priority first."""
    if positions is None or isinstance(positions, (str, bytes, Mapping)):
        return "Invalid positions data."
    try:
        positions = list(positions)
    except TypeError:
        return "Invalid positions data."
    if not positions:
        return "No open positions to manage."

    records = rank_positions(positions, thresholds)
    if not records:
        return "No valid positions to manage."

    t = thresholds or DEFAULT_THRESHOLDS
    plural = "s" if len(records) > 1 else ""
    blocks = [f"# PORTFOLIO MANAGEMENT SUMMARY ({len(records)} position{plural})"]

    for record in records:
        position = record.position
        pnl_percent = sanitize_position(position).pnl_percent
        assessment = assess_management(record.health, pnl_percent, t)
        if assessment.action_hint == ActionHint.CLOSE_FULL and assessment.urgency_level == UrgencyLevel.MEDIUM:
            hint = STALE_HINT
        else:
            hint = SUMMARY_HINTS.get(assessment.action_hint, "")

        side = _side(position)
        block = [
            f"{record.priority_label} PRIORITY ({record.priority}) | {display_symbol(position.symbol)} {side}",
            f"  P&L: {safe_percent(pnl_percent, 2, include_sign=True)} | Hold: {_hold_days(position)}d "
            f"| Thesis: {record.health.thesis_status.value}",
        ]
        if hint:
            block.append(f"  {hint}")
        blocks.append("\n".join(block))

    return "\n\n".join(blocks)
