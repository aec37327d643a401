"""
Position Triage API
Read-only endpoints over the health evaluator, rule engine and ranker.
Nothing here places orders; the response feeds whatever executes trades.
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any, Union
import logging

from ..config.thresholds import HealthThresholds, load_thresholds
from ..models.manage_action import ManageResponseError, validate_manage_response
from ..models.position import MarketContext, PositionSnapshot
from ..models.position_health import assess_position_health, sanitize_position
from ..prompts.manage_prompts import build_manage_decision_prompt, build_portfolio_summary
from ..scoring.management_rules import assess_management, guard_manage_response
from ..scoring.triage_ranker import rank_positions

logger = logging.getLogger(__name__)
router = APIRouter()

_thresholds: Optional[HealthThresholds] = None


def get_thresholds() -> HealthThresholds:
    """Thresholds loaded once from the environment."""
    global _thresholds
    if _thresholds is None:
        _thresholds = load_thresholds()
    return _thresholds


# ── Pydantic models ──────────────────────────────────────────────────
# Positions stay raw dicts so dirty exchange data reaches the tolerant core.

class PositionRequest(BaseModel):
    position: Dict[str, Any]
    market_context: Optional[Dict[str, Any]] = None


class TriageRequest(BaseModel):
    positions: List[Any] = Field(default_factory=list)
    include_summary: bool = False


class GuardRequest(BaseModel):
    position: Dict[str, Any]
    response: Union[Dict[str, Any], str]


# ── Helpers ───────────────────────────────────────────────────────────

def _require_snapshot(raw: Dict[str, Any]) -> PositionSnapshot:
    snapshot = PositionSnapshot.from_dict(raw)
    if snapshot is None:
        raise HTTPException(status_code=422, detail="Position needs a string symbol and side LONG or SHORT")
    return snapshot


# ── Endpoints ─────────────────────────────────────────────────────────

@router.post("/health")
async def position_health(request: PositionRequest):
    """Health metrics plus urgency and action hint for one position."""
    t = get_thresholds()
    snapshot = _require_snapshot(request.position)
    health = assess_position_health(snapshot, t)
    assessment = assess_management(health, sanitize_position(snapshot).pnl_percent, t)
    return {
        "symbol": snapshot.symbol,
        "health": health.to_dict(),
        "management": assessment.to_dict(),
    }


@router.post("/triage")
async def triage_portfolio(request: TriageRequest):
    """Rank the portfolio by attention priority, highest first."""
    t = get_thresholds()
    records = rank_positions(request.positions, t)
    result = {
        "count": len(records),
        "dropped": len(request.positions) - len(records),
        "positions": [r.to_dict() for r in records],
    }
    if request.include_summary:
        result["summary"] = build_portfolio_summary(request.positions, t)
    return result


@router.post("/manage/prompt")
async def manage_prompt(request: PositionRequest):
    """MANAGE decision prompt for one position."""
    t = get_thresholds()
    snapshot = _require_snapshot(request.position)
    context = MarketContext.from_dict(request.market_context)
    return {"symbol": snapshot.symbol, "prompt": build_manage_decision_prompt(snapshot, context, t)}


@router.post("/manage/guard")
async def guard_manage_action(request: GuardRequest):
    """
    Validate a MANAGE response and run it through the safety rules.
    Returns the action that may be executed; rejected requests come back
    with the replacement action and the reasons.
    """
    t = get_thresholds()
    snapshot = _require_snapshot(request.position)
    try:
        response = validate_manage_response(request.response)
    except ManageResponseError as e:
        raise HTTPException(status_code=422, detail=str(e))

    enforced = guard_manage_response(response, snapshot, t)
    return {
        "symbol": snapshot.symbol,
        "conviction": response.conviction,
        "reason": response.reason,
        "close_percent": response.close_percent,
        "new_take_profit": response.new_take_profit,
        **enforced.to_dict(),
    }
