"""
Position Triage

Turns leveraged-position telemetry into health signals, an urgency level
with a suggested management action, and a ranked portfolio attention list.
"""

from .config.thresholds import DEFAULT_THRESHOLDS, HealthThresholds, load_thresholds
from .models.position import (
    ActionHint,
    HealthMetrics,
    MarketContext,
    PositionSnapshot,
    Side,
    TriageRecord,
    UrgencyLevel,
)
from .models.position_health import assess_position_health, evaluate
from .scoring.management_rules import assess_management, enforce_action, rule
from .scoring.triage_ranker import rank, rank_positions

__all__ = [
    'DEFAULT_THRESHOLDS',
    'HealthThresholds',
    'load_thresholds',
    'ActionHint',
    'HealthMetrics',
    'MarketContext',
    'PositionSnapshot',
    'Side',
    'TriageRecord',
    'UrgencyLevel',
    'assess_position_health',
    'evaluate',
    'assess_management',
    'enforce_action',
    'rule',
    'rank',
    'rank_positions',
]
