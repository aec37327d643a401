"""
Scoring Module

Urgency rules, safety enforcement and portfolio triage ranking.
"""

from .management_rules import (
    EnforcedAction,
    ManagementAssessment,
    assess_management,
    can_add_margin,
    enforce_action,
    guard_manage_response,
    rule,
)
from .triage_ranker import (
    calculate_priority,
    get_priority_label,
    rank,
    rank_positions,
    triage_position,
)

__all__ = [
    'EnforcedAction',
    'ManagementAssessment',
    'assess_management',
    'can_add_margin',
    'enforce_action',
    'guard_manage_response',
    'rule',
    'calculate_priority',
    'get_priority_label',
    'rank',
    'rank_positions',
    'triage_position',
]
