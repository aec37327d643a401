from .manage_action import ManageActionResponse, ManageResponseError, validate_manage_response
from .position import (
    ActionHint,
    FundingImpact,
    HealthMetrics,
    HoldTimeStatus,
    MarketContext,
    PnlSeverity,
    PnlStatus,
    PositionSnapshot,
    Side,
    ThesisStatus,
    TriageRecord,
    UrgencyLevel,
    is_valid_position,
)
from .position_health import assess_position_health, evaluate, sanitize_position
