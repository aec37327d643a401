"""
Unit tests for the portfolio triage ranker.
Run: python -m pytest tests/ -v
"""
import pytest

from position_triage.config.thresholds import HealthThresholds
from position_triage.models.position import (
    FundingImpact,
    HealthMetrics,
    HoldTimeStatus,
    PnlSeverity,
    PnlStatus,
    ThesisStatus,
    UrgencyLevel,
)
from position_triage.models.position_health import assess_position_health
from position_triage.scoring.management_rules import assess_management
from position_triage.scoring.triage_ranker import (
    calculate_priority,
    get_priority_label,
    rank,
    rank_positions,
    triage_position,
)


def _health(status=PnlStatus.BREAKEVEN, severity=PnlSeverity.HEALTHY, hold=HoldTimeStatus.FRESH,
            funding=FundingImpact.NEUTRAL, thesis=ThesisStatus.VALID):
    return HealthMetrics(status, severity, hold, funding, thesis)


class TestCalculatePriority:

    def test_quiet_position_scores_zero(self):
        assert calculate_priority(_health(), 0.0) == 0

    def test_adverse_funding_only(self):
        assert calculate_priority(_health(funding=FundingImpact.ADVERSE), 2.0) == 20

    def test_weights_are_additive(self):
        """STALE + ADVERSE both count; nothing short-circuits."""
        health = _health(hold=HoldTimeStatus.STALE, funding=FundingImpact.ADVERSE)
        assert calculate_priority(health, 0.0) == 60

    def test_critical_and_invalidated(self):
        health = _health(PnlStatus.LOSS, PnlSeverity.CRITICAL, thesis=ThesisStatus.INVALIDATED)
        assert calculate_priority(health, -8.5) == 180

    def test_profit_taking_bonus(self):
        health = _health(PnlStatus.PROFIT, PnlSeverity.WARNING)
        assert calculate_priority(health, 6.2) == 50 + 70

    def test_no_profit_bonus_at_five_percent(self):
        health = _health(PnlStatus.PROFIT, PnlSeverity.HEALTHY)
        assert calculate_priority(health, 5.0) == 0


class TestPriorityLabel:

    @pytest.mark.parametrize("priority, label", [
        (0, "LOW"),
        (39, "LOW"),
        (40, "MEDIUM"),
        (79, "MEDIUM"),
        (80, "HIGH"),
        (250, "HIGH"),
    ])
    def test_labels(self, priority, label):
        assert get_priority_label(priority) == label


class TestScenarios:

    def test_adverse_funding_is_normal_urgency_but_ranked(self, make_position):
        position = make_position(
            unrealized_pnl_percent=2.0, hold_time_hours=5, funding_paid=150, entry_price=100, size=1,
        )
        health = assess_position_health(position)
        assert health.funding_impact == FundingImpact.ADVERSE
        assert assess_management(health, 2.0).urgency_level == UrgencyLevel.NORMAL
        assert triage_position(position).priority == 20

    def test_ranked_highest_first(self, make_position):
        # Zero out the secondary weights so the portfolio scores exactly 100 / 40 / 70
        thresholds = HealthThresholds(weight_weakening=0, weight_warning=0)
        critical = make_position(symbol="cmt_btcusdt", unrealized_pnl_percent=-7.5)
        stale = make_position(symbol="cmt_ethusdt", unrealized_pnl_percent=0.3, hold_time_hours=60)
        winner = make_position(symbol="cmt_solusdt", unrealized_pnl_percent=6.2, hold_time_hours=20)

        ranked = rank_positions([critical, stale, winner], thresholds)
        assert [r.priority for r in ranked] == [100, 70, 40]
        assert [r.position.symbol for r in ranked] == ["cmt_btcusdt", "cmt_solusdt", "cmt_ethusdt"]


class TestRanking:

    def test_sorted_descending(self, make_position):
        positions = [
            make_position(symbol=f"cmt_{i}usdt", unrealized_pnl_percent=pnl, hold_time_hours=hours)
            for i, (pnl, hours) in enumerate([(0.0, 5), (-8.5, 5), (0.3, 60), (6.2, 20), (-4.5, 30)])
        ]
        priorities = [r.priority for r in rank_positions(positions)]
        assert priorities == sorted(priorities, reverse=True)

    def test_equal_priorities_keep_input_order(self, make_position):
        positions = [make_position(symbol=s, unrealized_pnl_percent=0.3, hold_time_hours=60)
                     for s in ("cmt_aaausdt", "cmt_bbbusdt", "cmt_cccusdt")]
        ranked = rank(positions)
        assert [r.position.symbol for r in ranked] == ["cmt_aaausdt", "cmt_bbbusdt", "cmt_cccusdt"]

    def test_labels_attached(self, make_position):
        ranked = rank_positions([make_position(unrealized_pnl_percent=-8.5)])
        assert ranked[0].priority_label == "HIGH"

    def test_accepts_raw_exchange_dicts(self):
        raw = {
            "symbol": "cmt_ethusdt", "side": "SHORT", "size": "2",
            "entryPrice": "2000", "currentPrice": "2100",
            "unrealizedPnlPercent": "-5", "holdTimeHours": 12,
        }
        ranked = rank_positions([raw])
        assert len(ranked) == 1
        assert ranked[0].health.pnl_severity == PnlSeverity.WARNING


class TestInvalidInput:

    @pytest.mark.parametrize("value", [None, [], (), "not a list", {"symbol": "cmt_btcusdt"}, 42])
    def test_non_sequences_and_empty_rank_to_empty(self, value):
        assert rank_positions(value) == []

    def test_invalid_entries_dropped(self, make_position):
        good = make_position(symbol="cmt_btcusdt")
        positions = [
            good,
            None,
            {"symbol": 123, "side": "LONG"},
            {"symbol": "cmt_xrpusdt", "side": "long"},
            {"symbol": "cmt_adausdt"},
            make_position(symbol="cmt_dogeusdt", side="SIDEWAYS"),
            "cmt_ethusdt",
        ]
        before = list(positions)

        ranked = rank_positions(positions)

        assert [r.position for r in ranked] == [good]
        assert positions == before

    def test_nan_numbers_do_not_raise(self, make_position):
        position = make_position(unrealized_pnl_percent=float("nan"), hold_time_hours=float("inf"),
                                 entry_price=float("nan"), funding_paid=float("nan"))
        ranked = rank_positions([position])
        assert ranked[0].priority == 0

    def test_generator_input(self, make_position):
        ranked = rank_positions(make_position(symbol=s) for s in ("cmt_aaausdt", "cmt_bbbusdt"))
        assert len(ranked) == 2

    def test_record_dict_has_no_nan(self):
        ranked = rank_positions([{"symbol": "cmt_btcusdt", "side": "SHORT", "holdTimeHours": "inf"}])
        position = ranked[0].to_dict()["position"]
        assert position["hold_time_hours"] is None
        assert position["current_price"] is None
        assert position["unrealized_pnl"] == 0.0
