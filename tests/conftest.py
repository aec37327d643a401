import pytest

from position_triage.models.position import PositionSnapshot, Side


def build_position(**overrides) -> PositionSnapshot:
    fields = {
        "symbol": "cmt_btcusdt",
        "side": Side.LONG,
        "size": 1.0,
        "entry_price": 100.0,
        "current_price": 100.0,
        "unrealized_pnl": 0.0,
        "unrealized_pnl_percent": 0.0,
        "hold_time_hours": 5.0,
        "funding_paid": None,
    }
    fields.update(overrides)
    return PositionSnapshot(**fields)


@pytest.fixture
def make_position():
    return build_position
