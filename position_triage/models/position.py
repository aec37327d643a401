"""
Position telemetry and derived health types.

PositionSnapshot and MarketContext are owned by the exchange/account side and
rebuilt on every portfolio refresh. HealthMetrics and TriageRecord are derived
from them and recomputed from scratch each cycle; nothing here is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from ..utils.numbers import optional_finite, to_bool, to_float


class Side(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class PnlStatus(str, Enum):
    PROFIT = "PROFIT"
    LOSS = "LOSS"
    BREAKEVEN = "BREAKEVEN"


class PnlSeverity(str, Enum):
    CRITICAL = "CRITICAL"
    WARNING = "WARNING"
    HEALTHY = "HEALTHY"


class HoldTimeStatus(str, Enum):
    FRESH = "FRESH"
    MATURE = "MATURE"
    STALE = "STALE"


class FundingImpact(str, Enum):
    FAVORABLE = "FAVORABLE"    # funding received
    NEUTRAL = "NEUTRAL"
    ADVERSE = "ADVERSE"        # significant funding paid


class ThesisStatus(str, Enum):
    VALID = "VALID"
    WEAKENING = "WEAKENING"
    INVALIDATED = "INVALIDATED"


class UrgencyLevel(str, Enum):
    NORMAL = "NORMAL"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class ActionHint(str, Enum):
    """Management actions, one per exchange operation the executor supports."""
    CLOSE_FULL = "CLOSE_FULL"          # close entire position at market
    CLOSE_PARTIAL = "CLOSE_PARTIAL"    # reduce position size
    TIGHTEN_STOP = "TIGHTEN_STOP"      # move stop-loss toward price
    TAKE_PARTIAL = "TAKE_PARTIAL"      # close a portion at profit
    ADJUST_TP = "ADJUST_TP"            # move take-profit
    ADD_MARGIN = "ADD_MARGIN"          # top up isolated margin
    NONE = "NONE"


VALID_SIDES = (Side.LONG.value, Side.SHORT.value)


def _pick(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return None


def is_valid_position(position: Any) -> bool:
    """A position is rankable if it has a string symbol and a LONG/SHORT side."""
    if isinstance(position, PositionSnapshot):
        return isinstance(position.symbol, str) and position.side in VALID_SIDES
    if isinstance(position, Mapping):
        side = position.get("side")
        return isinstance(position.get("symbol"), str) and isinstance(side, str) and side in VALID_SIDES
    return False


@dataclass
class PositionSnapshot:
    """
    One open leveraged position as reported by the exchange.

    Numeric fields are stored as received; the health evaluator sanitizes
    them. unrealized_pnl_percent is direction-aware: a LONG that fell and a
    SHORT that rose are both negative. funding_paid=None means unknown, not zero.
    """
    symbol: str
    side: str
    size: float
    entry_price: float
    current_price: float
    unrealized_pnl: float = 0.0
    unrealized_pnl_percent: float = 0.0
    hold_time_hours: float = 0.0
    funding_paid: Optional[float] = None

    # Position history flags, tracked by the account side
    averaged_down: bool = False
    isolated_margin: bool = False
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None

    @classmethod
    def from_dict(cls, raw: Any) -> Optional["PositionSnapshot"]:
        """
        Build a snapshot from an exchange/account payload.

        Accepts snake_case or camelCase keys and numeric strings. Returns None
        for structurally invalid records (no string symbol, side not LONG/SHORT)
        instead of repairing them.
        """
        if not isinstance(raw, Mapping) or not is_valid_position(raw):
            return None

        def number(*keys: str, default: float = float("nan")) -> float:
            value = to_float(_pick(raw, *keys))
            return default if value is None else value

        return cls(
            symbol=raw["symbol"],
            side=Side(raw["side"]),
            size=number("size"),
            entry_price=number("entry_price", "entryPrice"),
            current_price=number("current_price", "currentPrice"),
            unrealized_pnl=number("unrealized_pnl", "unrealizedPnl", default=0.0),
            unrealized_pnl_percent=number("unrealized_pnl_percent", "unrealizedPnlPercent"),
            hold_time_hours=number("hold_time_hours", "holdTimeHours"),
            funding_paid=to_float(_pick(raw, "funding_paid", "fundingPaid")),
            averaged_down=to_bool(_pick(raw, "averaged_down", "averagedDown")),
            isolated_margin=to_bool(_pick(raw, "isolated_margin", "isolatedMargin")),
            stop_loss=optional_finite(_pick(raw, "stop_loss", "stopLoss")),
            take_profit=optional_finite(_pick(raw, "take_profit", "takeProfit")),
        )

    def to_dict(self) -> Dict[str, Any]:
        # Non-finite numbers become None so the dict stays JSON-safe
        return {
            "symbol": self.symbol,
            "side": self.side.value if isinstance(self.side, Side) else self.side,
            "size": optional_finite(self.size),
            "entry_price": optional_finite(self.entry_price),
            "current_price": optional_finite(self.current_price),
            "unrealized_pnl": optional_finite(self.unrealized_pnl),
            "unrealized_pnl_percent": optional_finite(self.unrealized_pnl_percent),
            "hold_time_hours": optional_finite(self.hold_time_hours),
            "funding_paid": optional_finite(self.funding_paid),
            "averaged_down": self.averaged_down,
            "isolated_margin": self.isolated_margin,
            "stop_loss": optional_finite(self.stop_loss),
            "take_profit": optional_finite(self.take_profit),
        }


@dataclass(frozen=True)
class MarketContext:
    """Market backdrop for a management decision. Percent fields are percents."""
    btc_change_24h: float = 0.0
    funding_rate: Optional[float] = None
    volatility_24h: Optional[float] = None

    @classmethod
    def from_dict(cls, raw: Any) -> "MarketContext":
        if not isinstance(raw, Mapping):
            return cls()
        return cls(
            btc_change_24h=optional_finite(_pick(raw, "btc_change_24h", "btcChange24h")) or 0.0,
            funding_rate=optional_finite(_pick(raw, "funding_rate", "fundingRate")),
            volatility_24h=optional_finite(_pick(raw, "volatility_24h", "volatility24h")),
        )

    @classmethod
    def from_market_data(
        cls,
        change_24h: Any = None,
        funding_rate: Any = None,
        high_24h: Any = None,
        low_24h: Any = None,
        current_price: Any = None,
    ) -> "MarketContext":
        """Derive context from a ticker: 24h range over current price as volatility."""
        high = optional_finite(high_24h)
        low = optional_finite(low_24h)
        price = optional_finite(current_price)
        volatility = None
        if high and low and price and price > 0:
            volatility = (high - low) / price * 100
        return cls(
            btc_change_24h=optional_finite(change_24h) or 0.0,
            funding_rate=optional_finite(funding_rate),
            volatility_24h=volatility,
        )


@dataclass(frozen=True)
class HealthMetrics:
    pnl_status: PnlStatus
    pnl_severity: PnlSeverity
    hold_time_status: HoldTimeStatus
    funding_impact: FundingImpact
    thesis_status: ThesisStatus

    def to_dict(self) -> Dict[str, str]:
        return {
            "pnl_status": self.pnl_status.value,
            "pnl_severity": self.pnl_severity.value,
            "hold_time_status": self.hold_time_status.value,
            "funding_impact": self.funding_impact.value,
            "thesis_status": self.thesis_status.value,
        }


@dataclass(frozen=True)
class TriageRecord:
    position: PositionSnapshot = field(compare=False)
    health: HealthMetrics
    priority: int
    priority_label: str = "LOW"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "position": self.position.to_dict(),
            "health": self.health.to_dict(),
            "priority": self.priority,
            "priority_label": self.priority_label,
        }
