"""
Position health thresholds and triage weights.

Single source of truth for every cutoff used by the health evaluator,
the management rule engine and the portfolio triage ranker. Percent values
are signed P&L percentages (e.g. -7.0 = down 7%).

Overrides come from POSITION_HEALTH_* environment variables (a .env file is
loaded first). Bad values fall back to the default with a warning.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from typing import Dict, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_PREFIX = "POSITION_HEALTH_"


@dataclass(frozen=True)
class HealthThresholds:
    """Fixed engine constants. Comparisons are strict unless noted."""

    # P&L status
    profit_pct: float = 1.0             # pnl > +1% -> PROFIT
    loss_pct: float = -1.0              # pnl < -1% -> LOSS

    # P&L severity
    profit_warning_pct: float = 5.0     # take profits above +5%
    loss_warning_pct: float = -4.0
    loss_critical_pct: float = -7.0     # exclusive: -7.0 itself is WARNING

    # Hold time (days)
    fresh_days: float = 1.0
    stale_days: float = 2.0

    # Cumulative funding as % of position value
    funding_favorable_pct: float = -0.5
    funding_adverse_pct: float = 1.0

    # Thesis
    thesis_weakening_pct: float = -4.0
    thesis_invalidated_pct: float = -8.0

    # Management safety invariants
    forced_close_pct: float = -7.0      # pnl < -7% forces CLOSE_FULL
    add_margin_min_pct: float = -3.0    # inclusive: ADD_MARGIN needs pnl >= -3%
    max_margin_add_ratio: float = 0.5   # of entry_price * size

    # Triage weights
    weight_critical: int = 100
    weight_warning: int = 50
    weight_invalidated: int = 80
    weight_weakening: int = 30
    weight_stale: int = 40
    weight_adverse_funding: int = 20
    weight_profit_taking: int = 70

    # Triage labels
    priority_high: int = 80
    priority_medium: int = 40

    def to_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


DEFAULT_THRESHOLDS = HealthThresholds()


def _parse_env_value(name: str, raw: str, default):
    caster = int if isinstance(default, int) else float
    try:
        value = caster(raw)
    except ValueError:
        logger.warning("Invalid value for %s=%r; using default=%s", name, raw, default)
        return default
    if caster is float and value != value:
        logger.warning("NaN is not a valid value for %s; using default=%s", name, default)
        return default
    return value


def load_thresholds(env: Optional[Dict[str, str]] = None, dotenv: bool = True) -> HealthThresholds:
    """
    Build thresholds from POSITION_HEALTH_* environment variables.

    Args:
        env: Mapping to read instead of os.environ (tests pass a dict).
        dotenv: Load a .env file into os.environ before reading.

    Returns:
        HealthThresholds with every unset or malformed field left at its default.
    """
    if env is None:
        if dotenv:
            load_dotenv()
        env = os.environ

    overrides = {}
    for f in fields(HealthThresholds):
        name = f"{ENV_PREFIX}{f.name.upper()}"
        raw = env.get(name)
        if raw is None or raw.strip() == "":
            continue
        overrides[f.name] = _parse_env_value(name, raw.strip(), f.default)

    if overrides:
        logger.info("Position health thresholds overridden: %s", ", ".join(sorted(overrides)))
    return HealthThresholds(**overrides)
