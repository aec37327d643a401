"""
Tests for threshold loading from the environment.
"""
import logging
from dataclasses import FrozenInstanceError

import pytest

from position_triage.config.thresholds import DEFAULT_THRESHOLDS, HealthThresholds, load_thresholds


class TestDefaults:

    def test_engine_constants(self):
        t = DEFAULT_THRESHOLDS
        assert (t.profit_pct, t.loss_pct) == (1.0, -1.0)
        assert (t.profit_warning_pct, t.loss_warning_pct, t.loss_critical_pct) == (5.0, -4.0, -7.0)
        assert (t.fresh_days, t.stale_days) == (1.0, 2.0)
        assert (t.thesis_weakening_pct, t.thesis_invalidated_pct) == (-4.0, -8.0)
        assert (t.forced_close_pct, t.add_margin_min_pct, t.max_margin_add_ratio) == (-7.0, -3.0, 0.5)

    def test_triage_weights(self):
        t = DEFAULT_THRESHOLDS
        assert t.weight_critical > t.weight_invalidated > t.weight_profit_taking > t.weight_warning
        assert t.weight_stale > t.weight_weakening > t.weight_adverse_funding

    def test_frozen(self):
        with pytest.raises(FrozenInstanceError):
            DEFAULT_THRESHOLDS.stale_days = 5

    def test_to_dict(self):
        assert DEFAULT_THRESHOLDS.to_dict()["weight_stale"] == 40


class TestLoadThresholds:

    def test_empty_env_gives_defaults(self):
        assert load_thresholds(env={}) == HealthThresholds()

    def test_overrides(self):
        t = load_thresholds(env={
            "POSITION_HEALTH_STALE_DAYS": "3",
            "POSITION_HEALTH_WEIGHT_STALE": "45",
            "POSITION_HEALTH_FORCED_CLOSE_PCT": " -6.5 ",
        })
        assert t.stale_days == 3.0
        assert t.weight_stale == 45
        assert isinstance(t.weight_stale, int)
        assert t.forced_close_pct == -6.5

    @pytest.mark.parametrize("raw", ["abc", "nan", "1.5"])
    def test_invalid_values_fall_back(self, raw, caplog):
        with caplog.at_level(logging.WARNING):
            t = load_thresholds(env={"POSITION_HEALTH_WEIGHT_CRITICAL": raw})
        assert t.weight_critical == 100

    def test_nan_float_falls_back(self, caplog):
        with caplog.at_level(logging.WARNING):
            t = load_thresholds(env={"POSITION_HEALTH_LOSS_CRITICAL_PCT": "nan"})
        assert t.loss_critical_pct == -7.0
        assert "NaN" in caplog.text

    def test_blank_value_ignored(self):
        assert load_thresholds(env={"POSITION_HEALTH_STALE_DAYS": "  "}).stale_days == 2.0

    def test_reads_os_environ(self, monkeypatch):
        monkeypatch.setenv("POSITION_HEALTH_FRESH_DAYS", "0.5")
        assert load_thresholds(dotenv=False).fresh_days == 0.5
