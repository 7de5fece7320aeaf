"""Tests for solorpg.progression."""

import math

import pytest

from solorpg.models import XPAward
from solorpg.progression import (
    APP_XP_TABLE,
    apply_xp_change,
    format_level_up_message,
    format_xp_message,
    level_from_xp,
    max_level,
    min_xp_for_level,
    next_level_xp,
    progress_to_next_level,
    roll_xp_bonus,
    validate_xp_table,
)


class TestLevelFromXP:
    def test_thresholds(self) -> None:
        assert level_from_xp(0) == 1
        assert level_from_xp(599) == 1
        assert level_from_xp(600) == 2
        assert level_from_xp(1800) == 3

    def test_negative_xp_is_level_one(self) -> None:
        assert level_from_xp(-50) == 1

    def test_caps_at_table_length(self) -> None:
        assert level_from_xp(10_000_000) == max_level() == 20

    def test_monotone(self) -> None:
        levels = [level_from_xp(xp) for xp in range(0, 500_000, 997)]
        assert levels == sorted(levels)

    def test_custom_table(self) -> None:
        table = (0, 10, 30)
        assert level_from_xp(29, table) == 2
        assert level_from_xp(30, table) == 3


class TestTableValidation:
    def test_app_table_is_valid(self) -> None:
        validate_xp_table(APP_XP_TABLE)

    def test_must_start_at_zero(self) -> None:
        with pytest.raises(ValueError):
            validate_xp_table((10, 20))

    def test_must_strictly_increase(self) -> None:
        with pytest.raises(ValueError):
            validate_xp_table((0, 100, 100))


class TestThresholdHelpers:
    def test_min_xp_for_level(self) -> None:
        assert min_xp_for_level(1) == 0
        assert min_xp_for_level(3) == 1800

    def test_next_level_xp(self) -> None:
        assert next_level_xp(1) == 600
        assert math.isinf(next_level_xp(20))

    def test_progress(self) -> None:
        assert progress_to_next_level(300, 1) == pytest.approx(50.0)
        assert progress_to_next_level(0, 1) == 0.0
        assert progress_to_next_level(999_999, 20) == 100.0


class TestApplyXPChange:
    def test_crossing_a_threshold(self) -> None:
        change = apply_xp_change(1, 590, 20)
        assert change.new_xp == 610
        assert change.new_level == 2
        assert change.leveled_up
        assert not change.leveled_down
        assert change.attribute_points == 1

    def test_multi_level_jump_grants_points_per_level(self) -> None:
        change = apply_xp_change(1, 0, 4200)
        assert change.new_level == 4
        assert change.attribute_points == 3

    def test_no_level_change(self) -> None:
        change = apply_xp_change(2, 700, 50)
        assert change.new_level == 2
        assert not change.leveled_up
        assert change.attribute_points == 0

    def test_losing_xp_can_drop_level_without_negative_points(self) -> None:
        change = apply_xp_change(2, 650, -100)
        assert change.new_level == 1
        assert change.leveled_down
        assert change.attribute_points == 0

    def test_xp_never_negative(self) -> None:
        assert apply_xp_change(1, 10, -500).new_xp == 0


class TestRollXPBonus:
    @pytest.mark.parametrize("dc, amount", [(8, 10), (10, 10), (15, 25), (20, 50), (21, 75)])
    def test_dc_bands(self, dc: int, amount: int) -> None:
        award = roll_xp_bonus(30, dc)
        assert award is not None
        assert award.amount == amount

    def test_natural_20_bonus(self) -> None:
        award = roll_xp_bonus(20, 15, natural_20=True)
        assert award == XPAward(amount=50, reason="Moderate check passed (natural 20!)")

    def test_no_bonus_on_failure(self) -> None:
        assert roll_xp_bonus(9, 10) is None

    def test_no_bonus_without_dc(self) -> None:
        assert roll_xp_bonus(20, None, natural_20=True) is None


def test_chat_strings() -> None:
    assert format_xp_message(XPAward(amount=25, reason="Moderate check passed")) == "✨ +25 XP - Moderate check passed"
    assert format_level_up_message(3) == "🎉 LEVEL UP! You are now Level 3!"


def test_resolved_outcome_overrides_total() -> None:
    award = roll_xp_bonus(18, 30, natural_20=True, succeeded=True)
    assert award is not None
    assert award.amount == 100
    assert roll_xp_bonus(25, 10, succeeded=False) is None
