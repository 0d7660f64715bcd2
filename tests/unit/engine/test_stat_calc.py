"""Tests for the roll-to-stat calculator."""

from __future__ import annotations

from fractions import Fraction

import pytest

from crawl_engine.core.exceptions import InvalidRollError
from crawl_engine.engine.stat_calc import apply_roll, round_half_away_from_zero, roll_multiplier
from crawl_engine.models.enums import StatType


class TestRoundHalfAwayFromZero:
    """Tests for rounding."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (Fraction(3, 2), 2),
            (Fraction(-3, 2), -2),
            (Fraction(5, 2), 3),
            (Fraction(-5, 2), -3),
            (Fraction(7, 5), 1),
            (Fraction(0), 0),
        ],
    )
    def test_ties_go_away_from_zero(self, value: Fraction, expected: int) -> None:
        assert round_half_away_from_zero(value) == expected


class TestRollMultiplier:
    """Tests for the multiplier table."""

    @pytest.mark.parametrize(
        ("roll", "expected"),
        [
            (1, Fraction(0)),
            (4, Fraction(0)),
            (5, Fraction(1, 2)),
            (10, Fraction(1)),
            (15, Fraction(3, 2)),
            (16, Fraction(2)),
            (20, Fraction(2)),
        ],
    )
    def test_multipliers(self, roll: int, expected: Fraction) -> None:
        assert roll_multiplier(roll) == expected


class TestApplyRoll:
    """Tests for apply_roll."""

    def test_critical_failure_is_zero(self) -> None:
        """Test 1-4 zeroes boons and curses alike."""
        for roll in range(1, 5):
            assert apply_roll(roll, StatType.ATTACK, 10) == 0
            assert apply_roll(roll, StatType.HEALTH, -10) == 0

    def test_regular_band_scaling(self) -> None:
        """Test 0.5x at 5, 1.0x at 10 and 1.5x at 15."""
        assert apply_roll(5, StatType.ATTACK, 10) == 5
        assert apply_roll(10, StatType.ATTACK, 10) == 10
        assert apply_roll(15, StatType.ATTACK, 10) == 15

    def test_critical_success_doubles(self) -> None:
        assert apply_roll(16, StatType.DEFENSE, 7) == 14
        assert apply_roll(20, StatType.HEALTH, -7) == -14

    def test_rounding_is_symmetric(self) -> None:
        """Test boons and curses of the same size round to mirror values."""
        assert apply_roll(5, StatType.ATTACK, 3) == 2
        assert apply_roll(5, StatType.ATTACK, -3) == -2
        assert apply_roll(11, StatType.HEALTH, 5) == 6
        assert apply_roll(11, StatType.HEALTH, -5) == -6

    def test_sign_follows_base(self) -> None:
        """Test a positive base never produces a negative delta."""
        for roll in range(1, 21):
            for base in (1, 2, 3, 10, 25):
                assert apply_roll(roll, StatType.ATTACK, base) >= 0
                assert apply_roll(roll, StatType.ATTACK, -base) <= 0

    def test_zero_base(self) -> None:
        assert apply_roll(20, StatType.HEALTH, 0) == 0

    def test_invalid_roll(self) -> None:
        with pytest.raises(InvalidRollError):
            apply_roll(0, StatType.ATTACK, 10)
