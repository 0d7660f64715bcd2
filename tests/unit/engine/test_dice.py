"""Tests for dice rolling and roll classification."""

from __future__ import annotations

import pytest

from crawl_engine.core.exceptions import InvalidRollError
from crawl_engine.engine.dice import DiceRoller, RollOutcome, classify_roll, validate_roll
from crawl_engine.models.enums import RollClassification


class TestClassifyRoll:
    """Tests for roll bands."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (1, RollClassification.CRITICAL_FAILURE),
            (4, RollClassification.CRITICAL_FAILURE),
            (5, RollClassification.REGULAR),
            (15, RollClassification.REGULAR),
            (16, RollClassification.CRITICAL_SUCCESS),
            (20, RollClassification.CRITICAL_SUCCESS),
        ],
    )
    def test_band_edges(self, value: int, expected: RollClassification) -> None:
        """Test the inclusive edges of each band."""
        assert classify_roll(value) == expected

    def test_bands_partition_the_die(self) -> None:
        """Every face lands in exactly one band."""
        counts = {classification: 0 for classification in RollClassification}
        for value in range(1, 21):
            counts[classify_roll(value)] += 1

        assert counts == {
            RollClassification.CRITICAL_FAILURE: 4,
            RollClassification.REGULAR: 11,
            RollClassification.CRITICAL_SUCCESS: 5,
        }

    @pytest.mark.parametrize("value", [0, 21, -3, 100])
    def test_out_of_range(self, value: int) -> None:
        """Test values off the die are rejected."""
        with pytest.raises(InvalidRollError) as exc_info:
            classify_roll(value)

        assert exc_info.value.details["roll_value"] == value

    @pytest.mark.parametrize("value", [True, 7.0, "12"])
    def test_non_integer(self, value: object) -> None:
        """Test booleans, floats and strings are rejected."""
        with pytest.raises(InvalidRollError):
            validate_roll(value)  # type: ignore[arg-type]


class TestDiceRoller:
    """Tests for the DiceRoller class."""

    def test_roll_range(self) -> None:
        """Test rolls always land on the die."""
        roller = DiceRoller()

        values = {roller.roll() for _ in range(200)}

        assert values <= set(range(1, 21))
        assert len(values) > 1

    def test_seeded_rolls_repeat(self) -> None:
        """Test the same seed gives the same sequence."""
        roller = DiceRoller(seed=42)
        sequence_a = [roller.roll() for _ in range(5)]
        roller = DiceRoller(seed=42)
        sequence_b = [roller.roll() for _ in range(5)]

        assert sequence_a == sequence_b

    def test_roll_classified(self) -> None:
        """Test roll_classified pairs the value with its band."""
        outcome = DiceRoller(seed=1).roll_classified()

        assert isinstance(outcome, RollOutcome)
        assert outcome.classification == classify_roll(outcome.value)

    def test_outcome_flags(self) -> None:
        crit = RollOutcome(value=20, classification=RollClassification.CRITICAL_SUCCESS)
        fumble = RollOutcome(value=1, classification=RollClassification.CRITICAL_FAILURE)

        assert crit.is_critical_success and not crit.is_critical_failure
        assert fumble.is_critical_failure and not fumble.is_critical_success
