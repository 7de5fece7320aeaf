"""Tests for solorpg.misfortune."""

import pytest

from solorpg.misfortune import (
    MISFORTUNE_MAX,
    add_misfortune,
    apply_misfortune_to_roll,
    decay_misfortune,
    detect_claimed_roll,
    misfortune_breakdown,
    misfortune_penalty,
)


class TestDetectClaimedRoll:
    @pytest.mark.parametrize("message, value", [
        ("I rolled a 20 and swing at the orc", 20),
        ("ok I got 15", 15),
        ("natural 18 on the die, I jump", 18),
        ("The die showed 3", 3),
        ("tirei um 17 no ataque", 17),
        ("rolei 12", 12),
        ("saqué un 19", 19),
        ("el dado dio 4", 4),
    ])
    def test_claims(self, message: str, value: int) -> None:
        assert detect_claimed_roll(message) == value

    @pytest.mark.parametrize("message", [
        "I open the door",
        "I rolled 25",
        "hi",
        "",
        "I give the guard 10 gold",
    ])
    def test_no_claim(self, message: str) -> None:
        assert detect_claimed_roll(message) is None


class TestPenalty:
    def test_one_per_stack(self) -> None:
        assert misfortune_penalty(0) == 0
        assert misfortune_penalty(3) == 3

    def test_capped(self) -> None:
        assert misfortune_penalty(9) == MISFORTUNE_MAX

    def test_roll_never_below_one(self) -> None:
        assert apply_misfortune_to_roll(14, 2) == 12
        assert apply_misfortune_to_roll(2, 5) == 1

    def test_breakdown(self) -> None:
        assert misfortune_breakdown(14, "14 = 14", 2) == "14 = 14 [misfortune: 12]"
        assert misfortune_breakdown(14, "14 = 14", 0) == "14 = 14"


def test_stacks_rise_and_decay_within_bounds() -> None:
    assert add_misfortune(0) == 1
    assert add_misfortune(MISFORTUNE_MAX) == MISFORTUNE_MAX
    assert decay_misfortune(2) == 1
    assert decay_misfortune(0) == 0
