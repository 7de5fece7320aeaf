"""Tests for solorpg.models."""

import pytest
from pydantic import ValidationError

from solorpg.models import CharacterEffect, DiceRoll, ItemDrop, Message, TurnResult


class TestMessage:
    def test_frozen(self) -> None:
        m = Message(id="m1", campaign_id="c", role="user", content="hi")
        with pytest.raises(ValidationError):
            m.content = "changed"  # type: ignore[misc]

    def test_invalid_role_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Message(id="m1", campaign_id="c", role="narrator", content="x")


def test_effect_type_validated() -> None:
    with pytest.raises(ValidationError):
        CharacterEffect(type="poison", amount=1)


def test_item_drop_quantity_positive() -> None:
    with pytest.raises(ValidationError):
        ItemDrop(item_id="potion", quantity=0)


class TestDiceRoll:
    def test_natural_on_single_d20(self) -> None:
        assert DiceRoll(notation="d20", rolls=[17], total=17, breakdown="17 = 17").natural == 17

    def test_no_natural_on_other_dice(self) -> None:
        assert DiceRoll(notation="d6", sides=6, rolls=[6], total=6, breakdown="6 = 6").natural is None
        assert DiceRoll(notation="2d20", rolls=[1, 20], total=21, breakdown="").natural is None


def test_turn_result_defaults() -> None:
    result = TurnResult()
    assert result.status == "ok"
    assert result.effects == []
    assert not result.used_fallback
    assert result.model_dump(mode="json")["projected"] is None
