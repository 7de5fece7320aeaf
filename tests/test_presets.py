"""Tests for solorpg.presets."""

import pytest
from pydantic import ValidationError

from solorpg.presets import (
    DEFAULT_PRESET_ID,
    HpFormula,
    ModifierFormula,
    SheetPreset,
    all_presets,
    get_preset,
    max_hp_for,
    modifier_for,
    resolve_preset_id,
)


def test_five_presets() -> None:
    ids = [p.preset_id for p in all_presets()]
    assert ids == ["dnd-fantasy", "cosmic-horror", "dark-future", "gothic-vampire", "generic"]


class TestResolvePresetId:
    def test_preset_id_passes_through(self) -> None:
        assert resolve_preset_id("cosmic-horror") == "cosmic-horror"

    @pytest.mark.parametrize("system, preset_id", [
        ("D&D 5e", "dnd-fantasy"),
        ("Call of Cthulhu", "cosmic-horror"),
        ("Cyberpunk RED", "dark-future"),
        ("Vampire: The Masquerade", "gothic-vampire"),
        ("Fate Core", "generic"),
    ])
    def test_legacy_systems(self, system: str, preset_id: str) -> None:
        assert resolve_preset_id(system) == preset_id

    def test_unknown_falls_back_to_generic(self) -> None:
        assert resolve_preset_id("Homebrew Deluxe") == DEFAULT_PRESET_ID
        assert get_preset("").preset_id == "generic"


class TestFormulas:
    def test_linear_hp(self) -> None:
        preset = get_preset("generic")
        assert max_hp_for(preset, 1) == 10
        assert max_hp_for(preset, 3) == 20

    def test_flat_hp(self) -> None:
        preset = SheetPreset(preset_id="x", display_name="X", narrative_flavor="", base_hp=12, hp_formula=HpFormula.FLAT)
        assert max_hp_for(preset, 9) == 12

    @pytest.mark.parametrize("formula, value, expected", [
        (ModifierFormula.UNIVERSAL, 12, 3),
        (ModifierFormula.D20_HALF, 15, 2),
        (ModifierFormula.D20_HALF, 7, -2),
        (ModifierFormula.OFFSET, 8, 3),
        (ModifierFormula.NONE, 20, 0),
    ])
    def test_modifier_formulas(self, formula: ModifierFormula, value: int, expected: int) -> None:
        preset = SheetPreset(preset_id="x", display_name="X", narrative_flavor="", modifier_formula=formula)
        assert modifier_for(preset, value) == expected

    def test_formula_serialises_as_name(self) -> None:
        data = get_preset("generic").model_dump(mode="json")
        assert data["hp_formula"] == "linear"
        assert data["modifier_formula"] == "universal"

    def test_presets_are_frozen(self) -> None:
        with pytest.raises(ValidationError):
            get_preset("generic").base_hp = 99  # type: ignore[misc]
